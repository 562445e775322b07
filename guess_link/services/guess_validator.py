# guess_link/services/guess_validator.py
import logging
import math

from guess_link.core.config import Settings, settings
from guess_link.core.normalization import normalize_guess
from guess_link.models.enums import RejectionReason
from guess_link.models.game import GuessRecord
from guess_link.models.validation import GuessValidationResult

logger = logging.getLogger("guess_link.services.guess_validator")  # Logger for this module


class GuessValidator:
    """
    Validates guess text and enforces the cooldown/attempt policy.

    None of the checks touch the GuessRecord; the room commits the record only
    after a guess has been accepted into scoring.
    """

    def __init__(self, cooldown_ms: int = 2000, max_guesses_per_round: int = 5, min_length: int = 2, max_length: int = 50):
        self.cooldown_ms = cooldown_ms
        self.max_guesses_per_round = max_guesses_per_round
        self.min_length = min_length
        self.max_length = max_length

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "GuessValidator":
        return cls(
            cooldown_ms=config.GUESS_COOLDOWN_MS,
            max_guesses_per_round=config.MAX_GUESSES_PER_ROUND,
            min_length=config.MIN_GUESS_LENGTH,
            max_length=config.MAX_GUESS_LENGTH,
        )

    def validate(self, raw: str) -> GuessValidationResult:
        normalized = normalize_guess(raw)
        if len(normalized) < self.min_length:
            return GuessValidationResult(
                is_valid=False, normalized_guess=normalized, reason=RejectionReason.TOO_SHORT,
                message=f"Guess must be at least {self.min_length} characters long",
            )
        if len(normalized) > self.max_length:
            return GuessValidationResult(
                is_valid=False, normalized_guess=normalized, reason=RejectionReason.TOO_LONG,
                message=f"Guess must be at most {self.max_length} characters long",
            )
        return GuessValidationResult(is_valid=True, normalized_guess=normalized)

    def check_rate_limit(self, record: GuessRecord, now_ms: float, normalized_guess: str | None = None) -> GuessValidationResult:
        if record.last_guess_timestamp_ms is not None:
            elapsed_ms = now_ms - record.last_guess_timestamp_ms
            if elapsed_ms < self.cooldown_ms:
                retry_after_ms = int(math.ceil(self.cooldown_ms - elapsed_ms))
                return GuessValidationResult(
                    is_valid=False, normalized_guess=normalized_guess, reason=RejectionReason.COOLDOWN,
                    message=f"Please wait {math.ceil(retry_after_ms / 1000)} seconds before guessing again",
                    retry_after_ms=retry_after_ms,
                )

        if record.guess_count >= self.max_guesses_per_round:
            return GuessValidationResult(
                is_valid=False, normalized_guess=normalized_guess, reason=RejectionReason.MAX_ATTEMPTS_REACHED,
                message="Maximum guesses reached for this round",
            )

        if normalized_guess is not None and record.last_guess and normalized_guess == record.last_guess:
            return GuessValidationResult(
                is_valid=False, normalized_guess=normalized_guess, reason=RejectionReason.DUPLICATE_GUESS,
                message="You already tried this guess",
            )

        return GuessValidationResult(is_valid=True, normalized_guess=normalized_guess)

    def remaining_attempts(self, record: GuessRecord) -> int:
        return max(0, self.max_guesses_per_round - record.guess_count)
