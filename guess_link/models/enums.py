from enum import Enum

class RoomStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    COOLDOWN = "cooldown"
    FINISHED = "finished"

class RoundEndReason(Enum):
    CORRECT_GUESS = "correct_guess"
    TIMEOUT = "timeout"

class RejectionReason(Enum):
    # InvalidGuess
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    # RateLimited
    COOLDOWN = "cooldown"
    MAX_ATTEMPTS_REACHED = "max_attempts_reached"
    DUPLICATE_GUESS = "duplicate_guess"

    @property
    def category(self) -> str:
        if self in (RejectionReason.TOO_SHORT, RejectionReason.TOO_LONG):
            return "invalid_guess"
        return "rate_limited"
