# guess_link/services/scoring.py
from guess_link.core.config import Settings, settings


def calculate_round_score(time_left: int, attempt_number: int, config: Settings = settings) -> int:
    """
    Points for a correct guess: faster answers score more, every earlier
    attempt in the same round costs a penalty, and the result never drops
    below the configured minimum.
    """
    base_score = max(config.MIN_ROUND_SCORE, time_left * config.SCORE_PER_SECOND_LEFT)
    attempts_penalty = (attempt_number - 1) * config.ATTEMPT_PENALTY
    return max(config.MIN_ROUND_SCORE, base_score - attempts_penalty)
