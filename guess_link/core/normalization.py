# guess_link/core/normalization.py
import re

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s]")


def normalize_guess(raw: str) -> str:
    """Lowercase, trim, and drop everything outside ``[a-z0-9\\s]``. Used for guesses and answers alike."""
    return _DISALLOWED_CHARS.sub("", raw.lower().strip())
