# guess_link/models/validation.py
from typing import Optional
from pydantic import BaseModel
from guess_link.models.enums import RejectionReason

class GuessValidationResult(BaseModel):
    is_valid: bool
    normalized_guess: Optional[str] = None
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None # Human readable explanation for rejections
    retry_after_ms: Optional[int] = None # Only set for cooldown rejections
