# guess_link/models/messages.py
import re
from typing import Any, Dict
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from guess_link.core.config import settings


class InboundMessage(BaseModel):
    """Envelope of every client message: ``{"type": ..., "payload": {...}}`` (``data`` is accepted too)."""
    type: str = Field(..., min_length=1)
    payload: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("payload", "data"))


class UsernamePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1, max_length=32)

class CreateRoomPayload(UsernamePayload):
    pass

class JoinRoomPayload(UsernamePayload):
    room_code: str = Field(..., min_length=1, max_length=16, validation_alias=AliasChoices("roomCode", "room_code"))

    @field_validator("room_code")
    @classmethod
    def normalize_room_code(cls, value: str) -> str:
        code = value.upper()
        if not re.fullmatch(rf"[A-Z0-9]{{{settings.ROOM_CODE_LENGTH}}}", code):
            raise ValueError(f"Room code must be {settings.ROOM_CODE_LENGTH} letters or digits")
        return code

class SubmitGuessPayload(BaseModel):
    # Length is judged after normalization, by the guess validator
    guess: str
