# guess_link/models/game.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional

from guess_link.core.config import settings
from guess_link.core.normalization import normalize_guess
from guess_link.models.enums import RoomStatus


class WireModel(BaseModel):
    """Base for payloads sent to clients; dump with ``by_alias=True`` for camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Image sets ---

class ImageSetBase(BaseModel):
    images: List[str] = Field(..., min_length=3, max_length=3, description="Exactly three image URLs.")
    correct_answer: str = Field(..., min_length=1)
    hint: Optional[str] = None
    category: Optional[str] = None

    @field_validator("images")
    @classmethod
    def images_not_blank(cls, value: List[str]) -> List[str]:
        if any(not url.strip() for url in value):
            raise ValueError("Image URLs cannot be empty")
        return value

def _check_guessable(answer: str) -> str:
    # A valid guess has to be able to match the answer
    length = len(normalize_guess(answer))
    if not settings.MIN_GUESS_LENGTH <= length <= settings.MAX_GUESS_LENGTH:
        raise ValueError(
            f"Answer must be {settings.MIN_GUESS_LENGTH}-{settings.MAX_GUESS_LENGTH} letters, digits or spaces after normalization"
        )
    return answer

class ImageSetCreate(ImageSetBase):
    @field_validator("correct_answer")
    @classmethod
    def answer_is_guessable(cls, value: str) -> str:
        return _check_guessable(value)

class ImageSetUpdate(BaseModel):
    images: Optional[List[str]] = Field(None, min_length=3, max_length=3)
    correct_answer: Optional[str] = Field(None, min_length=1)
    hint: Optional[str] = None
    category: Optional[str] = None

    @field_validator("images")
    @classmethod
    def images_not_blank(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is not None and any(not url.strip() for url in value):
            raise ValueError("Image URLs cannot be empty")
        return value

    @field_validator("correct_answer")
    @classmethod
    def answer_is_guessable(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _check_guessable(value)

class ImageSetPublic(ImageSetBase):
    id: int

    model_config = ConfigDict(from_attributes=True, frozen=True)


# --- Players and per-round records ---

class PlayerPublic(WireModel):
    id: str
    username: str
    score: int = 0

class PlayerState(BaseModel):
    id: str # connection scoped client id
    username: str
    score: int = Field(default=0, ge=0)
    connection: Any = Field(default=None, exclude=True, repr=False)

    def to_public(self) -> PlayerPublic:
        return PlayerPublic(id=self.id, username=self.username, score=self.score)

class GuessRecord(BaseModel):
    player_id: str
    last_guess: str = "" # normalized
    last_guess_timestamp_ms: Optional[float] = None
    guess_count: int = 0 # accepted guesses this round


# --- Snapshots sent to clients ---

class CurrentRoundPublic(WireModel):
    images: List[str]
    hint: Optional[str] = None
    category: Optional[str] = None

class GameOverSummary(WireModel):
    winner: Optional[PlayerPublic] = None
    is_tie: bool = False
    final_scores: List[PlayerPublic] = []

class RoomSnapshot(WireModel):
    room_code: str
    status: RoomStatus
    round: int
    max_rounds: int
    time_left: int
    players: List[PlayerPublic]
    total_score: int
    current_round: Optional[CurrentRoundPublic] = None
    game_over: Optional[GameOverSummary] = None

class JoinResult(WireModel):
    room_code: str
    player_id: str
    username: str
    status: RoomStatus
