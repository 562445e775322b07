# guess_link/models/events.py
from typing import Any, Dict, Literal

# Outbound message types published by the server
GameEventType = Literal[
    "connection",
    "roomCreated",
    "gameState",
    "roundStart",
    "timeUpdate",
    "correctGuess",
    "incorrectGuess",
    "roundEnd",
    "gameOver",
    "leftRoom",
    "ping",
    "error",
]

class GameEvent:
    def __init__(self, event_type: GameEventType, payload: Dict[str, Any] | None = None):
        self.type = event_type
        self.payload = payload or {}

    def to_dict(self): # For sending over WebSocket
        return {"type": self.type, "payload": self.payload}

    def __repr__(self):
        return f"GameEvent({self.type!r}, {self.payload!r})"
