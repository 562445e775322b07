# guess_link/core/exceptions.py
"""
Recoverable game errors. Each one is reported privately to the connection
that caused it as an ``error`` message carrying ``code`` and ``message``.
"""


class GameError(Exception):
    code = "game_error"
    default_message = "Game error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"message": self.message, "code": self.code}


class RoomFull(GameError):
    code = "room_full"
    default_message = "Room is full"


class UsernameTaken(GameError):
    code = "username_taken"
    default_message = "Username is already taken"


class RoomNotFound(GameError):
    code = "room_not_found"
    default_message = "Room not found"


class RoomCodeCollision(GameError):
    code = "room_code_collision"
    default_message = "Room code is already in use"


class MalformedMessage(GameError):
    code = "malformed_message"
    default_message = "Invalid message format"


class UnknownMessageType(GameError):
    code = "unknown_message_type"
    default_message = "Unknown message type"


class CatalogEmpty(GameError):
    code = "catalog_empty"
    default_message = "No image sets available"
