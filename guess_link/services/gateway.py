# guess_link/services/gateway.py
import json
import logging
import uuid
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ValidationError

from guess_link.core.exceptions import GameError, MalformedMessage, RoomNotFound, UnknownMessageType
from guess_link.models.events import GameEvent
from guess_link.models.messages import CreateRoomPayload, InboundMessage, JoinRoomPayload, SubmitGuessPayload
from guess_link.services.room_registry import RoomRegistry
from guess_link.services.room_state import Room

logger = logging.getLogger("guess_link.services.gateway")  # Logger for this module


class ConnectionGateway:
    """
    Turns inbound client intents into registry/room operations.

    Every failure is answered with a private ``error`` message to the
    originating connection; nothing here ever broadcasts an error.
    """

    def __init__(self, registry: RoomRegistry):
        self.registry = registry
        self.connections: Dict[str, Any] = {}
        self._handlers: Dict[str, Callable[[str, Dict[str, Any]], None]] = {
            "createRoom": self._handle_create_room,
            "joinRoom": self._handle_join_room,
            "submitGuess": self._handle_submit_guess,
            "resetGame": self._handle_reset_game,
            "leaveRoom": self._handle_leave_room,
            "pong": self._handle_pong,
        }

    # --- Connection lifecycle ---

    def register(self, connection: Any, client_id: str | None = None) -> str:
        client_id = client_id or str(uuid.uuid4())
        connection.client_id = client_id
        self.connections[client_id] = connection
        connection.send(GameEvent("connection", {"clientId": client_id}).to_dict())
        logger.info(f"C:{client_id} - Connected. Open connections: {len(self.connections)}")
        return client_id

    def handle_disconnect(self, client_id: str):
        """An abrupt disconnect is treated exactly like ``leaveRoom``."""
        room_code = self.registry.leave(client_id)
        self.connections.pop(client_id, None)
        logger.info(f"C:{client_id} - Disconnected (room: {room_code}). Open connections: {len(self.connections)}")

    # --- Inbound messages ---

    def handle_message(self, client_id: str, raw_message: str | bytes | Dict[str, Any]):
        connection = self.connections.get(client_id)
        if connection is None:
            logger.warning(f"C:{client_id} - Message from unknown connection ignored.")
            return
        try:
            message = self._parse(raw_message)
            handler = self._handlers.get(message.type)
            if handler is None:
                raise UnknownMessageType(f"Unknown message type: {message.type}")
            logger.debug(f"C:{client_id} - Handling '{message.type}'.")
            handler(client_id, message.payload)
        except GameError as e:
            logger.info(f"C:{client_id} - Request rejected ({e.code}): {e.message}")
            self._send_error(client_id, e.to_payload())
        except Exception as e:
            logger.exception(f"C:{client_id} - Unexpected error handling message: {e}")
            self._send_error(client_id, {"message": f"Internal server error: {type(e).__name__}", "code": "internal_error"})

    def _parse(self, raw_message: str | bytes | Dict[str, Any]) -> InboundMessage:
        if isinstance(raw_message, (str, bytes)):
            size = len(raw_message.encode() if isinstance(raw_message, str) else raw_message)
            if size > self.registry.config.MAX_INBOUND_MESSAGE_BYTES:
                raise MalformedMessage(f"Message too large ({size} bytes)")
        try:
            data = raw_message if isinstance(raw_message, dict) else json.loads(raw_message)
        except (TypeError, ValueError) as e:
            raise MalformedMessage("Invalid message format") from e
        if not isinstance(data, dict):
            raise MalformedMessage("Invalid message format")
        try:
            return InboundMessage.model_validate(data)
        except ValidationError as e:
            raise MalformedMessage("Message must have a 'type' and an object 'payload'") from e

    @staticmethod
    def _payload(model: type[BaseModel], payload: Dict[str, Any]):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in e.errors())
            raise MalformedMessage(f"Invalid or missing fields: {fields}") from e

    def _send_error(self, client_id: str, payload: Dict[str, Any]):
        connection = self.connections.get(client_id)
        if connection is not None:
            connection.send(GameEvent("error", payload).to_dict())

    def _require_room(self, client_id: str) -> Room:
        room = self.registry.room_of(client_id)
        if room is None:
            raise RoomNotFound("You are not in a room")
        return room

    # --- Handlers ---

    def _handle_create_room(self, client_id: str, payload: Dict[str, Any]):
        data = self._payload(CreateRoomPayload, payload)
        # join_or_create leaves any previous room once the new one has accepted the player
        room = self.registry.create_room_with_generated_code()
        connection = self.connections[client_id]
        connection.send(GameEvent("roomCreated", {"roomCode": room.room_code, "username": data.username}).to_dict())
        self.registry.join_or_create(room.room_code, client_id, connection, data.username)

    def _handle_join_room(self, client_id: str, payload: Dict[str, Any]):
        data = self._payload(JoinRoomPayload, payload)
        self.registry.join_or_create(data.room_code, client_id, self.connections[client_id], data.username)

    def _handle_submit_guess(self, client_id: str, payload: Dict[str, Any]):
        data = self._payload(SubmitGuessPayload, payload)
        self._require_room(client_id).submit_guess(client_id, data.guess)

    def _handle_reset_game(self, client_id: str, payload: Dict[str, Any]):
        self._require_room(client_id).reset_game()

    def _handle_leave_room(self, client_id: str, payload: Dict[str, Any]):
        room_code: Optional[str] = self.registry.leave(client_id)
        if room_code is None:
            raise RoomNotFound("You are not in a room")
        self.connections[client_id].send(GameEvent("leftRoom", {"roomCode": room_code}).to_dict())

    def _handle_pong(self, client_id: str, payload: Dict[str, Any]):
        pass

    def shutdown(self):
        self.registry.shutdown()
        self.connections.clear()
