# guess_link/services/room_registry.py
import logging
import random
import string
import time
from typing import Any, Callable, Dict, List, Optional

from guess_link.core.config import Settings, settings
from guess_link.core.exceptions import RoomCodeCollision, RoomNotFound
from guess_link.models.game import JoinResult
from guess_link.services.guess_validator import GuessValidator
from guess_link.services.room_state import Room
from guess_link.services.round_catalog import RoundCatalog

logger = logging.getLogger("guess_link.services.room_registry")  # Logger for this module

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_room_code(length: int = 6, rng: random.Random | None = None) -> str:
    """Random uppercase alphanumeric code, e.g. ``'K3ZQ9A'``."""
    chooser = rng or random
    return "".join(chooser.choices(ROOM_CODE_ALPHABET, k=length))


class RoomRegistry:
    """
    Owns every live room: room code -> Room, plus a reverse index
    player id -> room code. Created once per process by the application
    lifespan and handed to the connection gateway.
    """

    def __init__(
        self,
        catalog_factory: Callable[[], RoundCatalog],
        config: Settings = settings,
        code_generator: Callable[[], str] | None = None,
    ):
        self.catalog_factory = catalog_factory
        self.config = config
        self.code_generator = code_generator or (lambda: generate_room_code(config.ROOM_CODE_LENGTH))
        self.rooms: Dict[str, Room] = {}
        self.player_rooms: Dict[str, str] = {}

    # --- Lookup ---

    def get_room(self, room_code: str) -> Optional[Room]:
        return self.rooms.get(room_code)

    def resolve_room(self, room_code: str) -> Room:
        room = self.rooms.get(room_code)
        if room is None:
            raise RoomNotFound(f"Room {room_code} not found")
        return room

    def room_of(self, player_id: str) -> Optional[Room]:
        room_code = self.player_rooms.get(player_id)
        return self.rooms.get(room_code) if room_code else None

    # --- Creation ---

    def create_room(self, room_code: str) -> Room:
        if room_code in self.rooms:
            raise RoomCodeCollision(f"Room code {room_code} is already in use")
        room = Room(
            room_code,
            catalog=self.catalog_factory(),
            validator=GuessValidator.from_settings(self.config),
            config=self.config,
        )
        self.rooms[room_code] = room
        logger.info(f"Room {room_code} created. Active rooms: {len(self.rooms)}")
        return room

    def create_room_with_generated_code(self) -> Room:
        for attempt in range(1, self.config.ROOM_CODE_MAX_ATTEMPTS + 1):
            room_code = self.code_generator()
            try:
                return self.create_room(room_code)
            except RoomCodeCollision:
                logger.warning(f"Generated room code {room_code} collided (attempt {attempt}/{self.config.ROOM_CODE_MAX_ATTEMPTS}). Retrying.")
        raise RoomCodeCollision("Could not generate a free room code")

    # --- Membership ---

    def join_or_create(self, room_code: str, player_id: str, connection: Any, username: str) -> JoinResult:
        """
        Adds the player to ``room_code``, creating the room if needed. A player
        switching rooms only leaves the old one once the new one has accepted
        them, so a failed join changes nothing.
        """
        current_room = self.room_of(player_id)
        if current_room is not None and current_room.room_code == room_code and player_id in current_room.players:
            logger.info(f"P:{player_id} is already in room {room_code}. Re-sending state.")
            current_room.broadcast_state()
            player = current_room.players[player_id]
            return JoinResult(room_code=room_code, player_id=player_id, username=player.username, status=current_room.status)

        room = self.rooms.get(room_code)
        created = room is None
        if created:
            room = self.create_room(room_code)
        else:
            room.ensure_can_join(username)

        if current_room is not None:
            logger.info(f"P:{player_id} switching from room {current_room.room_code} to {room_code}.")
            self.leave(player_id)

        try:
            join_result = room.add_player(player_id, username, connection)
        except Exception:
            if created and room.is_empty:
                self._discard_room(room_code)
            raise

        self.player_rooms[player_id] = room_code
        return join_result

    def leave(self, player_id: str) -> Optional[str]:
        """Removes the player from their room. Returns the room code they left, if any."""
        room_code = self.player_rooms.pop(player_id, None)
        if room_code is None:
            return None
        room = self.rooms.get(room_code)
        if room is None:
            return room_code
        if room.remove_player(player_id):
            self._discard_room(room_code)
            logger.info(f"Room {room_code} deleted (empty). Active rooms: {len(self.rooms)}")
        return room_code

    def _discard_room(self, room_code: str):
        room = self.rooms.pop(room_code, None)
        if room is not None:
            room.close()

    # --- Housekeeping ---

    def sweep_idle_rooms(self, now: float | None = None) -> List[str]:
        """Deletes rooms without players that have been idle longer than the configured threshold."""
        now = time.time() if now is None else now
        threshold = self.config.ROOM_IDLE_TIMEOUT_SECONDS
        stale_codes = [
            code for code, room in self.rooms.items()
            if room.is_empty and now - room.last_activity > threshold
        ]
        for code in stale_codes:
            self._discard_room(code)
        if stale_codes:
            logger.info(f"Swept {len(stale_codes)} idle rooms: {stale_codes}")
        return stale_codes

    def stats(self) -> Dict[str, int]:
        return {
            "active_rooms": len(self.rooms),
            "players_in_rooms": sum(len(room.players) for room in self.rooms.values()),
        }

    def shutdown(self):
        logger.info(f"Shutting down registry with {len(self.rooms)} rooms.")
        for code in list(self.rooms.keys()):
            self._discard_room(code)
        self.player_rooms.clear()
