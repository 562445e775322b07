# guess_link/api/rooms.py
import logging
from fastapi import APIRouter, Depends, HTTPException
from guess_link.api import deps
from guess_link.models.game import RoomSnapshot
from guess_link.services.room_registry import RoomRegistry

logger = logging.getLogger("guess_link.api.rooms")  # Logger for this module
router = APIRouter()

@router.get("/{room_code}", response_model=RoomSnapshot, response_model_by_alias=True)
def get_room_info(room_code: str, registry: RoomRegistry = Depends(deps.get_registry)):
    """Public snapshot of a live room (players, scores, round). Never includes the answer."""
    room = registry.get_room(room_code.strip().upper())
    if room is None:
        raise HTTPException(status_code=404, detail=f"Room {room_code} not found.")
    return room.snapshot()
