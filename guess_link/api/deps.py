# guess_link/api/deps.py
import logging
from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from guess_link.services.room_registry import RoomRegistry

logger = logging.getLogger("guess_link.api.deps")  # Logger for this module

def get_db(request: Request):
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

def get_registry(request: Request) -> RoomRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        logger.error("Room registry requested before application startup completed.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Game server is not ready.")
    return registry
