# guess_link/main.py
# Start the server using uvicorn guess_link.main:app --reload --host 0.0.0.0
import asyncio
import logging
import logging.handlers
import pathlib
from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute, APIWebSocketRoute
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from guess_link.core.config import settings
from guess_link.core.logging_utils import configure_logging
from guess_link.api import image_sets as image_sets_router
from guess_link.api import rooms as rooms_router
from guess_link.api import websockets as websocket_router
from guess_link.crud import crud_image_set
from guess_link.db.base import Base # Registers all tables on the metadata
from guess_link.db.session import SessionLocal, engine
from guess_link.services.gateway import ConnectionGateway
from guess_link.services.room_registry import RoomRegistry
from guess_link.services.round_catalog import load_catalog

_queue_handler_instance: Optional[logging.handlers.QueueHandler] = None # Module-level variable


def configure_logging_from_file():
    """Applies logging_config.json and remembers its QueueHandler; the lifespan runs the listener."""
    global _queue_handler_instance
    _queue_handler_instance = configure_logging(pathlib.Path(__file__).parent / "logging_config.json")


# Configure logging when the module is loaded. Listener is started/stopped by lifespan.
configure_logging_from_file()
logger = logging.getLogger("guess_link.main") # Logger for this module


def _start_log_listener():
    listener = getattr(_queue_handler_instance, "listener", None)
    if listener is None:
        logger.warning("QueueHandler or its listener not found during startup; off-thread logging might not be active.")
        return
    try:
        listener.start()
        logger.info("Logging QueueListener started successfully via lifespan.")
    except RuntimeError:
        logger.debug("Logging QueueListener already running.")
    except Exception as e:
        logger.error(f"Failed to start QueueListener in lifespan: {e}", exc_info=True)


def _stop_log_listener():
    listener = getattr(_queue_handler_instance, "listener", None)
    if listener is None or getattr(listener, "_thread", None) is None:
        return
    try:
        listener.stop()
    except Exception as e:
        logger.error(f"Failed to stop QueueListener gracefully in lifespan: {e}", exc_info=True)


async def idle_room_sweep_task(registry: RoomRegistry, interval_seconds: float):
    """Periodically deletes rooms that have had no players for too long."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            registry.sweep_idle_rooms()
        except Exception as e:
            logger.error(f"Error in idle room sweep task: {e}", exc_info=True)


def create_app(session_factory: sessionmaker = SessionLocal, db_engine: Engine = engine) -> FastAPI:
    """
    Builds the application. Tests pass their own session factory and engine
    so every app instance gets an isolated database and room registry.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application startup sequence initiated...")
        _start_log_listener()

        Base.metadata.create_all(bind=db_engine)
        if settings.SEED_DEFAULT_IMAGE_SETS:
            db = session_factory()
            try:
                inserted = crud_image_set.seed_default_image_sets(db)
                if inserted:
                    logger.info(f"Seeded {inserted} default image sets.")
            finally:
                db.close()

        registry = RoomRegistry(catalog_factory=partial(load_catalog, session_factory), config=settings)
        gateway = ConnectionGateway(registry)
        app.state.registry = registry
        app.state.gateway = gateway
        sweep_task = asyncio.create_task(
            idle_room_sweep_task(registry, settings.ROOM_SWEEP_INTERVAL_SECONDS), name="idle-room-sweep"
        )
        yield  # This is where the application will run

        logger.info("Application shutdown sequence initiated...")
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            logger.info("Idle room sweep task successfully cancelled.")
        gateway.shutdown()
        _stop_log_listener()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGIN.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include Routers
    app.include_router(image_sets_router.router, prefix=settings.API_V1_STR + "/image-sets", tags=["Image Sets"])
    app.include_router(rooms_router.router, prefix=settings.API_V1_STR + "/rooms", tags=["Rooms"])
    app.include_router(websocket_router.router, tags=["Game Sockets"]) # WebSockets usually don't have API prefix

    @app.get(settings.API_V1_STR + "/health", tags=["Health Check"])
    async def health_check():
        registry: RoomRegistry | None = getattr(app.state, "registry", None)
        stats = registry.stats() if registry else {"active_rooms": 0, "players_in_rooms": 0}
        return {"status": "healthy", "project": settings.PROJECT_NAME, **stats}

    logger.debug("--- FastAPI Registered Routes ---")
    for route in app.routes:
        if isinstance(route, APIRoute):
            logger.debug(f"Path: {route.path}, Methods: {route.methods}, Name: {route.name}")
        elif isinstance(route, APIWebSocketRoute):
            logger.debug(f"WebSocket Path: {route.path}, Name: {route.name}")
    return app


app = create_app()

# For development with uvicorn: uvicorn guess_link.main:app --reload
