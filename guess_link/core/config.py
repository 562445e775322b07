# guess_link/core/config.py
import pathlib
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

logger = logging.getLogger("guess_link.core.config")  # Logger for this module

BASE_DIR = pathlib.Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    PROJECT_NAME: str = "Guess the Link Server"
    API_V1_STR: str = "/api/v1"
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'guess_link.db'}"
    CORS_ORIGIN: str = "*"
    SEED_DEFAULT_IMAGE_SETS: bool = True

    # --- Room / round lifecycle ---
    MAX_PLAYERS_PER_ROOM: int = 2
    MIN_PLAYERS_TO_START: int = 2
    MAX_ROUNDS: int = 3
    ROUND_TIMER_SECONDS: int = 20
    ROUND_TICK_SECONDS: float = 1.0
    ROUND_COOLDOWN_SECONDS: float = 3.0

    # --- Guess validation and rate limiting ---
    MAX_GUESSES_PER_ROUND: int = 5
    GUESS_COOLDOWN_MS: int = 2000
    MIN_GUESS_LENGTH: int = 2
    MAX_GUESS_LENGTH: int = 50

    # --- Scoring ---
    SCORE_PER_SECOND_LEFT: int = 5
    MIN_ROUND_SCORE: int = 10
    ATTEMPT_PENALTY: int = 10

    # --- Registry housekeeping ---
    ROOM_CODE_LENGTH: int = 6
    ROOM_CODE_MAX_ATTEMPTS: int = 10
    ROOM_IDLE_TIMEOUT_SECONDS: int = 30 * 60
    ROOM_SWEEP_INTERVAL_SECONDS: int = 300

    # --- Connections ---
    WS_PING_INTERVAL_SECONDS: float = 25.0
    OUTBOUND_QUEUE_MAX_SIZE: int = 100
    MAX_INBOUND_MESSAGE_BYTES: int = 16384

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache()
def get_settings():
    settings_instance = Settings()
    logger.info(f"Settings loaded for '{settings_instance.PROJECT_NAME}' (db: {settings_instance.DATABASE_URL})")
    return settings_instance

settings = get_settings()
