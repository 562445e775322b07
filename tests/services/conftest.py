# tests/services/conftest.py
import pytest

from guess_link.core.config import Settings
from guess_link.services.guess_validator import GuessValidator
from guess_link.services.room_state import Room
from guess_link.services.round_catalog import RoundCatalog
from tests.services.fakes import IMAGE_SETS, FakeClock, first_available


@pytest.fixture
def game_settings():
    # Timers are driven by hand in these tests, so the real ones never fire
    return Settings(ROUND_TICK_SECONDS=3600, ROUND_COOLDOWN_SECONDS=3600)

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def make_catalog():
    def _make(image_sets=None):
        return RoundCatalog(IMAGE_SETS if image_sets is None else image_sets, picker=first_available)
    return _make

@pytest.fixture
async def make_room(game_settings, clock, make_catalog):
    rooms = []

    def _make(room_code="ABC123", config=None, image_sets=None):
        config = config or game_settings
        room = Room(
            room_code,
            catalog=make_catalog(image_sets),
            validator=GuessValidator.from_settings(config),
            config=config,
            clock=clock,
        )
        rooms.append(room)
        return room

    yield _make
    for room in rooms:
        room.close()
