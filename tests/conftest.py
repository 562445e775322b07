# tests/conftest.py
import pytest
import logging
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from guess_link.main import create_app
from guess_link.db.base import Base

SQLALCHEMY_DATABASE_URL_TEST = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL_TEST,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(autouse=True)
def setup_test_db():
    """Fresh tables for every test; the app seeds default image sets on startup."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def session_factory():
    return TestingSessionLocal

@pytest.fixture(scope="function")
def db_session():
    session = TestingSessionLocal()
    yield session
    session.close()

@pytest.fixture(scope="function")
def app():
    return create_app(session_factory=TestingSessionLocal, db_engine=engine)

@pytest.fixture(scope="function")
def client(app) -> TestClient:
    """TestClient with the lifespan running, so the registry and gateway exist."""
    with TestClient(app) as c:
        yield c

def pytest_configure(config):
    """
    Hook to configure logging levels before tests are run.
    This silences noisy third-party libraries.
    """
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
