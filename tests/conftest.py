import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.db.base import Base
from app.api.deps import get_db
from app.services.config_store import config_store
from tests.utils.utils import get_admin_headers

from sqlalchemy.pool import StaticPool

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session")
def db() -> Generator:
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="session")
def client(db: Generator) -> Generator:
    def override_get_db() -> Generator:
        try:
            db = TestingSessionLocal()
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="session")
def admin_headers() -> dict:
    return get_admin_headers()


@pytest.fixture()
def isolated_db() -> Generator:
    """A fresh, empty database for tests that need exact counts."""
    isolated_engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=isolated_engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=isolated_engine)()
    yield session
    session.close()
    Base.metadata.drop_all(bind=isolated_engine)
    isolated_engine.dispose()


@pytest.fixture()
def isolated_client(client: TestClient, isolated_db) -> Generator:
    """The API client, served from ``isolated_db`` for the duration of a test."""
    previous = app.dependency_overrides[get_db]

    def override_get_db() -> Generator:
        yield isolated_db

    app.dependency_overrides[get_db] = override_get_db
    yield client
    app.dependency_overrides[get_db] = previous


@pytest.fixture(autouse=True)
def fresh_engine_config() -> Generator:
    # Never let a cached engine config leak from one test into the next
    config_store.invalidate()
    yield
    config_store.invalidate()
