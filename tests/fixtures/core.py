from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.app.api.http.app import create_app
from src.app.core.services import DbManageService, DbSessionService, UserService
from src.app.core.telemetry import Telemetry
from src.app.entities.core.user import (
    InMemoryUserRepository,
    SqlUserRepository,
    UserRepository,
)
from src.app.runtime.config.config_data import ConfigData

# Models will be imported within fixtures to control timing


class FakeClock:
    """Deterministic clock for the user service; moves only when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def test_config() -> ConfigData:
    """Configuration for a self-contained app: in-memory store, no log file."""
    config = ConfigData()
    config.app.environment = "test"
    config.logging.file = None
    config.logging.level = "WARNING"
    config.store.backend = "memory"
    config.telemetry.log_spans = False
    return config


@pytest.fixture
def sql_config(test_config: ConfigData) -> ConfigData:
    config = test_config.model_copy(deep=True)
    config.store.backend = "sql"
    config.database.url = "sqlite:///:memory:"
    return config


@pytest.fixture
def db_service(sql_config: ConfigData) -> Generator[DbSessionService]:
    """Fresh in-memory SQLite database with the user table created."""
    service = DbSessionService(sql_config)
    DbManageService(service).create_all()
    try:
        yield service
    finally:
        service.dispose()


@pytest.fixture
def memory_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def sql_repository(db_service: DbSessionService) -> SqlUserRepository:
    return SqlUserRepository(db_service)


@pytest.fixture(params=["memory", "sql"])
def repository(request: pytest.FixtureRequest) -> UserRepository:
    """Run the test against every store backend."""
    return request.getfixturevalue(f"{request.param}_repository")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def user_service(repository: UserRepository, clock: FakeClock) -> UserService:
    return UserService(repository, clock=clock)


@pytest.fixture
def telemetry() -> Telemetry:
    return Telemetry(service_name="user-api-test", log_spans=False)


@pytest.fixture
def app(test_config: ConfigData, telemetry: Telemetry) -> FastAPI:
    return create_app(test_config, telemetry=telemetry)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient]:
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sql_client(sql_config: ConfigData, telemetry: Telemetry) -> Generator[TestClient]:
    """Test client backed by an in-memory SQLite store."""
    with TestClient(create_app(sql_config, telemetry=telemetry)) as test_client:
        yield test_client
