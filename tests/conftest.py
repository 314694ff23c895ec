from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from tasks_api.main import create_app
from tasks_api.settings import Settings

from .fakes import FakeClock


@pytest.fixture()
def now() -> datetime:
    return datetime(2025, 3, 10, 12, 0, 0)


@pytest.fixture()
def clock(now: datetime) -> FakeClock:
    return FakeClock(now)


@pytest.fixture()
def settings() -> Settings:
    """In-memory settings so each test gets an isolated collection."""
    return Settings(persistence_backend="memory")


@pytest.fixture()
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))
