"""Shared fixtures: every test gets its own data directory."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from timin.services.record_store import JsonRecordStore
from timin.services.review_service import ReviewService
from timin.services.shift_service import ShiftService
from timin.services.user_store import UserStore
from timin.utils.config import AppSettings, LoggingSettings, Settings, StorageSettings

VALID_ABN = "51824753556"

SHIFT_SPEC = {
    "title": "Warehouse Picker",
    "description": "Pick and pack orders",
    "hourlyRateAUD": "28.50",
    "location": {"state": "VIC", "postcode": "3000", "suburb": "Melbourne"},
    "start": "2030-03-01T09:00:00.000Z",
    "end": "2030-03-01T13:00:00.000Z",
}


@pytest.fixture
def store(tmp_path: Path) -> JsonRecordStore:
    return JsonRecordStore(tmp_path / "data", lock_timeout_seconds=2)


@pytest.fixture
def users(store) -> UserStore:
    return UserStore(store)


@pytest.fixture
def shifts(store) -> ShiftService:
    return ShiftService(store)


@pytest.fixture
def reviews(store) -> ReviewService:
    return ReviewService(store)


@pytest.fixture
def employer(users):
    return users.register("boss@example.com", "employer-pass", "employer", VALID_ABN)


@pytest.fixture
def worker(users):
    return users.register("worker1@example.com", "worker-pass", "worker")


@pytest.fixture
def shift(shifts, employer):
    return shifts.create(employer, dict(SHIFT_SPEC))


def make_settings(tmp_path: Path, environment: str = "development", seed: bool = False) -> Settings:
    return Settings(
        app=AppSettings(environment=environment),
        storage=StorageSettings(data_dir=str(tmp_path / "data"), seed_demo_data=seed, lock_timeout_seconds=2),
        logging=LoggingSettings(level="WARNING", format="text"),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def app(settings):
    from web.main import create_app
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def new_client(app):
    """Factory for extra clients; each keeps its own cookie jar."""
    return lambda: TestClient(app)


@pytest.fixture
def app_factory(tmp_path: Path):
    """Build an app with non-default settings, e.g. production or seeded."""
    from web.main import create_app

    def build(environment: str = "development", seed: bool = False, store=None):
        return create_app(make_settings(tmp_path, environment, seed), store=store)
    return build
