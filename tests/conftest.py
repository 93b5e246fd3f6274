# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

import time
from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from insurance_gateway.config import Settings
from insurance_gateway.main import create_app
from insurance_gateway.rate_limit import limiter
from insurance_gateway.services.backend import SupabaseBackend

TEST_API_KEY = "test-key-alpha"
SECOND_API_KEY = "test-key-beta"


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> Iterator[None]:
    """The limiter is a module-level singleton; clear counters around each test."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing: two valid keys, console logs, no backend URL."""
    return Settings(
        api_keys=f"{TEST_API_KEY},{SECOND_API_KEY}",
        max_request_per_15_minutes=10,
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def mock_backend() -> MagicMock:
    """Backend with async methods mocked; happy-path return values."""
    backend = MagicMock(spec=SupabaseBackend)
    backend.get_life_insurance_recommendation = AsyncMock(return_value=[{"plan": "X"}])
    backend.get_all_user_requests = AsyncMock(return_value=[])
    backend.insert_user_request = AsyncMock(return_value=None)
    return backend


@pytest.fixture
def make_client(mock_backend: MagicMock) -> Callable[..., TestClient]:
    """Build a TestClient for arbitrary settings, with the mock backend attached.

    The lifespan does not run (no context manager), so app.state.backend is
    set here directly. Server exceptions become 500 responses instead of
    propagating into the test.
    """

    def _make(settings: Settings, backend: object = mock_backend) -> TestClient:
        app: FastAPI = create_app(settings)
        app.state.backend = backend
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client: Callable[..., TestClient], test_settings: Settings) -> TestClient:
    return make_client(test_settings)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"x-api-key": TEST_API_KEY}


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> Callable[[float], None]:
    """Shift wall-clock time forward; the limiter storage expires windows on time.time()."""
    real_time = time.time
    offset = [0.0]
    monkeypatch.setattr(time, "time", lambda: real_time() + offset[0])

    def advance(seconds: float) -> None:
        offset[0] += seconds

    return advance
