"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import get_runtime
from src.youtube.quota import QuotaGovernor

TRIGGER_KEY = "test-trigger-key"


def _mock_runtime(db_healthy: bool = True, ingestion_enabled: bool = True) -> MagicMock:
    """A stand-in for IngestionRuntime with a mock database and orchestrator."""
    runtime = MagicMock()
    runtime.database = AsyncMock()
    runtime.database.health_check = AsyncMock(return_value=db_healthy)
    runtime.quota = QuotaGovernor(daily_limit=5000)
    runtime.ingestion_enabled = ingestion_enabled

    orchestrator = MagicMock()
    orchestrator.is_running = False
    orchestrator.trigger = AsyncMock(
        side_effect=lambda mode: {
            "message": {
                "channels": "Channel videos fetched and stored successfully.",
                "categories": "Videos fetched and stored successfully.",
            }[mode]
        }
    )
    runtime.orchestrator = orchestrator
    return runtime


@pytest.fixture(autouse=True)
def trigger_key(monkeypatch, test_settings):
    """Route get_settings() in the auth module to the test settings."""
    monkeypatch.setattr("src.api.auth.get_settings", lambda: test_settings)
    return TRIGGER_KEY


@pytest.fixture
def mock_runtime() -> MagicMock:
    return _mock_runtime()


@pytest.fixture
def make_client():
    """Factory fixture: make_client(runtime, **client_kwargs) -> TestClient without lifespan."""

    def _make(runtime, **kwargs) -> TestClient:
        app = create_app(runtime)
        app.dependency_overrides[get_runtime] = lambda: runtime
        return TestClient(app, **kwargs)

    return _make


@pytest.fixture
def make_runtime():
    """Factory fixture: make_runtime(db_healthy=True, ingestion_enabled=True)."""
    return _mock_runtime


@pytest.fixture
def client(make_client, mock_runtime) -> TestClient:
    return make_client(mock_runtime)
