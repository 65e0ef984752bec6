"""Shared test fixtures for the nocdata health API."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from nocdata_api.app import create_app
from nocdata_api.dependencies import get_checkpoints, get_store
from nocdata_pipeline.utils.checkpoint import CheckpointStore


@pytest.fixture()
def mock_store():
    store = MagicMock()
    store.health_check = AsyncMock(
        return_value={"status": "healthy", "response_time_ms": 4, "timestamp": "2024-01-01T00:00:00+00:00"}
    )
    return store


@pytest.fixture()
def checkpoint_file(tmp_path):
    return CheckpointStore(tmp_path / "seeding-progress.json")


@pytest.fixture()
def app(mock_store, checkpoint_file):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: mock_store
    app.dependency_overrides[get_checkpoints] = lambda: checkpoint_file
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)
