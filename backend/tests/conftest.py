"""
Pytest configuration and shared test helpers for backend tests.
"""
import os

# Skip the scheduler when the app lifespan runs under pytest.
os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest
from unittest.mock import AsyncMock, MagicMock

# Shared TestClient fixture so tests can use in-process requests without a running server.
from fastapi.testclient import TestClient
from server import app


@pytest.fixture
def client():
    """Return a TestClient for the main FastAPI app (server:app). Use for unit-style API tests."""
    return TestClient(app)


@pytest.fixture
def mock_db():
    """A MagicMock database whose common collection calls are awaitable."""
    db = MagicMock()
    for name in ("users", "designs", "templates", "favorites", "teams", "api_keys", "payments", "activity_logs", "message_logs"):
        collection = getattr(db, name)
        collection.find_one = AsyncMock(return_value=None)
        collection.insert_one = AsyncMock()
        collection.update_one = AsyncMock(return_value=MagicMock(modified_count=1, matched_count=1))
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    return db
