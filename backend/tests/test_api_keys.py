"""API keys: one-time raw key, masked listing, usage tracking on authentication."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from errors import ValidationError, NotFoundError
from services.api_key_service import api_key_service


def _db():
    db = MagicMock()
    db.api_keys.insert_one = AsyncMock()
    db.api_keys.find_one_and_update = AsyncMock(return_value=None)
    db.api_keys.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
    db.users.find_one = AsyncMock(return_value={"user_id": "USR-1", "email": "a@example.com"})
    return db


@pytest.mark.asyncio
async def test_generate_key_returns_raw_key_once():
    db = _db()
    with patch("services.api_key_service.database.get_db", return_value=db):
        created = await api_key_service.generate_key("USR-1", "  CI pipeline ")
    assert created["name"] == "CI pipeline"
    assert len(created["key"]) == 64
    assert created["id"].startswith("KEY-")
    stored = db.api_keys.insert_one.call_args[0][0]
    assert stored["user_id"] == "USR-1"
    assert stored["is_active"] is True


@pytest.mark.asyncio
async def test_generate_key_requires_name():
    with pytest.raises(ValidationError):
        await api_key_service.generate_key("USR-1", "   ")


@pytest.mark.asyncio
async def test_list_keys_masks_raw_key():
    db = _db()
    cursor = MagicMock()
    cursor.sort.return_value.to_list = AsyncMock(return_value=[
        {"key_id": "KEY-1", "name": "CI", "key": "a" * 60 + "wxyz", "is_active": True},
    ])
    db.api_keys.find = MagicMock(return_value=cursor)
    with patch("services.api_key_service.database.get_db", return_value=db):
        keys = await api_key_service.list_keys("USR-1")
    assert keys[0]["key"] == "...wxyz"
    assert db.api_keys.find.call_args[0][1]["user_id"] == 0


@pytest.mark.asyncio
async def test_authenticate_inactive_or_unknown_key():
    db = _db()
    with patch("services.api_key_service.database.get_db", return_value=db):
        assert await api_key_service.authenticate("deadbeef") is None
    query, update = db.api_keys.find_one_and_update.call_args[0]
    assert query == {"key": "deadbeef", "is_active": True}
    assert update["$inc"] == {"usage_count": 1}
    assert "last_used" in update["$set"]


@pytest.mark.asyncio
async def test_authenticate_returns_owner():
    db = _db()
    db.api_keys.find_one_and_update = AsyncMock(return_value={"key_id": "KEY-1", "user_id": "USR-1"})
    with patch("services.api_key_service.database.get_db", return_value=db):
        user = await api_key_service.authenticate("k")
    assert user["user_id"] == "USR-1"


@pytest.mark.asyncio
async def test_delete_other_users_key_not_found():
    db = _db()
    with patch("services.api_key_service.database.get_db", return_value=db):
        with pytest.raises(NotFoundError):
            await api_key_service.delete_key("USR-2", "KEY-1")
    assert db.api_keys.delete_one.call_args[0][0] == {"key_id": "KEY-1", "user_id": "USR-2"}
