"""Admin bootstrap script."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from scripts.promote_admin import promote_user


@pytest.mark.asyncio
async def test_promote_existing_user():
    db = MagicMock()
    db.users.find_one = AsyncMock(return_value={"user_id": "USR-1", "role": "user"})
    db.users.update_one = AsyncMock()
    assert await promote_user(db, " Owner@Example.com ") is True
    assert db.users.find_one.call_args[0][0] == {"email": "owner@example.com"}
    assert db.users.update_one.call_args[0][1]["$set"]["role"] == "admin"


@pytest.mark.asyncio
async def test_promote_unknown_user():
    db = MagicMock()
    db.users.find_one = AsyncMock(return_value=None)
    db.users.update_one = AsyncMock()
    assert await promote_user(db, "ghost@example.com") is False
    db.users.update_one.assert_not_called()
