"""
Free-tier metering: monthly counters for AI suggestions and palettes.
- Counters reset when the stored month/year is not the current one.
- A user at the limit is refused with UsageLimitError (403).
- The increment is conditional on month, year and the limit, so it cannot overshoot.
"""
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from errors import UsageLimitError
from services.usage_service import usage_service, UsageAction, FREE_TIER_LIMITS


def _now():
    return datetime.now(timezone.utc)


def _user(**overrides):
    now = _now()
    user = {
        "user_id": "USR-TEST",
        "email": "free@example.com",
        "is_premium": False,
        "usage_limits": {"month": now.month, "year": now.year, "ai_suggestions": 0, "color_palettes": 0},
    }
    user.update(overrides)
    return user


def _db():
    db = MagicMock()
    db.users.update_one = AsyncMock(return_value=MagicMock(modified_count=1, matched_count=1))
    db.users.update_many = AsyncMock(return_value=MagicMock(modified_count=2))
    return db


@pytest.mark.asyncio
async def test_check_usage_allows_user_below_limit():
    db = _db()
    user = _user()
    user["usage_limits"]["ai_suggestions"] = 4
    with patch("services.usage_service.database.get_db", return_value=db):
        result = await usage_service.check_usage(user, UsageAction.AI_SUGGESTIONS)
    assert result["usage_limits"]["ai_suggestions"] == 4
    db.users.update_one.assert_not_called()


@pytest.mark.asyncio
async def test_check_usage_raises_at_limit():
    db = _db()
    user = _user()
    user["usage_limits"]["color_palettes"] = FREE_TIER_LIMITS["color_palettes"]
    with patch("services.usage_service.database.get_db", return_value=db):
        with pytest.raises(UsageLimitError) as exc_info:
            await usage_service.check_usage(user, UsageAction.COLOR_PALETTES)
    assert exc_info.value.status_code == 403
    assert exc_info.value.limit == 3
    assert "3 color palettes" in exc_info.value.message


@pytest.mark.asyncio
async def test_check_usage_resets_counters_on_month_rollover():
    """Last month's exhausted quota does not carry over."""
    db = _db()
    user = _user(usage_limits={"month": 1, "year": 2000, "ai_suggestions": 5, "color_palettes": 3})
    with patch("services.usage_service.database.get_db", return_value=db):
        result = await usage_service.check_usage(user, UsageAction.AI_SUGGESTIONS)

    now = _now()
    assert result["usage_limits"] == {"month": now.month, "year": now.year, "ai_suggestions": 0, "color_palettes": 0}
    db.users.update_one.assert_called_once()
    stored = db.users.update_one.call_args[0][1]["$set"]["usage_limits"]
    assert stored["ai_suggestions"] == 0


@pytest.mark.asyncio
async def test_premium_user_is_never_limited():
    db = _db()
    user = _user(is_premium=True, subscription_end_date=_now() + timedelta(days=10))
    user["usage_limits"]["ai_suggestions"] = 99
    with patch("services.usage_service.database.get_db", return_value=db):
        await usage_service.check_usage(user, UsageAction.AI_SUGGESTIONS)
        recorded = await usage_service.record_usage(user, UsageAction.AI_SUGGESTIONS)
    assert recorded is False
    db.users.update_one.assert_not_called()


@pytest.mark.asyncio
async def test_lapsed_premium_is_downgraded_and_limited():
    db = _db()
    user = _user(is_premium=True, subscription_end_date=_now() - timedelta(minutes=1))
    user["usage_limits"]["ai_suggestions"] = 5
    with patch("services.usage_service.database.get_db", return_value=db):
        with pytest.raises(UsageLimitError):
            await usage_service.check_usage(user, UsageAction.AI_SUGGESTIONS)
    assert user["is_premium"] is False
    assert db.users.update_one.call_args[0][1]["$set"]["is_premium"] is False


@pytest.mark.asyncio
async def test_record_usage_filter_guards_month_and_limit():
    db = _db()
    user = _user()
    with patch("services.usage_service.database.get_db", return_value=db):
        recorded = await usage_service.record_usage(user, UsageAction.AI_SUGGESTIONS)

    assert recorded is True
    query, update = db.users.update_one.call_args[0]
    now = _now()
    assert query["usage_limits.month"] == now.month
    assert query["usage_limits.year"] == now.year
    assert query["usage_limits.ai_suggestions"] == {"$lt": 5}
    assert update == {"$inc": {"usage_limits.ai_suggestions": 1}}


@pytest.mark.asyncio
async def test_record_usage_reports_when_nothing_counted():
    """A concurrent request already consumed the last unit."""
    db = _db()
    db.users.update_one = AsyncMock(return_value=MagicMock(modified_count=0))
    with patch("services.usage_service.database.get_db", return_value=db):
        recorded = await usage_service.record_usage(_user(), UsageAction.COLOR_PALETTES)
    assert recorded is False


@pytest.mark.asyncio
async def test_usage_stats_report_zero_after_rollover():
    db = _db()
    user = _user(usage_limits={"month": 12, "year": 1999, "ai_suggestions": 4, "color_palettes": 2})
    with patch("services.usage_service.database.get_db", return_value=db):
        stats = await usage_service.get_usage_stats(user)
    assert stats["isPremium"] is False
    assert stats["limits"]["aiSuggestions"] == 5
    assert stats["currentUsage"]["aiSuggestions"] == 0
    assert stats["currentUsage"]["colorPalettes"] == 0


@pytest.mark.asyncio
async def test_expire_subscriptions_targets_lapsed_premium_users():
    db = _db()
    with patch("services.usage_service.database.get_db", return_value=db):
        count = await usage_service.expire_subscriptions()
    assert count == 2
    query, update = db.users.update_many.call_args[0]
    assert query["is_premium"] is True
    assert "$lt" in query["subscription_end_date"]
    assert update["$set"]["is_premium"] is False
