"""Usage Service

Free-tier monthly quotas for metered actions and subscription expiry
checks. Counters live on the user document under `usage_limits` and are
scoped to one UTC calendar month.
"""

from typing import Dict, Any
from enum import Enum
import logging

from database import database
from errors import UsageLimitError
from utils.dates import utcnow, parse_dt

logger = logging.getLogger(__name__)


class UsageAction(str, Enum):
    AI_SUGGESTIONS = "ai_suggestions"
    COLOR_PALETTES = "color_palettes"


FREE_TIER_LIMITS = {
    "ai_suggestions": 5,
    "color_palettes": 3,
    "templates": 10,
}

LIMIT_MESSAGES = {
    UsageAction.AI_SUGGESTIONS: (
        "You have reached your monthly limit of 5 AI suggestions. "
        "Upgrade to Premium for unlimited AI suggestions."
    ),
    UsageAction.COLOR_PALETTES: (
        "You have reached your monthly limit of 3 color palettes. "
        "Upgrade to Premium for unlimited color palettes."
    ),
}


def fresh_usage() -> Dict[str, int]:
    now = utcnow()
    return {"month": now.month, "year": now.year, "ai_suggestions": 0, "color_palettes": 0}


def is_current_period(usage: Dict[str, Any]) -> bool:
    now = utcnow()
    return usage.get("month") == now.month and usage.get("year") == now.year


class UsageService:
    """Metering and subscription gating."""

    def _get_db(self):
        return database.get_db()

    async def refresh_subscription(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """Clear the premium flag once the subscription end date has passed."""
        end_date = parse_dt(user.get("subscription_end_date"))
        if user.get("is_premium") and end_date and end_date < utcnow():
            db = self._get_db()
            await db.users.update_one(
                {"user_id": user["user_id"]},
                {"$set": {"is_premium": False, "updated_at": utcnow()}}
            )
            user["is_premium"] = False
            logger.info(f"Premium expired for {user['user_id']}")
        return user

    async def expire_subscriptions(self) -> int:
        """Bulk form of refresh_subscription for the scheduler."""
        db = self._get_db()
        now = utcnow()
        result = await db.users.update_many(
            {"is_premium": True, "subscription_end_date": {"$lt": now}},
            {"$set": {"is_premium": False, "updated_at": now}}
        )
        return result.modified_count

    async def check_usage(self, user: Dict[str, Any], action: UsageAction) -> Dict[str, Any]:
        """
        Gate a metered action.

        Raises:
            UsageLimitError: free user already at the monthly limit
        """
        action = UsageAction(action)
        user = await self.refresh_subscription(user)
        if user.get("is_premium"):
            return user

        usage = user.get("usage_limits") or {}
        if not is_current_period(usage):
            usage = fresh_usage()
            db = self._get_db()
            await db.users.update_one(
                {"user_id": user["user_id"]},
                {"$set": {"usage_limits": usage}}
            )
            user["usage_limits"] = usage

        limit = FREE_TIER_LIMITS[action.value]
        if usage.get(action.value, 0) >= limit:
            raise UsageLimitError(action.value, limit, LIMIT_MESSAGES[action])
        return user

    async def record_usage(self, user: Dict[str, Any], action: UsageAction) -> bool:
        """
        Count one successful use. Returns False when nothing was counted
        (premium user, month changed, or limit already reached).
        """
        action = UsageAction(action)
        if user.get("is_premium"):
            return False

        now = utcnow()
        field = f"usage_limits.{action.value}"
        limit = FREE_TIER_LIMITS[action.value]
        db = self._get_db()
        result = await db.users.update_one(
            {
                "user_id": user["user_id"],
                "usage_limits.month": now.month,
                "usage_limits.year": now.year,
                field: {"$lt": limit},
            },
            {"$inc": {field: 1}}
        )
        if result.modified_count != 1:
            logger.warning(f"Usage for {action.value} not recorded for {user['user_id']}")
            return False
        return True

    async def get_subscription_status(self, user: Dict[str, Any]) -> Dict[str, Any]:
        user = await self.refresh_subscription(user)
        return {
            "isPremium": bool(user.get("is_premium")),
            "subscriptionEndDate": user.get("subscription_end_date"),
            "subscriptionPlan": user.get("subscription_plan"),
        }

    async def get_usage_stats(self, user: Dict[str, Any]) -> Dict[str, Any]:
        user = await self.refresh_subscription(user)
        premium = bool(user.get("is_premium"))

        usage = user.get("usage_limits") or {}
        if not is_current_period(usage):
            usage = fresh_usage()

        return {
            "isPremium": premium,
            "subscriptionPlan": user.get("subscription_plan"),
            "subscriptionEndDate": user.get("subscription_end_date"),
            "limits": "unlimited" if premium else {
                "aiSuggestions": FREE_TIER_LIMITS["ai_suggestions"],
                "colorPalettes": FREE_TIER_LIMITS["color_palettes"],
                "templates": FREE_TIER_LIMITS["templates"],
            },
            "currentUsage": {
                "month": usage.get("month"),
                "year": usage.get("year"),
                "aiSuggestions": usage.get("ai_suggestions", 0),
                "colorPalettes": usage.get("color_palettes", 0),
            },
        }


usage_service = UsageService()
