"""Activity Service

Per-user activity trail, mirrored to the application log.
"""

from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any, List
import logging

from database import database
from models.billing import ActivityLog, ActivityAction

logger = logging.getLogger(__name__)


def request_context(request) -> Dict[str, Optional[str]]:
    """Client address and user agent of a FastAPI request (None-safe)."""
    if request is None:
        return {"ip_address": None, "user_agent": None}
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return {"ip_address": ip, "user_agent": request.headers.get("user-agent")}


class ActivityService:
    """Service for activity logging."""

    def _get_db(self):
        return database.get_db()

    async def log(
        self,
        user_id: str,
        action: ActivityAction,
        description: str,
        request=None,
    ) -> ActivityLog:
        """Create an activity entry."""
        db = self._get_db()

        entry = ActivityLog(
            user_id=user_id,
            action=action,
            description=description,
            **request_context(request),
        )
        await db.activity_logs.insert_one(entry.model_dump())

        logger.info(f"[ACTIVITY] {entry.action}: {description} (user: {user_id})")
        return entry

    async def get_user_activities(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        db = self._get_db()
        cursor = db.activity_logs.find(
            {"user_id": user_id},
            {"_id": 0}
        ).sort("created_at", -1).limit(limit)
        return await cursor.to_list(limit)

    async def get_all_activities(
        self,
        page: int = 1,
        limit: int = 50,
        action: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Admin view: filtered, paginated entries with owner details and per-action counts."""
        db = self._get_db()
        page = max(page, 1)
        limit = min(max(limit, 1), 200)

        query: Dict[str, Any] = {}
        if action:
            query["action"] = action
        if user_id:
            query["user_id"] = user_id

        total = await db.activity_logs.count_documents(query)
        activities = await db.activity_logs.find(
            query,
            {"_id": 0}
        ).sort("created_at", -1).skip((page - 1) * limit).limit(limit).to_list(limit)

        user_ids = list({a["user_id"] for a in activities})
        users = await db.users.find(
            {"user_id": {"$in": user_ids}},
            {"_id": 0, "user_id": 1, "full_name": 1, "email": 1, "avatar": 1}
        ).to_list(len(user_ids) or 1)
        by_id = {u["user_id"]: u for u in users}
        for activity in activities:
            activity["user"] = by_id.get(activity["user_id"])

        stats = await db.activity_logs.aggregate([
            {"$group": {"_id": "$action", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]).to_list(None)

        return {
            "activities": activities,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
            "stats": [{"action": s["_id"], "count": s["count"]} for s in stats],
        }

    async def clear_user_activities(self, user_id: str) -> int:
        db = self._get_db()
        result = await db.activity_logs.delete_many({"user_id": user_id})
        logger.info(f"Cleared {result.deleted_count} activities for {user_id}")
        return result.deleted_count

    async def count_since(self, hours: int = 24) -> int:
        db = self._get_db()
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        return await db.activity_logs.count_documents({"created_at": {"$gte": since}})


activity_service = ActivityService()
