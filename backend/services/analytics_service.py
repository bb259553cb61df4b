"""Analytics Service - per-user dashboard numbers and admin platform stats."""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List
import logging

from database import database
from services.activity_service import activity_service

logger = logging.getLogger(__name__)


def day_windows(days: int = 7) -> List[tuple]:
    """(start, end) UTC midnight windows for the last `days` days, oldest first."""
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return [
        (today - timedelta(days=i), today - timedelta(days=i - 1))
        for i in range(days - 1, -1, -1)
    ]


class AnalyticsService:

    def _get_db(self):
        return database.get_db()

    async def user_analytics(self, user_id: str) -> Dict[str, Any]:
        db = self._get_db()
        now = datetime.now(timezone.utc)

        total_designs = await db.designs.count_documents({"user_id": user_id})
        total_favorites = await db.favorites.count_documents({"user_id": user_id})
        recent_activity = await db.activity_logs.count_documents({
            "user_id": user_id,
            "created_at": {"$gte": now - timedelta(days=30)},
        })
        recent_designs = await db.designs.count_documents({
            "user_id": user_id,
            "created_at": {"$gte": now - timedelta(days=7)},
        })

        most_used_templates = await db.designs.aggregate([
            {"$match": {"user_id": user_id, "template_id": {"$ne": None}}},
            {"$group": {"_id": "$template_id", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": 5},
            {"$lookup": {
                "from": "templates",
                "localField": "_id",
                "foreignField": "template_id",
                "as": "template",
            }},
            {"$unwind": "$template"},
            {"$project": {
                "_id": 0,
                "template_id": "$template.template_id",
                "title": "$template.title",
                "thumbnail": "$template.thumbnail",
                "usageCount": "$count",
            }},
        ]).to_list(5)

        design_activity = []
        for start, end in day_windows(7):
            count = await db.designs.count_documents({
                "user_id": user_id,
                "created_at": {"$gte": start, "$lt": end},
            })
            design_activity.append({"date": start.date().isoformat(), "designs": count})

        popular_categories = await db.favorites.aggregate([
            {"$match": {"user_id": user_id}},
            {"$lookup": {
                "from": "templates",
                "localField": "template_id",
                "foreignField": "template_id",
                "as": "template",
            }},
            {"$unwind": "$template"},
            {"$group": {"_id": "$template.category", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": 5},
            {"$project": {"_id": 0, "category": "$_id", "count": 1}},
        ]).to_list(5)

        total_templates = await db.templates.count_documents({})

        # Rank among users with at least one design; ties share a rank
        rank = None
        if total_designs:
            ahead = await db.designs.aggregate([
                {"$group": {"_id": "$user_id", "designCount": {"$sum": 1}}},
                {"$match": {"designCount": {"$gt": total_designs}}},
                {"$count": "ahead"},
            ]).to_list(1)
            rank = (ahead[0]["ahead"] if ahead else 0) + 1

        return {
            "overview": {
                "totalDesigns": total_designs,
                "totalFavorites": total_favorites,
                "recentActivity": recent_activity,
                "recentDesigns": recent_designs,
                "userRank": rank,
                "totalTemplates": total_templates,
            },
            "mostUsedTemplates": most_used_templates,
            "designActivity": design_activity,
            "popularCategories": popular_categories,
        }

    async def admin_stats(self) -> Dict[str, Any]:
        db = self._get_db()
        today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        total_users = await db.users.count_documents({})
        total_designs = await db.designs.count_documents({})
        total_templates = await db.templates.count_documents({})
        premium_users = await db.users.count_documents({"is_premium": True})
        users_today = await db.users.count_documents({"created_at": {"$gte": today}})
        designs_today = await db.designs.count_documents({"created_at": {"$gte": today}})
        recent_activities = await activity_service.count_since(hours=24)

        user_roles = await db.users.aggregate([
            {"$group": {"_id": "$role", "count": {"$sum": 1}}},
            {"$project": {"_id": 0, "role": "$_id", "count": 1}},
        ]).to_list(None)

        top_active_users = await db.designs.aggregate([
            {"$group": {"_id": "$user_id", "designCount": {"$sum": 1}}},
            {"$sort": {"designCount": -1}},
            {"$limit": 5},
            {"$lookup": {
                "from": "users",
                "localField": "_id",
                "foreignField": "user_id",
                "as": "user",
            }},
            {"$unwind": "$user"},
            {"$project": {
                "_id": 0,
                "user_id": "$user.user_id",
                "full_name": "$user.full_name",
                "email": "$user.email",
                "designCount": 1,
            }},
        ]).to_list(5)

        activity_trends = []
        for start, end in day_windows(7):
            count = await db.activity_logs.count_documents({"created_at": {"$gte": start, "$lt": end}})
            activity_trends.append({"date": start.date().isoformat(), "activities": count})

        return {
            "overview": {
                "totalUsers": total_users,
                "totalDesigns": total_designs,
                "totalTemplates": total_templates,
                "premiumUsers": premium_users,
                "usersToday": users_today,
                "designsToday": designs_today,
                "recentActivities": recent_activities,
            },
            "userRoles": user_roles,
            "topActiveUsers": top_active_users,
            "activityTrends": activity_trends,
        }


analytics_service = AnalyticsService()
