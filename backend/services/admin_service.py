"""Admin Service - user management for administrators."""

from typing import Optional, Dict, Any
import logging
import re

from database import database
from errors import ValidationError, NotFoundError
from models.user import ProfileUpdate, UserRole, public_user
from services.user_service import user_service
from utils.dates import utcnow

logger = logging.getLogger(__name__)


class AdminService:

    def _get_db(self):
        return database.get_db()

    async def list_users(
        self,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Dict[str, Any]:
        db = self._get_db()
        page = max(page, 1)
        limit = min(max(limit, 1), 200)

        query: Dict[str, Any] = {}
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"full_name": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}},
            ]
        if role:
            query["role"] = role

        total = await db.users.count_documents(query)
        users = await db.users.find(query, {"_id": 0}).sort("created_at", -1).skip((page - 1) * limit).limit(limit).to_list(limit)
        return {
            "users": [public_user(u) for u in users],
            "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
        }

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        return public_user(await user_service.get_user(user_id))

    async def update_user_profile(self, user_id: str, data: ProfileUpdate) -> Dict[str, Any]:
        if not data.phone:
            raise ValidationError("All fields are required")
        user = await user_service.update_profile(user_id, data)
        logger.info(f"Admin updated profile of {user_id}")
        return public_user(user)

    async def update_user_avatar(self, user_id: str, content: Optional[bytes], filename: Optional[str], content_type: Optional[str]) -> Dict[str, Any]:
        user = await user_service.update_avatar(user_id, content, filename, content_type)
        return public_user(user)

    async def change_role(self, admin_id: str, user_id: str, role: UserRole) -> Dict[str, Any]:
        if admin_id == user_id:
            raise ValidationError("You cannot change your own role")

        role = UserRole(role).value
        db = self._get_db()
        result = await db.users.update_one(
            {"user_id": user_id},
            {"$set": {"role": role, "updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError("User not found")
        logger.info(f"Admin {admin_id} set role of {user_id} to {role}")
        return await self.get_user(user_id)

    async def delete_user(self, admin_id: str, user_id: str):
        if admin_id == user_id:
            raise ValidationError("Use account deletion to remove your own account")
        await user_service.delete_account(user_id)
        logger.info(f"Admin {admin_id} deleted user {user_id}")


admin_service = AdminService()
