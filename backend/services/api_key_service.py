"""API Key Service

Opaque 64-hex keys for programmatic access. The raw key is returned once
on creation; authentication with `X-API-Key` bumps `last_used` and
`usage_count`.
"""

from typing import Optional, Dict, Any, List
import logging

from pymongo import ReturnDocument

from database import database
from auth import generate_secure_token
from errors import ValidationError, NotFoundError
from models.billing import ApiKey
from utils.dates import utcnow

logger = logging.getLogger(__name__)


class ApiKeyService:

    def _get_db(self):
        return database.get_db()

    async def generate_key(self, user_id: str, name: Optional[str]) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("API key name is required")

        api_key = ApiKey(user_id=user_id, key=generate_secure_token(32), name=name)
        db = self._get_db()
        await db.api_keys.insert_one(api_key.model_dump())

        logger.info(f"API key {api_key.key_id} generated for {user_id}")
        return {
            "id": api_key.key_id,
            "name": api_key.name,
            "key": api_key.key,
            "created_at": api_key.created_at,
        }

    async def list_keys(self, user_id: str) -> List[Dict[str, Any]]:
        """Keys without owner; the raw key is reduced to its last four characters."""
        db = self._get_db()
        keys = await db.api_keys.find(
            {"user_id": user_id},
            {"_id": 0, "user_id": 0}
        ).sort("created_at", -1).to_list(100)
        for api_key in keys:
            api_key["key"] = f"...{api_key['key'][-4:]}"
        return keys

    async def delete_key(self, user_id: str, key_id: str):
        db = self._get_db()
        result = await db.api_keys.delete_one({"key_id": key_id, "user_id": user_id})
        if result.deleted_count == 0:
            raise NotFoundError("API key not found")

    async def toggle_key(self, user_id: str, key_id: str) -> Dict[str, Any]:
        db = self._get_db()
        api_key = await db.api_keys.find_one({"key_id": key_id, "user_id": user_id}, {"_id": 0})
        if not api_key:
            raise NotFoundError("API key not found")

        is_active = not api_key.get("is_active", True)
        await db.api_keys.update_one(
            {"key_id": key_id},
            {"$set": {"is_active": is_active, "updated_at": utcnow()}}
        )
        return {"id": key_id, "name": api_key["name"], "is_active": is_active}

    async def authenticate(self, raw_key: str) -> Optional[Dict[str, Any]]:
        """Return the owning user for an active key, recording the use."""
        db = self._get_db()
        api_key = await db.api_keys.find_one_and_update(
            {"key": raw_key, "is_active": True},
            {"$set": {"last_used": utcnow()}, "$inc": {"usage_count": 1}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
        if not api_key:
            return None
        return await db.users.find_one({"user_id": api_key["user_id"]}, {"_id": 0})

    async def delete_user_keys(self, user_id: str) -> int:
        db = self._get_db()
        result = await db.api_keys.delete_many({"user_id": user_id})
        return result.deleted_count


api_key_service = ApiKeyService()
