"""Favorite Service - user x template bookmarks."""

from typing import Optional, Dict, Any, List
import logging

from pymongo.errors import DuplicateKeyError

from database import database
from errors import ValidationError, NotFoundError
from models.design import Favorite

logger = logging.getLogger(__name__)

ALREADY_FAVORITED = "Template already in favorites"


class FavoriteService:

    def _get_db(self):
        return database.get_db()

    async def add_favorite(self, user_id: str, template_id: Optional[str]) -> Dict[str, Any]:
        if not template_id:
            raise ValidationError("Template ID is required")

        db = self._get_db()
        if await db.favorites.find_one({"user_id": user_id, "template_id": template_id}, {"_id": 0}):
            raise ValidationError(ALREADY_FAVORITED)

        template = await db.templates.find_one({"template_id": template_id}, {"_id": 0, "template_id": 1})
        if not template:
            raise NotFoundError("Template not found")

        favorite = Favorite(user_id=user_id, template_id=template_id)
        doc = favorite.model_dump()
        try:
            await db.favorites.insert_one(doc)
        except DuplicateKeyError:
            # Concurrent add of the same pair; the unique index decides
            raise ValidationError(ALREADY_FAVORITED)
        doc.pop("_id", None)
        return doc

    async def remove_favorite(self, user_id: str, template_id: str):
        db = self._get_db()
        result = await db.favorites.delete_one({"user_id": user_id, "template_id": template_id})
        if result.deleted_count == 0:
            raise NotFoundError("Favorite not found")

    async def list_favorites(self, user_id: str) -> List[Dict[str, Any]]:
        """Favorited templates, most recently favorited first."""
        db = self._get_db()
        favorites = await db.favorites.find({"user_id": user_id}, {"_id": 0}).sort("created_at", -1).to_list(None)
        template_ids = [f["template_id"] for f in favorites]
        if not template_ids:
            return []
        templates = await db.templates.find({"template_id": {"$in": template_ids}}, {"_id": 0}).to_list(len(template_ids))
        by_id = {t["template_id"]: t for t in templates}
        return [by_id[tid] for tid in template_ids if tid in by_id]

    async def is_favorited(self, user_id: str, template_id: str) -> bool:
        db = self._get_db()
        return await db.favorites.find_one({"user_id": user_id, "template_id": template_id}, {"_id": 0}) is not None


favorite_service = FavoriteService()
