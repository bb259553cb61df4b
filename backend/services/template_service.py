"""Template Service

Admin-authored starting points. Free users see the newest 10 matches
when listing; premium users see everything.
"""

from typing import Optional, Dict, Any, List, Union
import json
import logging
import re

from database import database
from errors import ValidationError, NotFoundError
from models.design import Template
from services.design_service import parse_tags
from services.storage_adapter import upload_image, delete_asset
from services.usage_service import usage_service, FREE_TIER_LIMITS
from utils.dates import utcnow

logger = logging.getLogger(__name__)

THUMBNAIL_FOLDER = "template-thumbnails"


def normalize_editor_json(value: Union[str, dict, list]) -> str:
    """Objects are serialized; strings must already parse as JSON."""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    try:
        json.loads(value)
    except (TypeError, json.JSONDecodeError):
        raise ValidationError("Invalid editor JSON format")
    return value


class TemplateService:
    """Service for templates."""

    def _get_db(self):
        return database.get_db()

    async def get_template(self, template_id: str) -> Dict[str, Any]:
        db = self._get_db()
        template = await db.templates.find_one({"template_id": template_id}, {"_id": 0})
        if not template:
            raise NotFoundError("Template not found")
        return template

    async def list_templates(
        self,
        user: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if search:
            query["title"] = {"$regex": re.escape(search.strip()), "$options": "i"}
        if category:
            query["category"] = category
        if tags:
            tag_list = [t.strip() for t in tags.split(",") if t.strip()]
            if tag_list:
                query["tags"] = {"$in": tag_list}

        is_premium = False
        if user:
            user = await usage_service.refresh_subscription(user)
            is_premium = bool(user.get("is_premium"))

        db = self._get_db()
        cursor = db.templates.find(query, {"_id": 0}).sort("created_at", -1)
        if is_premium:
            templates = await cursor.to_list(None)
        else:
            limit = FREE_TIER_LIMITS["templates"]
            templates = await cursor.limit(limit).to_list(limit)

        return {"templates": templates, "isPremium": is_premium, "limited": not is_premium}

    async def create_template(
        self,
        admin_id: str,
        title: Optional[str],
        editor_json: Union[None, str, dict, list],
        category: Optional[str],
        tags: Union[None, str, List[str]],
        thumbnail: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if not title or not editor_json or not thumbnail or not thumbnail.get("content"):
            raise ValidationError("All fields are required")
        processed = normalize_editor_json(editor_json)

        try:
            asset = await upload_image(
                thumbnail["content"],
                thumbnail.get("filename"),
                thumbnail.get("content_type"),
                THUMBNAIL_FOLDER,
                uploaded_by=admin_id,
            )
        except ValueError as e:
            raise ValidationError(str(e))

        try:
            template = Template(
                title=title,
                editor_json=processed,
                thumbnail=asset,
                category=category or "General",
                tags=parse_tags(tags) or [],
            )
        except ValueError:
            await delete_asset(asset)
            raise
        doc = template.model_dump()
        db = self._get_db()
        await db.templates.insert_one(doc)
        doc.pop("_id", None)

        logger.info(f"Template created: {template.template_id} by {admin_id}")
        return doc

    async def update_template(
        self,
        template_id: str,
        admin_id: str,
        title: Optional[str] = None,
        editor_json: Union[None, str, dict, list] = None,
        category: Optional[str] = None,
        tags: Union[None, str, List[str]] = None,
        thumbnail: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        template = await self.get_template(template_id)

        updates: Dict[str, Any] = {"updated_at": utcnow()}
        if title:
            updates["title"] = title
        if editor_json:
            updates["editor_json"] = normalize_editor_json(editor_json)
        if category:
            updates["category"] = category
        parsed_tags = parse_tags(tags)
        if parsed_tags:
            updates["tags"] = parsed_tags

        # Re-validate the merged document before touching storage
        Template(**{**template, **updates})

        if thumbnail and thumbnail.get("content"):
            try:
                new_asset = await upload_image(
                    thumbnail["content"],
                    thumbnail.get("filename"),
                    thumbnail.get("content_type"),
                    THUMBNAIL_FOLDER,
                    uploaded_by=admin_id,
                )
            except ValueError as e:
                raise ValidationError(str(e))
            await delete_asset(template.get("thumbnail"))
            updates["thumbnail"] = new_asset

        db = self._get_db()
        await db.templates.update_one({"template_id": template_id}, {"$set": updates})
        template.update(updates)
        return template

    async def delete_template(self, template_id: str):
        template = await self.get_template(template_id)
        await delete_asset(template.get("thumbnail"))

        db = self._get_db()
        await db.templates.delete_one({"template_id": template_id})
        await db.favorites.delete_many({"template_id": template_id})
        logger.info(f"Template deleted: {template_id}")


template_service = TemplateService()
