"""Design Service

User-owned editor documents with a hosted thumbnail. A design is visible
to its owner, to everyone when public, and to members of the teams it is
shared with when visibility is `team`.
"""

from typing import Optional, Dict, Any, List, Union
import json
import logging
import re

from database import database
from errors import ValidationError, NotFoundError, PermissionDeniedError
from models.design import Design, Visibility
from models.billing import ActivityAction
from services.activity_service import activity_service
from services.storage_adapter import upload_image, delete_asset
from utils.dates import utcnow

logger = logging.getLogger(__name__)

THUMBNAIL_FOLDER = "thumbnails"


def parse_tags(raw: Union[None, str, List[str]]) -> Optional[List[str]]:
    """Accept a JSON array, a comma separated string or a list; None means not provided."""
    if raw is None:
        return None
    if isinstance(raw, list):
        items = raw
    else:
        raw = raw.strip()
        if raw.startswith("["):
            try:
                items = json.loads(raw)
            except json.JSONDecodeError:
                raise ValidationError("Tags must be a list of strings")
        else:
            items = raw.split(",")
    return [str(t).strip() for t in items if str(t).strip()]


def user_team_ids(user: Dict[str, Any]) -> List[str]:
    return [t["team_id"] for t in user.get("teams", [])]


def can_view(design: Dict[str, Any], user: Dict[str, Any]) -> bool:
    if design["user_id"] == user["user_id"]:
        return True
    if design.get("visibility") == Visibility.PUBLIC.value:
        return True
    if design.get("visibility") == Visibility.TEAM.value:
        teams = set(user_team_ids(user))
        return any(team_id in teams for team_id in design.get("shared_with", []))
    return False


class DesignService:
    """Service for designs."""

    def _get_db(self):
        return database.get_db()

    async def _get_design(self, design_id: str) -> Dict[str, Any]:
        db = self._get_db()
        design = await db.designs.find_one({"design_id": design_id}, {"_id": 0})
        if not design:
            raise NotFoundError("Design not found")
        return design

    async def _get_owned(self, design_id: str, user_id: str, verb: str) -> Dict[str, Any]:
        design = await self._get_design(design_id)
        if design["user_id"] != user_id:
            raise PermissionDeniedError(f"Not authorized to {verb} this design")
        return design

    async def _attach_owners(self, designs: List[Dict[str, Any]], fields: Dict[str, int]) -> List[Dict[str, Any]]:
        db = self._get_db()
        owner_ids = list({d["user_id"] for d in designs})
        owners = await db.users.find({"user_id": {"$in": owner_ids}}, {"_id": 0, "user_id": 1, **fields}).to_list(len(owner_ids) or 1)
        by_id = {o["user_id"]: o for o in owners}
        for design in designs:
            design["owner"] = by_id.get(design["user_id"])
        return designs

    async def create_design(
        self,
        user: Dict[str, Any],
        title: Optional[str],
        editor_json: Optional[str],
        tags: Union[None, str, List[str]],
        thumbnail: Optional[Dict[str, Any]],
        template_id: Optional[str] = None,
        request=None,
    ) -> Dict[str, Any]:
        """
        `thumbnail` is `{content, filename, content_type}` of the uploaded file.
        """
        if not title or not editor_json or not thumbnail or not thumbnail.get("content"):
            raise ValidationError("All fields are required")

        try:
            asset = await upload_image(
                thumbnail["content"],
                thumbnail.get("filename"),
                thumbnail.get("content_type"),
                THUMBNAIL_FOLDER,
                uploaded_by=user["user_id"],
            )
        except ValueError as e:
            raise ValidationError(str(e))

        try:
            design = Design(
                user_id=user["user_id"],
                title=title,
                editor_json=editor_json,
                thumbnail=asset,
                tags=parse_tags(tags) or [],
                template_id=template_id,
            )
        except ValueError:
            await delete_asset(asset)
            raise

        doc = design.model_dump()
        db = self._get_db()
        await db.designs.insert_one(doc)
        doc.pop("_id", None)

        await activity_service.log(user["user_id"], ActivityAction.UPLOAD, f"Created design: {design.title}", request)
        return doc

    async def list_designs(self, user: Dict[str, Any], search: Optional[str] = None) -> List[Dict[str, Any]]:
        """Own, public and team-shared designs, newest update first."""
        query: Dict[str, Any] = {
            "$or": [
                {"user_id": user["user_id"]},
                {"visibility": Visibility.PUBLIC.value},
                {"visibility": Visibility.TEAM.value, "shared_with": {"$in": user_team_ids(user)}},
            ]
        }
        if search:
            pattern = re.escape(search.strip())
            query = {
                "$and": [
                    query,
                    {"$or": [
                        {"title": {"$regex": pattern, "$options": "i"}},
                        {"tags": {"$regex": pattern, "$options": "i"}},
                    ]},
                ]
            }

        db = self._get_db()
        designs = await db.designs.find(query, {"_id": 0}).sort("updated_at", -1).to_list(500)
        return await self._attach_owners(designs, {"full_name": 1})

    async def get_design(self, design_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        design = await self._get_design(design_id)
        if not can_view(design, user):
            raise PermissionDeniedError("Not authorized to view this design")
        return design

    async def update_design(
        self,
        design_id: str,
        user: Dict[str, Any],
        title: Optional[str] = None,
        editor_json: Optional[str] = None,
        tags: Union[None, str, List[str]] = None,
        thumbnail: Optional[Dict[str, Any]] = None,
        request=None,
    ) -> Dict[str, Any]:
        design = await self._get_owned(design_id, user["user_id"], "update")

        updates: Dict[str, Any] = {}
        if title:
            updates["title"] = title
        if editor_json:
            updates["editor_json"] = editor_json
        parsed_tags = parse_tags(tags)
        if parsed_tags is not None:
            updates["tags"] = parsed_tags

        # Re-validate the merged document before touching storage
        merged = Design(**{**design, **updates}).model_dump()

        if thumbnail and thumbnail.get("content"):
            try:
                new_asset = await upload_image(
                    thumbnail["content"],
                    thumbnail.get("filename"),
                    thumbnail.get("content_type"),
                    THUMBNAIL_FOLDER,
                    uploaded_by=user["user_id"],
                )
            except ValueError as e:
                raise ValidationError(str(e))
            await delete_asset(design.get("thumbnail"))
            merged["thumbnail"] = new_asset

        merged["updated_at"] = utcnow()
        db = self._get_db()
        await db.designs.update_one(
            {"design_id": design_id},
            {"$set": {k: merged[k] for k in ("title", "editor_json", "tags", "thumbnail", "updated_at")}}
        )

        await activity_service.log(user["user_id"], ActivityAction.UPDATE, f"Updated design: {merged['title']}", request)
        return merged

    async def delete_design(self, design_id: str, user: Dict[str, Any], request=None):
        """Remove the record and its hosted thumbnail."""
        design = await self._get_owned(design_id, user["user_id"], "delete")

        await delete_asset(design.get("thumbnail"))
        db = self._get_db()
        await db.designs.delete_one({"design_id": design_id})

        await activity_service.log(user["user_id"], ActivityAction.DELETE, f"Deleted design: {design['title']}", request)
        logger.info(f"Design deleted: {design_id}")

    async def share_with_team(self, design_id: str, user: Dict[str, Any], team_id: Optional[str], request=None) -> Dict[str, Any]:
        if not team_id:
            raise ValidationError("Team ID is required")
        design = await self._get_owned(design_id, user["user_id"], "share")
        if team_id not in user_team_ids(user):
            raise PermissionDeniedError("You are not a member of this team")

        if team_id not in design.get("shared_with", []):
            design.setdefault("shared_with", []).append(team_id)
            design["visibility"] = Visibility.TEAM.value
            design["updated_at"] = utcnow()
            db = self._get_db()
            await db.designs.update_one(
                {"design_id": design_id},
                {"$set": {
                    "shared_with": design["shared_with"],
                    "visibility": design["visibility"],
                    "updated_at": design["updated_at"],
                }}
            )
            await activity_service.log(user["user_id"], ActivityAction.SHARE, f"Shared design: {design['title']}", request)
        return design

    async def update_visibility(
        self,
        design_id: str,
        user: Dict[str, Any],
        visibility: Visibility,
        shared_with: Optional[List[str]] = None,
        request=None,
    ) -> Dict[str, Any]:
        design = await self._get_owned(design_id, user["user_id"], "update")

        visibility = Visibility(visibility).value
        design["visibility"] = visibility
        design["shared_with"] = list(shared_with or []) if visibility == Visibility.TEAM.value else []
        design["updated_at"] = utcnow()

        db = self._get_db()
        await db.designs.update_one(
            {"design_id": design_id},
            {"$set": {
                "visibility": design["visibility"],
                "shared_with": design["shared_with"],
                "updated_at": design["updated_at"],
            }}
        )
        await activity_service.log(user["user_id"], ActivityAction.UPDATE, f"Set design {design['title']} to {visibility}", request)
        return design

    async def list_team_designs(self, team_id: str, user: Dict[str, Any]) -> List[Dict[str, Any]]:
        if team_id not in user_team_ids(user):
            raise PermissionDeniedError("You are not a member of this team")
        db = self._get_db()
        designs = await db.designs.find({"shared_with": team_id}, {"_id": 0}).sort("created_at", -1).to_list(500)
        return await self._attach_owners(designs, {"full_name": 1, "email": 1, "avatar": 1})

    async def delete_user_designs(self, user_id: str) -> int:
        """Account removal: every design of a user and their thumbnails."""
        db = self._get_db()
        designs = await db.designs.find({"user_id": user_id}, {"_id": 0, "thumbnail": 1}).to_list(None)
        for design in designs:
            await delete_asset(design.get("thumbnail"))
        result = await db.designs.delete_many({"user_id": user_id})
        return result.deleted_count


design_service = DesignService()
