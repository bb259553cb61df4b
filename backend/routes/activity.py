"""Activity log routes."""
from fastapi import APIRouter, Depends, Query
from typing import Optional
import logging

from middleware import require_auth, require_admin
from services.activity_service import activity_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/activity", tags=["Activity"])


@router.get("/my")
async def my_activity(
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(require_auth),
):
    activities = await activity_service.get_user_activities(current_user["user_id"], limit)
    return {"success": True, "message": "Activities fetched successfully", "activities": activities}


@router.get("/all")
async def all_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    action: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    admin: dict = Depends(require_admin),
):
    result = await activity_service.get_all_activities(page, limit, action, user_id)
    return {"success": True, "message": "Activities fetched successfully", **result}


@router.delete("/clear/{user_id}")
async def clear_activity(user_id: str, admin: dict = Depends(require_admin)):
    deleted = await activity_service.clear_user_activities(user_id)
    logger.info(f"Admin {admin['user_id']} cleared {deleted} activities of {user_id}")
    return {"success": True, "message": f"Cleared {deleted} activities", "deletedCount": deleted}
