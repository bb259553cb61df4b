"""
Admin Routes - user management, platform stats and payment history.

All endpoints require an admin JWT session.
"""
from fastapi import APIRouter, Depends, Query, File, UploadFile
from typing import Optional
import logging

from middleware import require_admin
from models.user import ProfileUpdate, RoleUpdate
from services.admin_service import admin_service
from services.analytics_service import analytics_service
from services.payment_service import payment_service
from services.storage_adapter import read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    admin: dict = Depends(require_admin),
):
    result = await admin_service.list_users(page, limit, search, role)
    return {"success": True, "message": "Users fetched successfully", **result}


@router.get("/users/{user_id}")
async def get_user(user_id: str, admin: dict = Depends(require_admin)):
    user = await admin_service.get_user(user_id)
    return {"success": True, "message": "User fetched successfully", "user": user}


@router.put("/users/{user_id}/profile")
async def update_user_profile(user_id: str, data: ProfileUpdate, admin: dict = Depends(require_admin)):
    user = await admin_service.update_user_profile(user_id, data)
    return {"success": True, "message": "User profile updated successfully", "user": user}


@router.put("/users/{user_id}/avatar")
async def update_user_avatar(
    user_id: str,
    avatar: Optional[UploadFile] = File(None),
    admin: dict = Depends(require_admin),
):
    upload = await read_upload(avatar) or {}
    user = await admin_service.update_user_avatar(
        user_id,
        upload.get("content"),
        upload.get("filename"),
        upload.get("content_type"),
    )
    return {"success": True, "message": "User avatar updated successfully", "user": user}


@router.put("/users/{user_id}/role")
async def change_role(user_id: str, data: RoleUpdate, admin: dict = Depends(require_admin)):
    user = await admin_service.change_role(admin["user_id"], user_id, data.role)
    return {"success": True, "message": "User role updated successfully", "user": user}


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, admin: dict = Depends(require_admin)):
    await admin_service.delete_user(admin["user_id"], user_id)
    return {"success": True, "message": "User deleted successfully"}


@router.get("/stats")
async def platform_stats(admin: dict = Depends(require_admin)):
    stats = await analytics_service.admin_stats()
    return {"success": True, "message": "Stats fetched successfully", "stats": stats}


@router.get("/payments")
async def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[str] = Query(None),
    admin: dict = Depends(require_admin),
):
    result = await payment_service.list_payments(page, limit, status)
    return {"success": True, "message": "Payments fetched successfully", **result}
