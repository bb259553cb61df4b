"""
Template Routes

Listing is open to anonymous visitors; signed-in premium users see the
full catalogue. Authoring is admin only.
"""
from fastapi import APIRouter, Depends, Form, File, UploadFile, Query
from typing import Optional
import logging

from middleware import get_current_user, require_admin
from services.template_service import template_service
from services.storage_adapter import read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/templates", tags=["Templates"])


@router.get("/")
async def list_templates(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    current_user: Optional[dict] = Depends(get_current_user),
):
    result = await template_service.list_templates(current_user, search, category, tags)
    return {"success": True, "message": "Templates fetched successfully", **result}


@router.get("/{template_id}")
async def get_template(template_id: str):
    template = await template_service.get_template(template_id)
    return {"success": True, "message": "Template fetched successfully", "template": template}


@router.post("/create", status_code=201)
async def create_template(
    title: Optional[str] = Form(None),
    editor_json: Optional[str] = Form(None, alias="editorJson"),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    admin: dict = Depends(require_admin),
):
    template = await template_service.create_template(
        admin["user_id"],
        title=title,
        editor_json=editor_json,
        category=category,
        tags=tags,
        thumbnail=await read_upload(thumbnail),
    )
    return {"success": True, "message": "Template created successfully", "template": template}


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    title: Optional[str] = Form(None),
    editor_json: Optional[str] = Form(None, alias="editorJson"),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    admin: dict = Depends(require_admin),
):
    template = await template_service.update_template(
        template_id,
        admin["user_id"],
        title=title,
        editor_json=editor_json,
        category=category,
        tags=tags,
        thumbnail=await read_upload(thumbnail),
    )
    return {"success": True, "message": "Template updated successfully", "template": template}


@router.delete("/{template_id}")
async def delete_template(template_id: str, admin: dict = Depends(require_admin)):
    await template_service.delete_template(template_id)
    return {"success": True, "message": "Template deleted successfully"}
