"""
Design Routes - saved canvas designs with hosted thumbnails.

Create and update take multipart form data: the editor state travels as
a JSON string field, the thumbnail as an image file.
"""
from fastapi import APIRouter, Depends, Request, Form, File, UploadFile, Query
from typing import Optional
import logging

from middleware import require_auth
from models.design import ShareDesignRequest, VisibilityUpdate
from services.design_service import design_service
from services.storage_adapter import read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/designs", tags=["Designs"])


@router.post("/", status_code=201)
async def create_design(
    request: Request,
    title: Optional[str] = Form(None),
    editor_json: Optional[str] = Form(None, alias="editorJson"),
    tags: Optional[str] = Form(None),
    template_id: Optional[str] = Form(None, alias="templateId"),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: dict = Depends(require_auth),
):
    design = await design_service.create_design(
        current_user,
        title=title,
        editor_json=editor_json,
        tags=tags,
        thumbnail=await read_upload(thumbnail),
        template_id=template_id,
        request=request,
    )
    return {"success": True, "message": "Design saved successfully", "design": design}


@router.get("/")
async def list_designs(
    search: Optional[str] = Query(None),
    current_user: dict = Depends(require_auth),
):
    designs = await design_service.list_designs(current_user, search)
    return {"success": True, "message": "Designs fetched successfully", "designs": designs}


@router.get("/team/{team_id}")
async def list_team_designs(team_id: str, current_user: dict = Depends(require_auth)):
    designs = await design_service.list_team_designs(team_id, current_user)
    return {"success": True, "message": "Team designs fetched successfully", "designs": designs}


@router.get("/{design_id}")
async def get_design(design_id: str, current_user: dict = Depends(require_auth)):
    design = await design_service.get_design(design_id, current_user)
    return {"success": True, "message": "Design fetched successfully", "design": design}


@router.put("/{design_id}")
async def update_design(
    design_id: str,
    request: Request,
    title: Optional[str] = Form(None),
    editor_json: Optional[str] = Form(None, alias="editorJson"),
    tags: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: dict = Depends(require_auth),
):
    design = await design_service.update_design(
        design_id,
        current_user,
        title=title,
        editor_json=editor_json,
        tags=tags,
        thumbnail=await read_upload(thumbnail),
        request=request,
    )
    return {"success": True, "message": "Design updated successfully", "design": design}


@router.delete("/{design_id}")
async def delete_design(design_id: str, request: Request, current_user: dict = Depends(require_auth)):
    await design_service.delete_design(design_id, current_user, request)
    return {"success": True, "message": "Design deleted successfully"}


@router.post("/{design_id}/share")
async def share_design(
    design_id: str,
    data: ShareDesignRequest,
    request: Request,
    current_user: dict = Depends(require_auth),
):
    design = await design_service.share_with_team(design_id, current_user, data.team_id, request)
    return {"success": True, "message": "Design shared with team", "design": design}


@router.patch("/{design_id}/visibility")
async def update_visibility(
    design_id: str,
    data: VisibilityUpdate,
    request: Request,
    current_user: dict = Depends(require_auth),
):
    design = await design_service.update_visibility(
        design_id, current_user, data.visibility, data.shared_with, request
    )
    return {"success": True, "message": "Visibility updated", "design": design}
