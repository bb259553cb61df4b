"""AI design assistance routes (metered for free-tier users)."""
from fastapi import APIRouter, Depends, Request, File, UploadFile
from pydantic import BaseModel
from typing import Optional

from middleware import require_auth
from services.ai_service import ai_service
from services.storage_adapter import read_upload

router = APIRouter(prefix="/api/v1/ai", tags=["AI"])


class SuggestionRequest(BaseModel):
    prompt: Optional[str] = None


@router.post("/suggestions")
async def design_suggestions(data: SuggestionRequest, request: Request, current_user: dict = Depends(require_auth)):
    suggestions = await ai_service.design_suggestions(current_user, data.prompt, request)
    return {"success": True, "message": "Design suggestions generated", "suggestions": suggestions}


@router.post("/palette")
async def extract_palette(
    request: Request,
    image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(require_auth),
):
    upload = await read_upload(image) or {}
    palette = await ai_service.extract_palette(
        current_user,
        upload.get("content"),
        upload.get("content_type"),
        request,
    )
    return {"success": True, "message": "Color palette extracted", "palette": palette}
