"""
Hosted assets: editor image uploads and public file serving from GridFS.
"""
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from typing import Optional
import logging

from errors import ValidationError, NotFoundError
from middleware import require_auth
from services.storage_adapter import storage_adapter, upload_image, read_upload, AssetNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Files"])

EDITOR_IMAGE_FOLDER = "editor-images"

# Stored bytes are user supplied; never let the browser run or re-sniff them
ASSET_HEADERS = {
    "Cache-Control": "public, max-age=31536000, immutable",
    "Content-Security-Policy": "default-src 'none'; sandbox",
    "X-Content-Type-Options": "nosniff",
}


@router.post("/images/upload", status_code=201)
async def upload_editor_image(
    image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(require_auth),
):
    upload = await read_upload(image)
    if not upload:
        raise ValidationError("Image is required")
    try:
        asset = await upload_image(
            upload["content"],
            upload["filename"],
            upload["content_type"],
            EDITOR_IMAGE_FOLDER,
            uploaded_by=current_user["user_id"],
        )
    except ValueError as e:
        raise ValidationError(str(e))
    return {"success": True, "message": "Image uploaded successfully", "image": asset}


@router.get("/files/{file_id}")
async def get_file(file_id: str):
    try:
        content, meta = await storage_adapter.download_file(file_id)
    except AssetNotFoundError:
        raise NotFoundError("File not found")
    return Response(
        content=content,
        media_type=meta.content_type,
        headers=ASSET_HEADERS,
    )
