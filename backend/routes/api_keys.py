"""API key management. Session only: a key cannot mint or revoke keys."""
from fastapi import APIRouter, Depends

from middleware import require_session
from models.billing import ApiKeyCreate
from services.api_key_service import api_key_service

router = APIRouter(prefix="/api/v1/api-keys", tags=["API Keys"])


@router.post("/", status_code=201)
async def generate_key(data: ApiKeyCreate, current_user: dict = Depends(require_session)):
    api_key = await api_key_service.generate_key(current_user["user_id"], data.name)
    return {
        "success": True,
        "message": "API key generated. Store it now; it will not be shown again.",
        "apiKey": api_key,
    }


@router.get("/")
async def list_keys(current_user: dict = Depends(require_session)):
    keys = await api_key_service.list_keys(current_user["user_id"])
    return {"success": True, "message": "API keys fetched successfully", "apiKeys": keys}


@router.delete("/{key_id}")
async def delete_key(key_id: str, current_user: dict = Depends(require_session)):
    await api_key_service.delete_key(current_user["user_id"], key_id)
    return {"success": True, "message": "API key deleted successfully"}


@router.patch("/{key_id}")
async def toggle_key(key_id: str, current_user: dict = Depends(require_session)):
    api_key = await api_key_service.toggle_key(current_user["user_id"], key_id)
    state = "activated" if api_key["is_active"] else "deactivated"
    return {"success": True, "message": f"API key {state}", "apiKey": api_key}
