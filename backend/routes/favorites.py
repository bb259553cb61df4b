"""Favorite template routes."""
from fastapi import APIRouter, Depends

from middleware import require_auth
from models.design import FavoriteCreate
from services.favorite_service import favorite_service

router = APIRouter(prefix="/api/v1/favorites", tags=["Favorites"])


@router.post("/", status_code=201)
async def add_favorite(data: FavoriteCreate, current_user: dict = Depends(require_auth)):
    favorite = await favorite_service.add_favorite(current_user["user_id"], data.template_id)
    return {"success": True, "message": "Template added to favorites", "favorite": favorite}


@router.get("/")
async def list_favorites(current_user: dict = Depends(require_auth)):
    templates = await favorite_service.list_favorites(current_user["user_id"])
    return {"success": True, "message": "Favorites fetched successfully", "favorites": templates}


@router.get("/check/{template_id}")
async def check_favorite(template_id: str, current_user: dict = Depends(require_auth)):
    is_favorite = await favorite_service.is_favorited(current_user["user_id"], template_id)
    return {"success": True, "isFavorited": is_favorite}


@router.delete("/{template_id}")
async def remove_favorite(template_id: str, current_user: dict = Depends(require_auth)):
    await favorite_service.remove_favorite(current_user["user_id"], template_id)
    return {"success": True, "message": "Template removed from favorites"}
