"""Per-user analytics."""
from fastapi import APIRouter, Depends

from middleware import require_auth
from services.analytics_service import analytics_service

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


@router.get("/user")
async def user_analytics(current_user: dict = Depends(require_auth)):
    analytics = await analytics_service.user_analytics(current_user["user_id"])
    return {"success": True, "message": "Analytics fetched successfully", "analytics": analytics}
