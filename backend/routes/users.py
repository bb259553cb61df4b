"""User & Auth Routes

Endpoints:
- POST /api/v1/users/register - Register new user
- POST /api/v1/users/login - Login (sets accessToken/refreshToken cookies)
- POST /api/v1/users/logout - Logout
- POST /api/v1/users/refresh-token - Rotate tokens
- GET  /api/v1/users/dashboard - Current user
- POST /api/v1/users/otp/send, /otp/verify - Email verification
- POST /api/v1/users/password/reset - Email a reset link
- POST /api/v1/users/reset-password/{token} - Set a new password
- POST /api/v1/users/password/update - Change password
- POST /api/v1/users/profile/update, /profile/avatar/update
- DELETE /api/v1/users/profile/delete
"""

from fastapi import APIRouter, Depends, Request, Response, UploadFile, File, Body
from typing import Optional
import logging

from middleware import require_auth, require_session, set_auth_cookies, clear_auth_cookies, REFRESH_COOKIE
from models.user import (
    UserCreate,
    UserLogin,
    ProfileUpdate,
    PasswordUpdate,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    OtpVerifyRequest,
    public_user,
)
from services.user_service import user_service
from services.storage_adapter import read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.post("/register", status_code=201)
async def register(data: UserCreate, request: Request, response: Response):
    """Register and sign in a new user."""
    user = await user_service.register(data, request)
    access_token, refresh_token = await user_service.issue_tokens(user)
    set_auth_cookies(response, access_token, refresh_token)
    return {
        "success": True,
        "message": "User registered successfully",
        "user": public_user(user),
        "accessToken": access_token,
        "refreshToken": refresh_token,
    }


@router.post("/login")
async def login(data: UserLogin, request: Request, response: Response):
    user, access_token, refresh_token = await user_service.login(data.email, data.password, request)
    set_auth_cookies(response, access_token, refresh_token)
    return {
        "success": True,
        "message": "User logged in successfully",
        "user": public_user(user),
        "accessToken": access_token,
        "refreshToken": refresh_token,
    }


@router.post("/logout")
async def logout(request: Request, response: Response, current_user: dict = Depends(require_session)):
    await user_service.logout(current_user["user_id"], request)
    clear_auth_cookies(response)
    return {"success": True, "message": "User logged out successfully"}


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[dict] = Body(default=None),
):
    """Refresh token from the cookie or the request body."""
    token = request.cookies.get(REFRESH_COOKIE) or (body or {}).get("refreshToken")
    user, access_token, new_refresh = await user_service.refresh(token)
    set_auth_cookies(response, access_token, new_refresh)
    return {
        "success": True,
        "message": "Access token refreshed",
        "accessToken": access_token,
        "refreshToken": new_refresh,
    }


@router.get("/dashboard")
async def dashboard(current_user: dict = Depends(require_auth)):
    return {"success": True, "message": "User fetched successfully", "user": public_user(current_user)}


# ============================================================================
# Email verification
# ============================================================================

@router.post("/otp/send")
async def send_otp(current_user: dict = Depends(require_session)):
    await user_service.send_verification_code(current_user)
    return {"success": True, "message": f"Verification code sent to {current_user['email']}"}


@router.post("/otp/verify")
async def verify_otp(data: OtpVerifyRequest, current_user: dict = Depends(require_session)):
    user = await user_service.verify_code(current_user["user_id"], data.otp)
    return {"success": True, "message": "Email verified successfully", "user": public_user(user)}


# ============================================================================
# Passwords
# ============================================================================

@router.post("/password/reset")
async def forgot_password(data: ForgotPasswordRequest):
    await user_service.forgot_password(data.email)
    return {"success": True, "message": "If that email is registered, a reset link has been sent"}


@router.post("/reset-password/{token}")
async def reset_password(token: str, data: ResetPasswordRequest):
    await user_service.reset_password(token, data.password)
    return {"success": True, "message": "Password reset successfully. Please log in."}


@router.post("/password/update")
async def update_password(data: PasswordUpdate, current_user: dict = Depends(require_session)):
    await user_service.update_password(current_user["user_id"], data.current_password, data.new_password)
    return {"success": True, "message": "Password updated successfully"}


# ============================================================================
# Profile
# ============================================================================

@router.post("/profile/update")
async def update_profile(data: ProfileUpdate, request: Request, current_user: dict = Depends(require_session)):
    user = await user_service.update_profile(current_user["user_id"], data, request)
    return {"success": True, "message": "Profile updated successfully", "user": public_user(user)}


@router.post("/profile/avatar/update")
async def update_avatar(avatar: Optional[UploadFile] = File(None), current_user: dict = Depends(require_session)):
    upload = await read_upload(avatar) or {}
    user = await user_service.update_avatar(
        current_user["user_id"],
        upload.get("content"),
        upload.get("filename"),
        upload.get("content_type"),
    )
    return {"success": True, "message": "Avatar updated successfully", "user": public_user(user)}


@router.delete("/profile/delete")
async def delete_account(response: Response, current_user: dict = Depends(require_session)):
    await user_service.delete_account(current_user["user_id"])
    clear_auth_cookies(response)
    return {"success": True, "message": "Account deleted successfully"}
