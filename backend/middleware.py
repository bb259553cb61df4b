from fastapi import Request, Response
from typing import Optional
import logging
import os
from auth import decode_access_token, COOKIE_MAX_AGE_SECONDS
from errors import AuthenticationError, PermissionDeniedError
from models import UserRole
from database import database
from services.api_key_service import api_key_service

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
API_KEY_HEADER = "X-API-Key"


def get_access_token(request: Request) -> Optional[str]:
    """Access token from the cookie, falling back to a Bearer header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


async def get_session_user(request: Request) -> Optional[dict]:
    """Resolve the user behind a valid JWT access token."""
    token = get_access_token(request)
    if not token:
        return None

    payload = decode_access_token(token)
    if not payload:
        return None

    db = database.get_db()
    return await db.users.find_one({"user_id": payload.get("sub")}, {"_id": 0})


async def get_current_user(request: Request) -> Optional[dict]:
    """Optional authentication: API key first, then JWT. Never raises."""
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        return await api_key_service.authenticate(api_key)
    return await get_session_user(request)


async def require_auth(request: Request) -> dict:
    """Require an API key or a JWT session."""
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        user = await api_key_service.authenticate(api_key)
        if not user:
            raise AuthenticationError("Invalid or inactive API key")
        request.state.auth_method = "api_key"
        return user

    user = await require_session(request)
    request.state.auth_method = "jwt"
    return user


async def require_session(request: Request) -> dict:
    """Require a JWT session; API keys are not accepted."""
    if not get_access_token(request):
        raise AuthenticationError("Unauthorized request")
    user = await get_session_user(request)
    if not user:
        raise AuthenticationError("Invalid or expired access token")
    return user


async def require_admin(request: Request) -> dict:
    """Require admin role."""
    user = await require_session(request)
    if user.get("role") != UserRole.ADMIN.value:
        logger.warning(f"Admin route denied for {user['user_id']}: {request.url.path}")
        raise PermissionDeniedError(f"Role: {user.get('role')} is not allowed to access this resource")
    return user


def cookie_options() -> dict:
    secure = (os.getenv("ENVIRONMENT") or "").lower() in ("production", "prod")
    return {
        "httponly": True,
        "secure": secure,
        "samesite": "lax",
        "max_age": COOKIE_MAX_AGE_SECONDS,
    }


def set_auth_cookies(response: Response, access_token: str, refresh_token: str):
    options = cookie_options()
    response.set_cookie(ACCESS_COOKIE, access_token, **options)
    response.set_cookie(REFRESH_COOKIE, refresh_token, **options)


def clear_auth_cookies(response: Response):
    options = cookie_options()
    options.pop("max_age")
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
