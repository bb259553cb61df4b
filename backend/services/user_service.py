"""User Service

Accounts, credentials, one-time codes and profile management. Tokens are
issued here; routes only move them into cookies and response bodies.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple
from urllib.parse import urlparse
import asyncio
import logging

from pymongo.errors import DuplicateKeyError

from database import database
from auth import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_secure_token,
    generate_verification_code,
    hash_token,
    validate_password_strength,
    VERIFICATION_CODE_TTL,
    RESET_TOKEN_TTL,
)
from errors import (
    ValidationError,
    AuthenticationError,
    NotFoundError,
    ConflictError,
    RateLimitError,
)
from models.user import User, UserCreate, ProfileUpdate, SOCIAL_PLATFORMS
from models.billing import ActivityAction
from services.activity_service import activity_service
from services.api_key_service import api_key_service
from services.design_service import design_service
from services.email_service import email_service
from services.storage_adapter import upload_image, delete_asset
from services.team_service import team_service
from utils.dates import utcnow, parse_dt
from utils.public_app_url import frontend_link
from utils.rate_limiter import rate_limiter

logger = logging.getLogger(__name__)

AVATAR_FOLDER = "avatars"
VERIFICATION_MAX_ATTEMPTS = 5

SOCIAL_DOMAINS = {
    "youtube": ("youtube.com", "youtu.be"),
    "instagram": ("instagram.com",),
    "facebook": ("facebook.com", "fb.com"),
    "twitter": ("twitter.com", "x.com"),
    "github": ("github.com",),
}


def validate_social_links(links: Dict[str, str]) -> Dict[str, str]:
    """
    Every non-empty link must be a full https URL; platform links must point
    at that platform's domain. Unknown platforms are rejected.
    """
    cleaned = {}
    for platform, url in (links or {}).items():
        if platform not in SOCIAL_PLATFORMS:
            raise ValidationError(f"Unknown social platform: {platform}")
        url = (url or "").strip()
        if not url:
            cleaned[platform] = ""
            continue
        parsed = urlparse(url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValidationError(f"{platform.capitalize()} link must be a full https URL")
        host = parsed.netloc.lower().split(":")[0]
        allowed = SOCIAL_DOMAINS.get(platform)
        if allowed and not any(host == d or host.endswith("." + d) for d in allowed):
            raise ValidationError(f"{platform.capitalize()} link must be a {allowed[0]} URL")
        cleaned[platform] = url
    return cleaned


def token_claims(user: Dict[str, Any]) -> Dict[str, Any]:
    return {"sub": user["user_id"], "email": user["email"], "full_name": user.get("full_name")}


class UserService:
    """Service for accounts and authentication."""

    def _get_db(self):
        return database.get_db()

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        db = self._get_db()
        user = await db.users.find_one({"user_id": user_id}, {"_id": 0})
        if not user:
            raise NotFoundError("User not found")
        return user

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        db = self._get_db()
        return await db.users.find_one({"email": email.strip().lower()}, {"_id": 0})

    async def issue_tokens(self, user: Dict[str, Any]) -> Tuple[str, str]:
        """New access/refresh pair; only the refresh token's hash is stored."""
        access_token = create_access_token(token_claims(user))
        refresh_token = create_refresh_token(user["user_id"])
        db = self._get_db()
        await db.users.update_one(
            {"user_id": user["user_id"]},
            {"$set": {"refresh_token_hash": hash_token(refresh_token), "last_login_at": utcnow()}}
        )
        return access_token, refresh_token

    # =========================================================================
    # Registration and sessions
    # =========================================================================

    async def register(self, data: UserCreate, request=None) -> Dict[str, Any]:
        valid, message = validate_password_strength(data.password)
        if not valid:
            raise ValidationError(message)

        db = self._get_db()
        email = data.email.strip().lower()
        if await db.users.find_one({"email": email}, {"_id": 0, "user_id": 1}):
            raise ConflictError("User with this email already exists")
        if await db.users.find_one({"phone": data.phone}, {"_id": 0, "user_id": 1}):
            raise ConflictError("User with this phone number already exists")

        user = User(
            full_name=data.full_name.strip(),
            email=email,
            phone=data.phone,
            gender=data.gender,
            password_hash=hash_password(data.password),
        )
        doc = user.model_dump()
        try:
            await db.users.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("User with this email or phone already exists")
        doc.pop("_id", None)

        await activity_service.log(user.user_id, ActivityAction.REGISTER, "Registered a new account", request)
        asyncio.create_task(email_service.send_welcome_email(
            recipient=user.email,
            full_name=user.full_name,
            user_id=user.user_id,
            dashboard_link=frontend_link("dashboard"),
        ))
        logger.info(f"User registered: {user.user_id}")
        return doc

    async def login(self, email: str, password: str, request=None) -> Tuple[Dict[str, Any], str, str]:
        user = await self.get_by_email(email)
        if not user or not user.get("password_hash") or not verify_password(password, user["password_hash"]):
            raise AuthenticationError("Invalid email or password")

        access_token, refresh_token = await self.issue_tokens(user)
        await activity_service.log(user["user_id"], ActivityAction.LOGIN, "Logged in", request)
        return user, access_token, refresh_token

    async def logout(self, user_id: str, request=None):
        db = self._get_db()
        await db.users.update_one({"user_id": user_id}, {"$set": {"refresh_token_hash": None}})
        await activity_service.log(user_id, ActivityAction.LOGOUT, "Logged out", request)

    async def refresh(self, refresh_token: Optional[str]) -> Tuple[Dict[str, Any], str, str]:
        """Rotate the refresh token; the presented one must match the stored hash."""
        if not refresh_token:
            raise AuthenticationError("Refresh token is required")
        payload = decode_refresh_token(refresh_token)
        if not payload:
            raise AuthenticationError("Invalid or expired refresh token")

        db = self._get_db()
        user = await db.users.find_one({"user_id": payload["sub"]}, {"_id": 0})
        if not user or user.get("refresh_token_hash") != hash_token(refresh_token):
            raise AuthenticationError("Refresh token is expired or used")

        access_token, new_refresh = await self.issue_tokens(user)
        return user, access_token, new_refresh

    # =========================================================================
    # Email verification
    # =========================================================================

    async def send_verification_code(self, user: Dict[str, Any]):
        if user.get("is_verified"):
            raise ValidationError("Email is already verified")
        allowed, error = await rate_limiter.check_rate_limit(f"otp:{user['user_id']}", 3, 15)
        if not allowed:
            raise RateLimitError(error)

        code = generate_verification_code()
        db = self._get_db()
        await db.users.update_one(
            {"user_id": user["user_id"]},
            {"$set": {
                "verification_code_hash": hash_token(code),
                "verification_code_expires_at": utcnow() + VERIFICATION_CODE_TTL,
                "verification_attempts": 0,
            }}
        )
        asyncio.create_task(email_service.send_verification_code_email(
            recipient=user["email"],
            full_name=user.get("full_name", ""),
            user_id=user["user_id"],
            code=code,
        ))

    async def verify_code(self, user_id: str, otp: Optional[str]) -> Dict[str, Any]:
        if not otp:
            raise ValidationError("OTP is required")
        user = await self.get_user(user_id)

        expires_at = parse_dt(user.get("verification_code_expires_at"))
        if not user.get("verification_code_hash") or not expires_at:
            raise ValidationError("No verification code requested")
        if expires_at < datetime.now(timezone.utc):
            raise ValidationError("OTP has expired")
        if user.get("verification_attempts", 0) >= VERIFICATION_MAX_ATTEMPTS:
            logger.warning(f"Verification locked for {user_id}")
            raise RateLimitError("Too many incorrect attempts. Request a new code")

        db = self._get_db()
        if user["verification_code_hash"] != hash_token(otp.strip()):
            await db.users.update_one(
                {"user_id": user_id},
                {"$inc": {"verification_attempts": 1}}
            )
            raise ValidationError("Invalid OTP")

        await db.users.update_one(
            {"user_id": user_id},
            {"$set": {
                "is_verified": True,
                "verification_code_hash": None,
                "verification_code_expires_at": None,
                "verification_attempts": 0,
                "updated_at": utcnow(),
            }}
        )
        user["is_verified"] = True
        return user

    # =========================================================================
    # Passwords
    # =========================================================================

    async def forgot_password(self, email: str):
        """Emails a reset link. Unknown emails get the same outward behavior."""
        allowed, error = await rate_limiter.check_rate_limit(f"reset:{email.lower()}", 3, 15)
        if not allowed:
            raise RateLimitError(error)

        user = await self.get_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return

        token = generate_secure_token(20)
        db = self._get_db()
        await db.users.update_one(
            {"user_id": user["user_id"]},
            {"$set": {
                "reset_token_hash": hash_token(token),
                "reset_token_expires_at": utcnow() + RESET_TOKEN_TTL,
            }}
        )
        asyncio.create_task(email_service.send_password_reset_email(
            recipient=user["email"],
            full_name=user.get("full_name", ""),
            user_id=user["user_id"],
            reset_link=frontend_link(f"password/reset/{token}"),
        ))

    async def reset_password(self, token: str, password: str):
        valid, message = validate_password_strength(password)
        if not valid:
            raise ValidationError(message)

        db = self._get_db()
        user = await db.users.find_one(
            {"reset_token_hash": hash_token(token), "reset_token_expires_at": {"$gt": utcnow()}},
            {"_id": 0}
        )
        if not user:
            raise ValidationError("Reset password token is invalid or has expired")

        await db.users.update_one(
            {"user_id": user["user_id"]},
            {"$set": {
                "password_hash": hash_password(password),
                "reset_token_hash": None,
                "reset_token_expires_at": None,
                "refresh_token_hash": None,
                "updated_at": utcnow(),
            }}
        )
        logger.info(f"Password reset for {user['user_id']}")

    async def update_password(self, user_id: str, current_password: str, new_password: str):
        user = await self.get_user(user_id)
        if not user.get("password_hash") or not verify_password(current_password, user["password_hash"]):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password")
        valid, message = validate_password_strength(new_password)
        if not valid:
            raise ValidationError(message)

        db = self._get_db()
        await db.users.update_one(
            {"user_id": user_id},
            {"$set": {"password_hash": hash_password(new_password), "updated_at": utcnow()}}
        )

    # =========================================================================
    # Profile
    # =========================================================================

    async def update_profile(self, user_id: str, data: ProfileUpdate, request=None) -> Dict[str, Any]:
        user = await self.get_user(user_id)
        db = self._get_db()

        email = data.email.strip().lower()
        if email != user["email"] and await db.users.find_one({"email": email, "user_id": {"$ne": user_id}}, {"_id": 0, "user_id": 1}):
            raise ConflictError("Email is already in use")
        if data.phone and await db.users.find_one({"phone": data.phone, "user_id": {"$ne": user_id}}, {"_id": 0, "user_id": 1}):
            raise ConflictError("Phone number is already in use")

        social_links = {**(user.get("social_links") or {}), **validate_social_links(data.social_links)}
        updates = {
            "full_name": data.full_name.strip(),
            "email": email,
            "social_links": social_links,
            "updated_at": utcnow(),
        }
        if data.phone:
            updates["phone"] = data.phone
        if data.gender:
            updates["gender"] = data.gender
        if email != user["email"]:
            updates["is_verified"] = False

        await db.users.update_one({"user_id": user_id}, {"$set": updates})
        user.update(updates)
        await activity_service.log(user_id, ActivityAction.UPDATE, "Updated profile", request)
        return user

    async def update_avatar(self, user_id: str, content: Optional[bytes], filename: Optional[str], content_type: Optional[str]) -> Dict[str, Any]:
        if not content:
            raise ValidationError("Avatar is required")
        user = await self.get_user(user_id)
        try:
            asset = await upload_image(content, filename, content_type, AVATAR_FOLDER, uploaded_by=user_id)
        except ValueError as e:
            raise ValidationError(str(e))
        await delete_asset(user.get("avatar"))

        db = self._get_db()
        await db.users.update_one({"user_id": user_id}, {"$set": {"avatar": asset, "updated_at": utcnow()}})
        user["avatar"] = asset
        return user

    async def delete_account(self, user_id: str):
        """Remove a user and everything they own."""
        user = await self.get_user(user_id)
        db = self._get_db()

        await delete_asset(user.get("avatar"))
        await design_service.delete_user_designs(user_id)
        await db.favorites.delete_many({"user_id": user_id})
        await api_key_service.delete_user_keys(user_id)

        owned = await db.teams.find({"owner_id": user_id}, {"_id": 0, "team_id": 1}).to_list(None)
        for team in owned:
            await team_service.delete_team(team["team_id"], user_id)
        await db.teams.update_many(
            {"members.user_id": user_id},
            {"$pull": {"members": {"user_id": user_id}}}
        )

        await db.activity_logs.delete_many({"user_id": user_id})
        await db.users.delete_one({"user_id": user_id})
        logger.info(f"Account deleted: {user_id}")

    # =========================================================================
    # Google sign-in
    # =========================================================================

    async def find_or_create_google_user(self, google_id: str, email: str, full_name: str, picture: Optional[str] = None) -> Dict[str, Any]:
        """Link by google_id, then by email; otherwise create a verified account."""
        db = self._get_db()
        email = email.strip().lower()

        user = await db.users.find_one({"google_id": google_id}, {"_id": 0})
        if user:
            return user

        user = await db.users.find_one({"email": email}, {"_id": 0})
        if user:
            await db.users.update_one(
                {"user_id": user["user_id"]},
                {"$set": {"google_id": google_id, "is_verified": True, "updated_at": utcnow()}}
            )
            user.update({"google_id": google_id, "is_verified": True})
            return user

        name = (full_name or email.split("@")[0]).strip()
        if len(name) < 4:
            name = name.ljust(4, "_")
        new_user = User(
            full_name=name[:100],
            email=email,
            google_id=google_id,
            is_verified=True,
            avatar={"file_id": None, "secure_url": picture},
        )
        doc = new_user.model_dump()
        await db.users.insert_one(doc)
        doc.pop("_id", None)
        await activity_service.log(new_user.user_id, ActivityAction.REGISTER, "Registered with Google", None)
        logger.info(f"User registered via Google: {new_user.user_id}")
        return doc


user_service = UserService()
