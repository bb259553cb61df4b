"""User Model

Single user entity with embedded subscription state, monthly usage
counters and team memberships.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from enum import Enum
import re
import uuid


INDIAN_MOBILE_RE = re.compile(r"^[6-9]\d{9}$")

SOCIAL_PLATFORMS = ("youtube", "instagram", "facebook", "twitter", "github", "website")


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class SubscriptionPlan(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class TeamRole(str, Enum):
    """Role as recorded on the user side of a membership."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class Asset(BaseModel):
    """Reference to a hosted binary asset (thumbnail, avatar)."""
    file_id: Optional[str] = None
    secure_url: Optional[str] = None


class UsageLimits(BaseModel):
    """Per-calendar-month counters for metered actions."""
    month: int = Field(default_factory=lambda: datetime.now(timezone.utc).month)
    year: int = Field(default_factory=lambda: datetime.now(timezone.utc).year)
    ai_suggestions: int = 0
    color_palettes: int = 0


class SocialLinks(BaseModel):
    youtube: str = ""
    instagram: str = ""
    facebook: str = ""
    twitter: str = ""
    github: str = ""
    website: str = ""


class UserTeam(BaseModel):
    team_id: str
    role: TeamRole = TeamRole.MEMBER
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class User(BaseModel):
    """Stored user document."""
    user_id: str = Field(default_factory=lambda: f"USR-{uuid.uuid4().hex[:12].upper()}")
    full_name: str = Field(min_length=4, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    gender: str = "not specified"
    password_hash: Optional[str] = None
    google_id: Optional[str] = None
    role: UserRole = UserRole.USER
    avatar: Asset = Field(default_factory=Asset)
    refresh_token_hash: Optional[str] = None
    is_verified: bool = False
    social_links: SocialLinks = Field(default_factory=SocialLinks)

    verification_code_hash: Optional[str] = None
    verification_code_expires_at: Optional[datetime] = None
    verification_attempts: int = 0
    reset_token_hash: Optional[str] = None
    reset_token_expires_at: Optional[datetime] = None

    # Subscription
    is_premium: bool = False
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_end_date: Optional[datetime] = None

    usage_limits: UsageLimits = Field(default_factory=UsageLimits)
    teams: List[UserTeam] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: Optional[datetime] = None

    model_config = {"extra": "ignore", "use_enum_values": True}

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class UserCreate(BaseModel):
    """Registration request"""
    full_name: str = Field(min_length=4, max_length=100)
    email: EmailStr
    phone: str
    password: str = Field(min_length=8)
    gender: str = "not specified"

    model_config = {"extra": "ignore"}

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = str(v).strip()
        if not INDIAN_MOBILE_RE.match(v):
            raise ValueError("Please enter a valid 10-digit Indian mobile number")
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    full_name: str = Field(min_length=4, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    gender: Optional[str] = None
    social_links: Dict[str, str] = Field(default_factory=dict)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v in (None, ""):
            return None
        v = str(v).strip()
        if not INDIAN_MOBILE_RE.match(v):
            raise ValueError("Please enter a valid 10-digit Indian mobile number")
        return v


class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=8)


class OtpVerifyRequest(BaseModel):
    otp: str


class RoleUpdate(BaseModel):
    role: UserRole


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Strip credentials and one-time secrets from a stored user document."""
    hidden = {
        "_id",
        "password_hash",
        "refresh_token_hash",
        "verification_code_hash",
        "verification_code_expires_at",
        "verification_attempts",
        "reset_token_hash",
        "reset_token_expires_at",
    }
    return {k: v for k, v in user.items() if k not in hidden}
