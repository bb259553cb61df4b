"""Payment, API key and activity log models"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


# ============================================================================
# Payments
# ============================================================================

class PaymentStatus(str, Enum):
    CREATED = "created"
    VERIFIED = "verified"
    FAILED = "failed"


class Payment(BaseModel):
    payment_id: str = Field(default_factory=lambda: f"PAY-{uuid.uuid4().hex[:12].upper()}")
    user_id: str
    order_id: str
    gateway_payment_id: Optional[str] = None
    plan: str
    amount: int  # smallest currency unit (paise)
    currency: str = "INR"
    status: PaymentStatus = PaymentStatus.CREATED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    verified_at: Optional[datetime] = None

    model_config = {"extra": "ignore", "use_enum_values": True}


class CreateOrderRequest(BaseModel):
    amount: Optional[int] = Field(default=None, gt=0)
    plan: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    plan: Optional[str] = None


# ============================================================================
# API keys
# ============================================================================

class ApiKey(BaseModel):
    key_id: str = Field(default_factory=lambda: f"KEY-{uuid.uuid4().hex[:12].upper()}")
    user_id: str
    key: str
    name: str
    is_active: bool = True
    last_used: Optional[datetime] = None
    usage_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}


class ApiKeyCreate(BaseModel):
    name: Optional[str] = None


# ============================================================================
# Activity log
# ============================================================================

class ActivityAction(str, Enum):
    REGISTER = "register"
    LOGIN = "login"
    LOGOUT = "logout"
    UPLOAD = "upload"
    UPDATE = "update"
    DELETE = "delete"
    SHARE = "share"
    PAYMENT = "payment"
    AI_SUGGESTION = "ai_suggestion"
    COLOR_PALETTE = "color_palette"
    TEAM = "team"


class ActivityLog(BaseModel):
    activity_id: str = Field(default_factory=lambda: f"ACT-{uuid.uuid4().hex[:12].upper()}")
    user_id: str
    action: ActivityAction
    description: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore", "use_enum_values": True}


# ============================================================================
# Email
# ============================================================================

class EmailTemplateAlias(str, Enum):
    WELCOME = "welcome"
    VERIFICATION_CODE = "verification-code"
    PASSWORD_RESET = "password-reset"
    TEAM_INVITATION = "team-invitation"
    PAYMENT_RECEIPT = "payment-receipt"


class MessageLog(BaseModel):
    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    postmark_message_id: Optional[str] = None
    user_id: Optional[str] = None
    recipient: str
    template_alias: EmailTemplateAlias
    subject: str
    status: str = "queued"
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    provider_error_type: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore", "use_enum_values": True}
