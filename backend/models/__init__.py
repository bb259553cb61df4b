"""Matty AI Data Models"""

from .user import (
    User,
    UserCreate,
    UserLogin,
    UserRole,
    UsageLimits,
    SubscriptionPlan,
    TeamRole,
    Asset,
    public_user,
)
from .design import (
    Design,
    Template,
    Favorite,
    Visibility,
)
from .team import (
    Team,
    TeamMember,
    TeamInvitation,
    MemberRole,
)
from .billing import (
    Payment,
    PaymentStatus,
    ApiKey,
    ActivityLog,
    ActivityAction,
    EmailTemplateAlias,
    MessageLog,
)

__all__ = [
    # User
    "User",
    "UserCreate",
    "UserLogin",
    "UserRole",
    "UsageLimits",
    "SubscriptionPlan",
    "TeamRole",
    "Asset",
    "public_user",
    # Designs
    "Design",
    "Template",
    "Favorite",
    "Visibility",
    # Teams
    "Team",
    "TeamMember",
    "TeamInvitation",
    "MemberRole",
    # Billing / misc
    "Payment",
    "PaymentStatus",
    "ApiKey",
    "ActivityLog",
    "ActivityAction",
    "EmailTemplateAlias",
    "MessageLog",
]
