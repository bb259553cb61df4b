"""Team Models

Members and pending invitations are embedded arrays on the team document.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone, timedelta
from enum import Enum
import uuid

INVITATION_TTL = timedelta(days=7)


class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class TeamMember(BaseModel):
    user_id: str
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"use_enum_values": True}


class TeamInvitation(BaseModel):
    email: str
    role: MemberRole = MemberRole.MEMBER
    token: str
    invited_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc) + INVITATION_TTL)

    model_config = {"use_enum_values": True}


class Team(BaseModel):
    team_id: str = Field(default_factory=lambda: f"TEAM-{uuid.uuid4().hex[:8].upper()}")
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    owner_id: str
    members: List[TeamMember] = Field(default_factory=list)
    invitations: List[TeamInvitation] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}


class CreateTeamRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class UpdateTeamRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)


class InviteMemberRequest(BaseModel):
    email: EmailStr
    role: MemberRole = MemberRole.MEMBER


class UpdateMemberRoleRequest(BaseModel):
    role: MemberRole
