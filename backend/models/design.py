"""Design and Template Models"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
import uuid

from models.user import Asset


class Visibility(str, Enum):
    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"


def _clean_tags(tags: List[str]) -> List[str]:
    cleaned = [t.strip() for t in tags if t and t.strip()]
    for tag in cleaned:
        if len(tag) > 30:
            raise ValueError("Tag cannot be more than 30 characters.")
    return cleaned


class Design(BaseModel):
    """A user-owned editor document plus its rendered thumbnail."""
    design_id: str = Field(default_factory=lambda: f"DSN-{uuid.uuid4().hex[:12].upper()}")
    user_id: str
    title: str = Field(min_length=1, max_length=100)
    editor_json: str
    thumbnail: Asset
    tags: List[str] = Field(default_factory=list)
    visibility: Visibility = Visibility.PRIVATE
    shared_with: List[str] = Field(default_factory=list)
    template_id: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore", "use_enum_values": True}

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class Template(BaseModel):
    """Admin-authored design reusable as a starting point."""
    template_id: str = Field(default_factory=lambda: f"TPL-{uuid.uuid4().hex[:12].upper()}")
    title: str = Field(min_length=1, max_length=100)
    editor_json: str
    thumbnail: Asset
    category: str = "General"
    tags: List[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return [t.strip() for t in v if t and t.strip()]


class ShareDesignRequest(BaseModel):
    team_id: str = Field(alias="teamId")

    model_config = {"populate_by_name": True}


class VisibilityUpdate(BaseModel):
    visibility: Visibility
    shared_with: Optional[List[str]] = Field(default=None, alias="sharedWith")

    model_config = {"populate_by_name": True}


class Favorite(BaseModel):
    """User x template join record."""
    favorite_id: str = Field(default_factory=lambda: f"FAV-{uuid.uuid4().hex[:12].upper()}")
    user_id: str
    template_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}


class FavoriteCreate(BaseModel):
    template_id: Optional[str] = Field(default=None, alias="templateId")

    model_config = {"populate_by_name": True}
