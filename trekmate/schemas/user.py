"""User schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from trekmate.models.user import ExperienceLevel
from trekmate.schemas.common import BaseSchema


class UserSummary(BaseSchema):
    """Compact user reference embedded in clubs and messages."""

    id: UUID
    full_name: str
    photo_url: str = ""


class UserResponse(BaseSchema):
    """User response schema."""

    id: UUID
    full_name: str
    email: str
    photo_url: str = ""
    username: str | None = None
    bio: str = ""
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    phone_number: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    created_at: datetime


class UserUpdate(BaseSchema):
    """Profile update request. Omitted fields are left unchanged."""

    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    photo_url: str | None = None
    username: str | None = Field(default=None, min_length=3, max_length=64)
    bio: str | None = Field(default=None, max_length=2000)
    experience_level: ExperienceLevel | None = None
    phone_number: str | None = Field(default=None, max_length=32)
    emergency_contact_name: str | None = Field(default=None, max_length=255)
    emergency_contact_phone: str | None = Field(default=None, max_length=32)
