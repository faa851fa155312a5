"""Club and club chat schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from trekmate.schemas.common import BaseSchema
from trekmate.schemas.user import UserSummary


class ClubCreate(BaseSchema):
    """Club creation request."""

    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    motivation: str = ""
    photo_url: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Club name cannot be blank")
        return v


class ClubResponse(BaseSchema):
    """Club with creator and members."""

    id: UUID
    name: str
    description: str = ""
    motivation: str = ""
    photo_url: str
    creator: UserSummary
    members: list[UserSummary] = []
    member_count: int = 0
    created_at: datetime


class ClubMembershipResponse(BaseSchema):
    """Result of joining or leaving a club."""

    message: str
    club: ClubResponse


class ClubMessageResponse(BaseSchema):
    """A persisted chat message, as stored and as broadcast."""

    id: UUID
    club_id: UUID
    sender: UserSummary
    content: str
    created_at: datetime


# =============================================================================
# Socket.IO payloads
# =============================================================================


class ClubRoomPayload(BaseSchema):
    club_id: UUID


class SendMessagePayload(BaseSchema):
    club_id: UUID
    content: str = ""


class ReportMessagePayload(BaseSchema):
    message_id: UUID
    club_id: UUID
