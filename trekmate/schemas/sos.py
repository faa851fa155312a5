"""Emergency SOS schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from trekmate.schemas.common import BaseSchema
from trekmate.schemas.trek import UTCDateTime

TriggerType = Literal["fall", "manual"]


class EmergencyContact(BaseSchema):
    name: str = ""
    phone: str | None = None


class SendSOSRequest(BaseSchema):
    """SOS to the user's own emergency contacts."""

    emergency_contacts: list[EmergencyContact] = []
    user_name: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    # Client-formatted local time; server time is used when absent
    timestamp: str | None = None
    trigger_type: TriggerType = "manual"


class SmsDeliveryResult(BaseSchema):
    success: bool
    contact: str
    phone: str
    sid: str | None = None
    status: str | None = None
    error: str | None = None
    code: int | None = None


class SendSOSResponse(BaseSchema):
    success: bool
    message: str | None = None
    error: str | None = None
    sent: int = 0
    failed: int = 0
    results: list[SmsDeliveryResult] = []


class NearbySOSRequest(BaseSchema):
    """Alert other trekkers currently close to the person in distress."""

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    timestamp: UTCDateTime | None = None
    reason: TriggerType = "manual"


class NearbySOSResponse(BaseSchema):
    success: bool = True
    message: str
    notified_count: int = 0
    failed_count: int = 0
    nearby_users_found: int = 0


class NearbyTrekker(BaseSchema):
    user_id: UUID
    email: str
    distance: str
    distance_meters: int
    last_location_time: datetime
    location_age: str


class NearbyCheckResponse(BaseSchema):
    success: bool = True
    nearby_count: int
    radius: str
    nearby_users: list[NearbyTrekker] = []
