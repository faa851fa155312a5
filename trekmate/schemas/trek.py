"""Trek tracking schemas."""

from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, Field

from trekmate.models.trek import TrekStatus
from trekmate.schemas.common import BaseSchema


def _assume_utc(value: datetime) -> datetime:
    """Treat naive client timestamps as UTC so they compare with stored ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(_assume_utc)]


class LocationPoint(BaseSchema):
    """A GPS fix reported by the client."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    altitude: float = 0.0
    accuracy: float | None = None
    speed: float = Field(default=0.0, ge=0)
    heading: float | None = None
    timestamp: UTCDateTime


class MetricsSnapshot(BaseSchema):
    """Sensor metrics sampled during a trek."""

    timestamp: UTCDateTime
    steps: int = Field(default=0, ge=0)
    elevation: float = 0.0
    heart_rate: float | None = None
    calories_burned: float = 0.0
    speed: float = 0.0
    distance: float = 0.0


class TrekStart(BaseSchema):
    """Start a new trek."""

    title: str = Field(default="My Trek", max_length=255)
    start_time: UTCDateTime | None = None


class LocationBatch(BaseSchema):
    """Batch of points; clients buffer fixes while offline."""

    points: list[LocationPoint] = Field(min_length=1, max_length=1000)


class TrekComplete(BaseSchema):
    """Finish a trek."""

    notes: str | None = None
    end_time: UTCDateTime | None = None


class TrekSummary(BaseSchema):
    """Statistics computed when a trek completes."""

    total_distance: float = 0.0
    total_steps: int = 0
    average_speed: float = 0.0
    max_speed: float = 0.0
    total_elevation_gain: float = 0.0
    total_elevation_loss: float = 0.0
    min_elevation: float = 0.0
    max_elevation: float = 0.0
    avg_heart_rate: float | None = None
    max_heart_rate: float | None = None
    calories_burned: float = 0.0
    avg_pace: float = 0.0


class LastLocation(BaseSchema):
    """Most recent fix of a trek."""

    latitude: float
    longitude: float
    timestamp: datetime


class TrekResponse(BaseSchema):
    """Trek response."""

    id: UUID
    user_id: UUID
    club_id: UUID | None = None
    title: str
    status: TrekStatus
    start_time: datetime
    end_time: datetime | None = None
    duration_seconds: int = 0
    point_count: int = 0
    last_location: LastLocation | None = None
    summary: TrekSummary | None = None
    notes: str | None = None
