"""Club trek coordination and group intelligence schemas."""

import enum
from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, Field

from trekmate.schemas.common import BaseSchema
from trekmate.schemas.trek import LastLocation


class ClubTrekRequest(BaseSchema):
    """Attach one of the caller's active treks to the club trek."""

    # Older clients send activityId
    trek_id: UUID = Field(
        validation_alias=AliasChoices("trekId", "trek_id", "activityId"),
    )


class ClubTrekStarted(BaseSchema):
    club_id: UUID
    leader_id: UUID
    trek_id: UUID
    started_at: datetime


class ClubTrekJoined(BaseSchema):
    club_id: UUID
    trek_id: UUID
    joined_at: datetime


class ClubTrekActionResponse(BaseSchema):
    success: bool = True
    message: str
    club_trek: ClubTrekStarted | ClubTrekJoined


class ActiveTrekParticipant(BaseSchema):
    user_id: UUID
    user_name: str
    start_time: datetime


class ActiveClubTrekResponse(BaseSchema):
    """Whether a club currently has a group trek running."""

    is_active: bool
    message: str | None = None
    leader_name: str | None = None
    leader_photo: str | None = None
    member_count: int = 0
    started_at: datetime | None = None
    activities: list[ActiveTrekParticipant] = []


class MemberLiveStatus(BaseSchema):
    user_id: UUID
    name: str
    email: str
    trek_id: UUID
    last_location: LastLocation
    distance: float = 0.0
    avg_speed: float = 0.0
    is_leader: bool = False


class LiveStatusResponse(BaseSchema):
    success: bool = True
    is_active: bool
    message: str | None = None
    club_id: UUID | None = None
    leader_id: UUID | None = None
    active_members_count: int = 0
    members: list[MemberLiveStatus] = []
    leader_active: bool = False


class StopClubTrekResponse(BaseSchema):
    success: bool = True
    message: str
    affected_activities: int


# =============================================================================
# Group intelligence
# =============================================================================


class MemberClassification(str, enum.Enum):
    LEADER = "LEADER"
    ON_PACE = "ON_PACE"
    AHEAD = "AHEAD"
    LAGGING = "LAGGING"
    TIRED = "TIRED"


class AlertType(str, enum.Enum):
    LAGGING = "LAGGING"
    TIRED = "TIRED"
    MULTIPLE_LAGGING = "MULTIPLE_LAGGING"
    PACE_MISMATCH = "PACE_MISMATCH"


class SuggestionType(str, enum.Enum):
    REGROUP = "REGROUP"
    SPLIT_GROUP = "SPLIT_GROUP"
    ADJUST_PACE = "ADJUST_PACE"
    LEADER_SLOW_DOWN = "LEADER_SLOW_DOWN"


class Coordinates(BaseSchema):
    latitude: float
    longitude: float


class GroupMetrics(BaseSchema):
    total_members: int
    avg_speed: float
    speed_std_dev: float
    centroid: Coordinates


class ClassificationSummary(BaseSchema):
    on_pace: int
    ahead: int
    lagging: int
    tired: int


class ClassifiedMember(BaseSchema):
    user_id: UUID
    name: str
    trek_id: UUID
    last_location: LastLocation
    distance: float
    avg_speed: float
    is_leader: bool
    classification: MemberClassification
    distance_from_leader: float = 0.0
    distance_from_centroid: float = 0.0
    speed_diff_from_group: float | None = None


class GroupAlert(BaseSchema):
    type: AlertType
    message: str
    severity: str
    member_id: UUID | None = None
    member_name: str | None = None


class GroupSuggestion(BaseSchema):
    type: SuggestionType
    message: str
    priority: str


class GroupAnalysisResponse(BaseSchema):
    """Leader-only snapshot of how the group is moving."""

    success: bool = True
    is_active: bool
    message: str | None = None
    error: str | None = None
    club_id: UUID | None = None
    timestamp: datetime | None = None
    active_members_count: int | None = None
    group_metrics: GroupMetrics | None = None
    summary: ClassificationSummary | None = None
    members: list[ClassifiedMember] = []
    alerts: list[GroupAlert] = []
    suggestions: list[GroupSuggestion] = []
