"""Group analysis for an active club trek.

Given fresh member positions, classifies every non-leader member relative to
the leader and the group centroid, then derives throttled alerts and pacing
suggestions for the leader's dashboard.

Classification is applied in order (ahead, lagging, tired) and a later rule
overrides an earlier label. Each rule that fires still bumps its counter, so
``on_pace`` is ``total - ahead - lagging - tired`` and may undercount when a
member matched several rules.
"""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from trekmate.core.config import settings
from trekmate.core.rate_limit import CooldownTracker
from trekmate.schemas.club_trek import (
    AlertType,
    ClassificationSummary,
    ClassifiedMember,
    Coordinates,
    GroupAlert,
    GroupAnalysisResponse,
    GroupMetrics,
    GroupSuggestion,
    MemberClassification,
    SuggestionType,
)
from trekmate.schemas.trek import LastLocation
from trekmate.services.geo import centroid, format_distance, haversine_distance

LEADER_DRIFT_FACTOR = 1.5

# Process-wide so repeated polls by the leader don't repeat alerts
alert_cooldowns = CooldownTracker(settings.alert_cooldown_seconds)


@dataclass
class MemberSnapshot:
    """Latest known state of one participant."""

    user_id: UUID
    name: str
    trek_id: UUID
    latitude: float
    longitude: float
    timestamp: datetime
    start_time: datetime
    distance: float = 0.0
    avg_speed: float = 0.0
    is_leader: bool = False
    email: str = ""


@dataclass
class AnalysisThresholds:
    ahead_m: float = field(default_factory=lambda: settings.ahead_threshold_m)
    lagging_m: float = field(default_factory=lambda: settings.lagging_threshold_m)
    tired_speed_percent: float = field(default_factory=lambda: settings.tired_speed_threshold_percent)
    tired_duration_min: float = field(default_factory=lambda: settings.tired_duration_min)
    pace_variance: float = field(default_factory=lambda: settings.pace_variance_threshold)


def speed_std_dev(speeds: list[float]) -> float:
    """Population standard deviation."""
    if not speeds:
        return 0.0
    mean = sum(speeds) / len(speeds)
    return math.sqrt(sum((s - mean) ** 2 for s in speeds) / len(speeds))


def _alert_key(club_id: UUID, alert_type: AlertType, member_id: UUID | None = None) -> str:
    return f"{club_id}_{alert_type.value}_{member_id or ''}"


def _classified(
    member: MemberSnapshot,
    classification: MemberClassification,
    distance_from_leader: float = 0.0,
    distance_from_centroid: float = 0.0,
    speed_diff: float | None = None,
) -> ClassifiedMember:
    return ClassifiedMember(
        user_id=member.user_id,
        name=member.name,
        trek_id=member.trek_id,
        last_location=LastLocation(
            latitude=member.latitude,
            longitude=member.longitude,
            timestamp=member.timestamp,
        ),
        distance=member.distance,
        avg_speed=member.avg_speed,
        is_leader=member.is_leader,
        classification=classification,
        distance_from_leader=distance_from_leader,
        distance_from_centroid=distance_from_centroid,
        speed_diff_from_group=speed_diff,
    )


def analyze_group(
    club_id: UUID,
    members: list[MemberSnapshot],
    *,
    now: datetime | None = None,
    thresholds: AnalysisThresholds | None = None,
    cooldowns: CooldownTracker | None = None,
) -> GroupAnalysisResponse:
    """Build the intelligence report for one club trek.

    ``members`` must already be filtered to fresh locations; the leader is
    the snapshot flagged ``is_leader``.
    """
    now = now or datetime.now(UTC)
    thresholds = thresholds or AnalysisThresholds()
    cooldowns = cooldowns if cooldowns is not None else alert_cooldowns

    leader = next((m for m in members if m.is_leader), None)
    if leader is None:
        return GroupAnalysisResponse(
            is_active=True,
            error="Leader is not actively trekking",
            club_id=club_id,
            active_members_count=len(members),
        )

    speeds = [m.avg_speed for m in members]
    group_avg_speed = sum(speeds) / len(speeds)
    std_dev = speed_std_dev(speeds)
    centre_lat, centre_lon = centroid([(m.latitude, m.longitude) for m in members])
    tired_below = group_avg_speed * (1 - thresholds.tired_speed_percent / 100)

    classified: list[ClassifiedMember] = []
    alerts: list[GroupAlert] = []
    ahead_count = lagging_count = tired_count = 0

    for member in members:
        if member.is_leader:
            classified.append(_classified(member, MemberClassification.LEADER))
            continue

        from_leader = haversine_distance(
            leader.latitude, leader.longitude, member.latitude, member.longitude
        )
        from_centre = haversine_distance(
            centre_lat, centre_lon, member.latitude, member.longitude
        )

        label = MemberClassification.ON_PACE
        if from_leader > thresholds.ahead_m and from_centre > thresholds.ahead_m:
            label = MemberClassification.AHEAD
            ahead_count += 1

        if from_leader > thresholds.lagging_m and from_centre > thresholds.lagging_m:
            label = MemberClassification.LAGGING
            lagging_count += 1
            if cooldowns.should_fire(_alert_key(club_id, AlertType.LAGGING, member.user_id)):
                alerts.append(
                    GroupAlert(
                        type=AlertType.LAGGING,
                        message=f"{member.name} is falling behind (~{format_distance(from_leader)})",
                        severity="warning",
                        member_id=member.user_id,
                        member_name=member.name,
                    )
                )

        if 0 < member.avg_speed < tired_below:
            trekking_min = (now - member.start_time).total_seconds() / 60
            if trekking_min > thresholds.tired_duration_min:
                label = MemberClassification.TIRED
                tired_count += 1
                if cooldowns.should_fire(_alert_key(club_id, AlertType.TIRED, member.user_id)):
                    alerts.append(
                        GroupAlert(
                            type=AlertType.TIRED,
                            message=f"{member.name} might be tired (slow pace)",
                            severity="info",
                            member_id=member.user_id,
                            member_name=member.name,
                        )
                    )

        classified.append(
            _classified(
                member,
                label,
                distance_from_leader=from_leader,
                distance_from_centroid=from_centre,
                speed_diff=member.avg_speed - group_avg_speed,
            )
        )

    if lagging_count >= 2 and cooldowns.should_fire(_alert_key(club_id, AlertType.MULTIPLE_LAGGING)):
        alerts.append(
            GroupAlert(
                type=AlertType.MULTIPLE_LAGGING,
                message=f"Multiple members ({lagging_count}) are struggling",
                severity="critical",
            )
        )

    pace_mismatch = std_dev > thresholds.pace_variance
    if pace_mismatch and cooldowns.should_fire(_alert_key(club_id, AlertType.PACE_MISMATCH)):
        alerts.append(
            GroupAlert(
                type=AlertType.PACE_MISMATCH,
                message="Group pace mismatch detected",
                severity="warning",
            )
        )

    suggestions: list[GroupSuggestion] = []
    if 1 <= lagging_count <= 2:
        suggestions.append(
            GroupSuggestion(
                type=SuggestionType.REGROUP,
                message="Regroup and wait for slower members",
                priority="high",
            )
        )
    if lagging_count >= 3:
        suggestions.append(
            GroupSuggestion(
                type=SuggestionType.SPLIT_GROUP,
                message="Consider splitting into faster and slower subgroups",
                priority="medium",
            )
        )
    if pace_mismatch:
        suggestions.append(
            GroupSuggestion(
                type=SuggestionType.ADJUST_PACE,
                message="Adjust group pace to reduce variance",
                priority="medium",
            )
        )

    leader_drift = haversine_distance(leader.latitude, leader.longitude, centre_lat, centre_lon)
    if leader_drift > thresholds.ahead_m * LEADER_DRIFT_FACTOR:
        suggestions.append(
            GroupSuggestion(
                type=SuggestionType.LEADER_SLOW_DOWN,
                message="Leader, slow down or wait for the group",
                priority="high",
            )
        )

    cooldowns.prune()

    return GroupAnalysisResponse(
        is_active=True,
        club_id=club_id,
        timestamp=now,
        active_members_count=len(members),
        group_metrics=GroupMetrics(
            total_members=len(members),
            avg_speed=group_avg_speed,
            speed_std_dev=std_dev,
            centroid=Coordinates(latitude=centre_lat, longitude=centre_lon),
        ),
        summary=ClassificationSummary(
            on_pace=len(members) - lagging_count - ahead_count - tired_count,
            ahead=ahead_count,
            lagging=lagging_count,
            tired=tired_count,
        ),
        members=classified,
        alerts=alerts,
        suggestions=suggestions,
    )
