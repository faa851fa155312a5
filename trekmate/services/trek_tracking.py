"""Trek tracking: lifecycle, path recording and summary statistics."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trekmate.models.trek import Trek, TrekPoint, TrekStatus
from trekmate.schemas.trek import LocationPoint, MetricsSnapshot, TrekSummary
from trekmate.services.errors import ConflictError, NotFoundError
from trekmate.services.geo import haversine_distance

logger = logging.getLogger(__name__)

CALORIES_PER_STEP = 0.05

# Key: current status, Value: statuses reachable from it
TREK_TRANSITIONS: dict[str, set[str]] = {
    TrekStatus.ACTIVE.value: {TrekStatus.PAUSED.value, TrekStatus.COMPLETED.value, TrekStatus.ABANDONED.value},
    TrekStatus.PAUSED.value: {TrekStatus.ACTIVE.value, TrekStatus.COMPLETED.value, TrekStatus.ABANDONED.value},
    TrekStatus.COMPLETED.value: set(),
    TrekStatus.ABANDONED.value: set(),
}


def is_valid_trek_transition(current_status: str, new_status: str) -> bool:
    return new_status in TREK_TRANSITIONS.get(current_status, set())


# =============================================================================
# Summary statistics
# =============================================================================


class _PathPoint(Protocol):
    latitude: float
    longitude: float
    altitude: float
    speed: float


def calculate_summary(
    points: Sequence[_PathPoint],
    metrics_history: Sequence[dict[str, Any]],
    duration_seconds: int,
) -> TrekSummary | None:
    """Compute trek statistics from an ordered path.

    Returns None when fewer than two points were recorded, since distance
    and elevation are undefined.
    """
    if len(points) < 2:
        return None

    total_distance = 0.0
    elevation_gain = 0.0
    elevation_loss = 0.0
    min_elevation = float("inf")
    max_elevation = float("-inf")

    for prev, curr in zip(points, points[1:]):
        total_distance += haversine_distance(
            prev.latitude, prev.longitude, curr.latitude, curr.longitude
        )
        elev_diff = (curr.altitude or 0.0) - (prev.altitude or 0.0)
        if elev_diff > 0:
            elevation_gain += elev_diff
        else:
            elevation_loss += abs(elev_diff)
        min_elevation = min(min_elevation, curr.altitude or 0.0)
        max_elevation = max(max_elevation, curr.altitude or 0.0)

    speeds = [p.speed for p in points if p.speed]
    avg_speed = sum(speeds) / len(speeds) if speeds else 0.0
    max_speed = max(speeds) if speeds else 0.0

    total_steps = int(metrics_history[-1].get("steps") or 0) if metrics_history else 0

    heart_rates = [m["heart_rate"] for m in metrics_history if m.get("heart_rate")]
    avg_heart_rate = sum(heart_rates) / len(heart_rates) if heart_rates else None
    max_heart_rate = max(heart_rates) if heart_rates else None

    distance_km = total_distance / 1000
    duration_min = duration_seconds / 60
    avg_pace = duration_min / distance_km if distance_km > 0 else 0.0

    return TrekSummary(
        total_distance=total_distance,
        total_steps=total_steps,
        average_speed=avg_speed,
        max_speed=max_speed,
        total_elevation_gain=elevation_gain,
        total_elevation_loss=elevation_loss,
        min_elevation=min_elevation,
        max_elevation=max_elevation,
        avg_heart_rate=avg_heart_rate,
        max_heart_rate=max_heart_rate,
        calories_burned=total_steps * CALORIES_PER_STEP,
        avg_pace=avg_pace,
    )


def running_average_speed(trek: Trek) -> float:
    """Average of non-zero reported speeds so far.

    Falls back to the last reported speed before any moving fix arrived.
    """
    summary = trek.summary or {}
    if summary.get("average_speed"):
        return float(summary["average_speed"])
    if trek.speed_samples:
        return trek.speed_total / trek.speed_samples
    return float(trek.last_speed or 0.0)


def running_distance(trek: Trek) -> float:
    summary = trek.summary or {}
    if summary.get("total_distance"):
        return float(summary["total_distance"])
    return float(trek.distance_m or 0.0)


# =============================================================================
# TrekService
# =============================================================================


class TrekService:
    """Owner-scoped trek operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_owned(self, trek_id: UUID, user_id: UUID) -> Trek:
        """Load a trek belonging to user_id.

        Other users' treks are reported as missing so ids cannot be probed.
        """
        result = await self.db.execute(
            select(Trek).where(Trek.id == trek_id, Trek.user_id == user_id)
        )
        trek = result.scalar_one_or_none()
        if trek is None:
            raise NotFoundError("Trek not found")
        return trek

    async def list_for_user(self, user_id: UUID, limit: int = 50) -> list[Trek]:
        result = await self.db.execute(
            select(Trek)
            .where(Trek.user_id == user_id)
            .order_by(Trek.start_time.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def start(self, user_id: UUID, title: str, start_time: datetime | None = None) -> Trek:
        trek = Trek(
            user_id=user_id,
            title=title,
            status=TrekStatus.ACTIVE.value,
            start_time=start_time or datetime.now(UTC),
            metrics_history=[],
            summary={},
        )
        self.db.add(trek)
        await self.db.flush()
        logger.info(f"Trek {trek.id} started by user {user_id}")
        return trek

    async def add_locations(self, trek: Trek, points: Sequence[LocationPoint]) -> Trek:
        """Append GPS fixes and refresh the denormalised last location.

        Fixes older than the current last location are still stored (the
        path is ordered by timestamp on read) but do not move the live
        position backwards.
        """
        if trek.is_terminal:
            raise ConflictError(f"Cannot record locations on a {trek.status} trek")

        ordered = sorted(points, key=lambda p: p.timestamp)
        for p in ordered:
            self.db.add(
                TrekPoint(
                    trek_id=trek.id,
                    latitude=p.latitude,
                    longitude=p.longitude,
                    altitude=p.altitude,
                    accuracy=p.accuracy,
                    speed=p.speed,
                    heading=p.heading,
                    timestamp=p.timestamp,
                )
            )

        # Only fixes newer than the live position extend the running distance
        fresh = [
            p for p in ordered
            if trek.last_point_at is None or p.timestamp >= trek.last_point_at
        ]
        if fresh:
            prev_lat, prev_lon = trek.last_latitude, trek.last_longitude
            for p in fresh:
                if prev_lat is not None and prev_lon is not None:
                    trek.distance_m = (trek.distance_m or 0.0) + haversine_distance(
                        prev_lat, prev_lon, p.latitude, p.longitude
                    )
                prev_lat, prev_lon = p.latitude, p.longitude

            newest = fresh[-1]
            trek.last_latitude = newest.latitude
            trek.last_longitude = newest.longitude
            trek.last_speed = newest.speed
            trek.last_point_at = newest.timestamp

        moving = [p.speed for p in ordered if p.speed]
        trek.speed_total = (trek.speed_total or 0.0) + sum(moving)
        trek.speed_samples = (trek.speed_samples or 0) + len(moving)
        trek.point_count = (trek.point_count or 0) + len(ordered)

        await self.db.flush()
        return trek

    async def add_metrics(self, trek: Trek, snapshot: MetricsSnapshot) -> Trek:
        if trek.is_terminal:
            raise ConflictError(f"Cannot record metrics on a {trek.status} trek")
        # Reassign so the JSON column is marked dirty
        trek.metrics_history = [*(trek.metrics_history or []), snapshot.model_dump(mode="json")]
        await self.db.flush()
        return trek

    async def transition(self, trek: Trek, new_status: TrekStatus) -> Trek:
        if not is_valid_trek_transition(trek.status, new_status.value):
            raise ConflictError(f"Cannot move trek from {trek.status} to {new_status.value}")
        trek.status = new_status.value
        await self.db.flush()
        return trek

    async def complete(
        self,
        trek: Trek,
        notes: str | None = None,
        end_time: datetime | None = None,
    ) -> Trek:
        if not is_valid_trek_transition(trek.status, TrekStatus.COMPLETED.value):
            raise ConflictError(f"Cannot complete a {trek.status} trek")

        trek.end_time = end_time or datetime.now(UTC)
        trek.duration_seconds = max(0, int((trek.end_time - trek.start_time).total_seconds()))
        trek.status = TrekStatus.COMPLETED.value
        # A finished trek leaves any club trek it was part of
        trek.club_id = None
        if notes is not None:
            trek.notes = notes

        result = await self.db.execute(
            select(TrekPoint)
            .where(TrekPoint.trek_id == trek.id)
            .order_by(TrekPoint.timestamp)
        )
        points = list(result.scalars().all())
        summary = calculate_summary(points, trek.metrics_history or [], trek.duration_seconds)
        trek.summary = summary.model_dump() if summary else {}

        await self.db.flush()
        logger.info(
            f"Trek {trek.id} completed: {len(points)} points, "
            f"{trek.summary.get('total_distance', 0):.0f}m in {trek.duration_seconds}s"
        )
        return trek
