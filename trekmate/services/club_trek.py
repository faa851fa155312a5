"""Club trek coordination.

A club trek is not a row of its own: it is the set of active treks tagged
with the club's id. The leader starts it by tagging their own active trek,
members join by tagging theirs, and stopping un-tags everything so each trek
continues individually.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trekmate.core.config import settings
from trekmate.models.club import Club
from trekmate.models.trek import Trek, TrekStatus
from trekmate.schemas.club_trek import (
    ActiveClubTrekResponse,
    ActiveTrekParticipant,
    ClubTrekJoined,
    ClubTrekStarted,
    GroupAnalysisResponse,
    LiveStatusResponse,
    MemberLiveStatus,
)
from trekmate.schemas.trek import LastLocation
from trekmate.services.club_intelligence import MemberSnapshot, analyze_group
from trekmate.services.clubs import ClubService
from trekmate.services.errors import ConflictError, NotFoundError, PermissionDeniedError
from trekmate.services.trek_tracking import running_average_speed, running_distance

logger = logging.getLogger(__name__)


class ClubTrekService:
    """Leader-driven group sessions built on tagged treks."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.clubs = ClubService(db)

    async def _get_club_as_leader(self, club_id: UUID, user_id: UUID, action: str) -> Club:
        club = await self.clubs.get(club_id)
        if not club.is_leader(user_id):
            raise PermissionDeniedError(f"Only club leader can {action} club trek")
        return club

    async def _active_tagged(self, club_id: UUID) -> list[Trek]:
        result = await self.db.execute(
            select(Trek)
            .where(Trek.club_id == club_id, Trek.status == TrekStatus.ACTIVE.value)
            .order_by(Trek.start_time)
        )
        return list(result.unique().scalars().all())

    async def _get_user_trek(self, trek_id: UUID, user_id: UUID) -> Trek:
        result = await self.db.execute(select(Trek).where(Trek.id == trek_id))
        trek = result.unique().scalar_one_or_none()
        if trek is None or trek.user_id != user_id:
            raise NotFoundError("Trek not found or does not belong to user")
        return trek

    async def start(self, club_id: UUID, leader_id: UUID, trek_id: UUID) -> ClubTrekStarted:
        await self._get_club_as_leader(club_id, leader_id, "start")
        trek = await self._get_user_trek(trek_id, leader_id)
        if trek.status != TrekStatus.ACTIVE.value:
            raise ConflictError("Trek must be active to start a club trek")

        trek.club_id = club_id
        await self.db.flush()
        logger.info(f"Club trek started: club {club_id}, leader {leader_id}, trek {trek_id}")
        return ClubTrekStarted(
            club_id=club_id,
            leader_id=leader_id,
            trek_id=trek_id,
            started_at=datetime.now(UTC),
        )

    async def active(self, club_id: UUID) -> ActiveClubTrekResponse:
        await self.clubs.get(club_id)
        treks = await self._active_tagged(club_id)
        if not treks:
            return ActiveClubTrekResponse(is_active=False, message="No active club trek")

        # The earliest tagged trek is the one that started the session
        first = treks[0]
        return ActiveClubTrekResponse(
            is_active=True,
            leader_name=first.user.full_name or "Unknown",
            leader_photo=first.user.photo_url or "",
            member_count=len(treks),
            started_at=first.start_time,
            activities=[
                ActiveTrekParticipant(
                    user_id=t.user_id,
                    user_name=t.user.full_name,
                    start_time=t.start_time,
                )
                for t in treks
            ],
        )

    async def join(self, club_id: UUID, user_id: UUID, trek_id: UUID) -> ClubTrekJoined:
        club = await self.clubs.get(club_id)
        if not club.is_leader(user_id) and not await self.clubs.is_member(club_id, user_id):
            raise PermissionDeniedError("You are not a member of this club")

        leader_trek = await self.db.execute(
            select(Trek.id).where(
                Trek.user_id == club.creator_id,
                Trek.club_id == club_id,
                Trek.status == TrekStatus.ACTIVE.value,
            )
        )
        if leader_trek.first() is None:
            raise ConflictError("No active club trek to join. Leader must start trek first.")

        trek = await self._get_user_trek(trek_id, user_id)
        if trek.status != TrekStatus.ACTIVE.value:
            raise ConflictError("Trek must be active to join club trek")

        trek.club_id = club_id
        await self.db.flush()
        logger.info(f"Member {user_id} joined club trek {club_id}")
        return ClubTrekJoined(club_id=club_id, trek_id=trek_id, joined_at=datetime.now(UTC))

    async def fresh_snapshots(self, club: Club, now: datetime | None = None) -> list[MemberSnapshot]:
        """Snapshots of tagged active treks with a recent enough location."""
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(seconds=settings.location_max_age_sec)
        snapshots = []
        for trek in await self._active_tagged(club.id):
            if not trek.has_location or trek.last_point_at < cutoff:
                continue
            snapshots.append(
                MemberSnapshot(
                    user_id=trek.user_id,
                    name=trek.user.display_name,
                    email=trek.user.email,
                    trek_id=trek.id,
                    latitude=trek.last_latitude,
                    longitude=trek.last_longitude,
                    timestamp=trek.last_point_at,
                    start_time=trek.start_time,
                    distance=running_distance(trek),
                    avg_speed=running_average_speed(trek),
                    is_leader=club.is_leader(trek.user_id),
                )
            )
        return snapshots

    async def live_status(self, club_id: UUID) -> LiveStatusResponse:
        club = await self.clubs.get(club_id)
        snapshots = await self.fresh_snapshots(club)
        if not snapshots:
            return LiveStatusResponse(is_active=False, message="No active club trek")

        return LiveStatusResponse(
            is_active=True,
            club_id=club_id,
            leader_id=club.creator_id,
            active_members_count=len(snapshots),
            members=[
                MemberLiveStatus(
                    user_id=s.user_id,
                    name=s.name,
                    email=s.email,
                    trek_id=s.trek_id,
                    last_location=LastLocation(
                        latitude=s.latitude,
                        longitude=s.longitude,
                        timestamp=s.timestamp,
                    ),
                    distance=s.distance,
                    avg_speed=s.avg_speed,
                    is_leader=s.is_leader,
                )
                for s in snapshots
            ],
            leader_active=any(s.is_leader for s in snapshots),
        )

    async def analyze(self, club_id: UUID, leader_id: UUID) -> GroupAnalysisResponse:
        club = await self._get_club_as_leader(club_id, leader_id, "analyze")
        snapshots = await self.fresh_snapshots(club)
        if not snapshots:
            return GroupAnalysisResponse(is_active=False, message="No active club trek")
        return analyze_group(club_id, snapshots)

    async def stop(self, club_id: UUID, leader_id: UUID) -> int:
        """Un-tag every active trek of the club; returns how many were affected."""
        await self._get_club_as_leader(club_id, leader_id, "stop")
        result = await self.db.execute(
            update(Trek)
            .where(Trek.club_id == club_id, Trek.status == TrekStatus.ACTIVE.value)
            .values(club_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        affected = int(result.rowcount or 0)
        logger.info(f"Club trek stopped: {club_id}, {affected} treks continue individually")
        return affected
