"""Tests for leader-driven club treks."""

import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from trekmate.models.trek import Trek, TrekStatus
from trekmate.models.user import User
from trekmate.services.club_trek import ClubTrekService
from trekmate.services.errors import ConflictError, NotFoundError, PermissionDeniedError

CLUB_ID = uuid.uuid4()
LEADER_ID = uuid.uuid4()
MEMBER_ID = uuid.uuid4()


def club():
    return SimpleNamespace(
        id=CLUB_ID,
        creator_id=LEADER_ID,
        is_leader=lambda uid: uid == LEADER_ID,
    )


def trek(user_id, status=TrekStatus.ACTIVE.value, last_point_at=None, lon=0.0, name="Hiker"):
    owner = User(id=user_id, full_name=name, email=f"{name.lower()}@example.com", photo_url="")
    return Trek(
        id=uuid.uuid4(),
        user_id=user_id,
        user=owner,
        status=status,
        start_time=datetime.now(UTC) - timedelta(minutes=20),
        last_latitude=0.0 if last_point_at else None,
        last_longitude=lon if last_point_at else None,
        last_point_at=last_point_at,
        last_speed=1.0,
        distance_m=500.0,
        summary={},
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_only_leader_can_start(self, db, result):
        db.execute.side_effect = [result(club())]

        with pytest.raises(PermissionDeniedError, match="Only club leader can start club trek"):
            await ClubTrekService(db).start(CLUB_ID, MEMBER_ID, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_trek_must_belong_to_leader(self, db, result):
        db.execute.side_effect = [result(club()), result(trek(MEMBER_ID))]

        with pytest.raises(NotFoundError):
            await ClubTrekService(db).start(CLUB_ID, LEADER_ID, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_trek_must_be_active(self, db, result):
        db.execute.side_effect = [result(club()), result(trek(LEADER_ID, status="paused"))]

        with pytest.raises(ConflictError):
            await ClubTrekService(db).start(CLUB_ID, LEADER_ID, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_start_tags_leader_trek(self, db, result):
        leader_trek = trek(LEADER_ID)
        db.execute.side_effect = [result(club()), result(leader_trek)]

        started = await ClubTrekService(db).start(CLUB_ID, LEADER_ID, leader_trek.id)

        assert leader_trek.club_id == CLUB_ID
        assert started.leader_id == LEADER_ID
        assert started.trek_id == leader_trek.id
        db.flush.assert_awaited()


class TestJoin:
    @pytest.mark.asyncio
    async def test_non_member_rejected(self, db, result):
        db.execute.side_effect = [result(club()), result(None)]

        with pytest.raises(PermissionDeniedError, match="You are not a member of this club"):
            await ClubTrekService(db).join(CLUB_ID, MEMBER_ID, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_requires_leader_trek(self, db, result):
        db.execute.side_effect = [result(club()), result(uuid.uuid4()), result(None)]

        with pytest.raises(ConflictError, match="Leader must start trek first"):
            await ClubTrekService(db).join(CLUB_ID, MEMBER_ID, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_joining_trek_must_be_active(self, db, result):
        db.execute.side_effect = [
            result(club()),
            result(uuid.uuid4()),
            result((uuid.uuid4(),)),
            result(trek(MEMBER_ID, status="completed")),
        ]

        with pytest.raises(ConflictError, match="Trek must be active to join club trek"):
            await ClubTrekService(db).join(CLUB_ID, MEMBER_ID, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_member_joins(self, db, result):
        member_trek = trek(MEMBER_ID)
        db.execute.side_effect = [
            result(club()),
            result(uuid.uuid4()),
            result((uuid.uuid4(),)),
            result(member_trek),
        ]

        joined = await ClubTrekService(db).join(CLUB_ID, MEMBER_ID, member_trek.id)

        assert member_trek.club_id == CLUB_ID
        assert joined.trek_id == member_trek.id


class TestStatus:
    @pytest.mark.asyncio
    async def test_active_without_treks(self, db, result):
        db.execute.side_effect = [result(club()), result(rows=[])]

        response = await ClubTrekService(db).active(CLUB_ID)

        assert response.is_active is False
        assert response.message == "No active club trek"

    @pytest.mark.asyncio
    async def test_active_reports_first_trek_as_leader(self, db, result):
        treks = [trek(LEADER_ID, name="Lena"), trek(MEMBER_ID, name="Milo")]
        db.execute.side_effect = [result(club()), result(rows=treks)]

        response = await ClubTrekService(db).active(CLUB_ID)

        assert response.is_active is True
        assert response.leader_name == "Lena"
        assert response.member_count == 2
        assert [a.user_name for a in response.activities] == ["Lena", "Milo"]

    @pytest.mark.asyncio
    async def test_live_status_skips_stale_locations(self, db, result):
        now = datetime.now(UTC)
        treks = [
            trek(LEADER_ID, last_point_at=now, name="Lena"),
            trek(MEMBER_ID, last_point_at=now - timedelta(hours=1), name="Milo"),
            trek(uuid.uuid4(), last_point_at=None, name="Nia"),
        ]
        db.execute.side_effect = [result(club()), result(rows=treks)]

        status = await ClubTrekService(db).live_status(CLUB_ID)

        assert status.is_active is True
        assert status.active_members_count == 1
        assert status.leader_active is True
        assert status.members[0].name == "Lena"
        assert status.members[0].distance == 500.0

    @pytest.mark.asyncio
    async def test_live_status_without_fresh_members(self, db, result):
        db.execute.side_effect = [result(club()), result(rows=[])]

        status = await ClubTrekService(db).live_status(CLUB_ID)

        assert status.is_active is False


class TestAnalyzeAndStop:
    @pytest.mark.asyncio
    async def test_analyze_is_leader_only(self, db, result):
        db.execute.side_effect = [result(club())]

        with pytest.raises(PermissionDeniedError, match="analyze"):
            await ClubTrekService(db).analyze(CLUB_ID, MEMBER_ID)

    @pytest.mark.asyncio
    async def test_analyze_without_fresh_members(self, db, result):
        db.execute.side_effect = [result(club()), result(rows=[])]

        analysis = await ClubTrekService(db).analyze(CLUB_ID, LEADER_ID)

        assert analysis.is_active is False

    @pytest.mark.asyncio
    async def test_analyze_runs_group_analysis(self, db, result):
        now = datetime.now(UTC)
        treks = [
            trek(LEADER_ID, last_point_at=now, name="Lena"),
            trek(MEMBER_ID, last_point_at=now, lon=0.0001, name="Milo"),
        ]
        db.execute.side_effect = [result(club()), result(rows=treks)]

        analysis = await ClubTrekService(db).analyze(CLUB_ID, LEADER_ID)

        assert analysis.is_active is True
        assert analysis.active_members_count == 2
        assert analysis.error is None

    @pytest.mark.asyncio
    async def test_stop_returns_affected_count(self, db, result):
        db.execute.side_effect = [result(club()), result(rowcount=3)]

        affected = await ClubTrekService(db).stop(CLUB_ID, LEADER_ID)

        assert affected == 3

    @pytest.mark.asyncio
    async def test_only_leader_can_stop(self, db, result):
        db.execute.side_effect = [result(club())]

        with pytest.raises(PermissionDeniedError, match="stop"):
            await ClubTrekService(db).stop(CLUB_ID, MEMBER_ID)
