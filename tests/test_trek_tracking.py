"""Tests for trek tracking: lifecycle rules, summary statistics and path recording."""

import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

import trekmate.models  # noqa: F401  (registers all mappers)
from trekmate.models.trek import Trek, TrekStatus
from trekmate.schemas.trek import LocationPoint, MetricsSnapshot
from trekmate.services.errors import ConflictError
from trekmate.services.geo import haversine_distance
from trekmate.services.trek_tracking import (
    TrekService,
    calculate_summary,
    is_valid_trek_transition,
    running_average_speed,
    running_distance,
)

T0 = datetime(2026, 5, 1, 8, 0, tzinfo=UTC)


def point(lat, lon, altitude=0.0, speed=0.0):
    return SimpleNamespace(latitude=lat, longitude=lon, altitude=altitude, speed=speed)


def make_db() -> MagicMock:
    db = MagicMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    return db


def make_trek(**overrides) -> Trek:
    values = {
        "id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "title": "Ridge walk",
        "status": TrekStatus.ACTIVE.value,
        "start_time": T0,
        "metrics_history": [],
        "summary": {},
    }
    values.update(overrides)
    return Trek(**values)


class TestTrekTransitions:
    """Lifecycle state machine."""

    @pytest.mark.parametrize(
        "current,new",
        [
            ("active", "paused"),
            ("active", "completed"),
            ("paused", "active"),
            ("paused", "completed"),
            ("active", "abandoned"),
        ],
    )
    def test_valid_transitions(self, current, new):
        assert is_valid_trek_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            ("completed", "active"),
            ("completed", "paused"),
            ("abandoned", "active"),
            ("active", "active"),
            ("unknown", "active"),
        ],
    )
    def test_invalid_transitions(self, current, new):
        assert not is_valid_trek_transition(current, new)


class TestCalculateSummary:
    """Statistics computed on completion."""

    def test_fewer_than_two_points_returns_none(self):
        assert calculate_summary([], [], 60) is None
        assert calculate_summary([point(0, 0)], [], 60) is None

    def test_full_summary(self):
        points = [
            point(0.0, 0.0, altitude=100, speed=1.0),
            point(0.0, 0.001, altitude=110, speed=2.0),
            point(0.0, 0.002, altitude=105, speed=0.0),
        ]
        history = [
            {"steps": 100, "heart_rate": 120},
            {"steps": 300, "heart_rate": 140},
        ]

        summary = calculate_summary(points, history, duration_seconds=600)

        expected_distance = 2 * haversine_distance(0.0, 0.0, 0.0, 0.001)
        assert summary.total_distance == pytest.approx(expected_distance)
        assert summary.total_elevation_gain == pytest.approx(10.0)
        assert summary.total_elevation_loss == pytest.approx(5.0)
        assert summary.max_elevation == pytest.approx(110.0)
        assert summary.min_elevation == pytest.approx(105.0)
        # Zero speeds are excluded from the average
        assert summary.average_speed == pytest.approx(1.5)
        assert summary.max_speed == pytest.approx(2.0)
        assert summary.total_steps == 300
        assert summary.calories_burned == pytest.approx(15.0)
        assert summary.avg_heart_rate == pytest.approx(130.0)
        assert summary.max_heart_rate == pytest.approx(140.0)
        assert summary.avg_pace == pytest.approx(10 / (expected_distance / 1000))

    def test_no_metrics_and_no_movement(self):
        points = [point(1.0, 1.0), point(1.0, 1.0)]

        summary = calculate_summary(points, [], duration_seconds=120)

        assert summary.total_distance == 0.0
        assert summary.total_steps == 0
        assert summary.average_speed == 0.0
        assert summary.avg_heart_rate is None
        assert summary.avg_pace == 0.0


class TestRunningStats:
    """Live values used before a trek completes."""

    def test_prefers_summary_values(self):
        trek = make_trek(summary={"average_speed": 1.4, "total_distance": 5200.0})
        assert running_average_speed(trek) == 1.4
        assert running_distance(trek) == 5200.0

    def test_running_totals(self):
        trek = make_trek(speed_total=6.0, speed_samples=4, distance_m=830.0)
        assert running_average_speed(trek) == 1.5
        assert running_distance(trek) == 830.0

    def test_falls_back_to_last_speed(self):
        trek = make_trek(last_speed=0.8)
        assert running_average_speed(trek) == 0.8
        assert running_distance(trek) == 0.0


class TestAddLocations:
    """Recording GPS fixes."""

    @pytest.mark.asyncio
    async def test_updates_last_location_and_totals(self):
        db = make_db()
        trek = make_trek()
        points = [
            LocationPoint(latitude=0.0, longitude=0.001, speed=2.0, timestamp=T0 + timedelta(seconds=10)),
            LocationPoint(latitude=0.0, longitude=0.0, speed=1.0, timestamp=T0),
        ]

        await TrekService(db).add_locations(trek, points)

        assert db.add.call_count == 2
        assert trek.last_latitude == 0.0
        assert trek.last_longitude == 0.001
        assert trek.last_speed == 2.0
        assert trek.last_point_at == T0 + timedelta(seconds=10)
        assert trek.point_count == 2
        assert trek.speed_samples == 2
        assert trek.speed_total == pytest.approx(3.0)
        assert trek.distance_m == pytest.approx(haversine_distance(0.0, 0.0, 0.0, 0.001))
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_fix_does_not_move_live_position(self):
        db = make_db()
        trek = make_trek(
            last_latitude=1.0,
            last_longitude=1.0,
            last_point_at=T0 + timedelta(minutes=5),
            point_count=3,
            distance_m=100.0,
        )
        stale = LocationPoint(latitude=2.0, longitude=2.0, timestamp=T0)

        await TrekService(db).add_locations(trek, [stale])

        assert trek.last_latitude == 1.0
        assert trek.last_point_at == T0 + timedelta(minutes=5)
        assert trek.distance_m == 100.0
        assert trek.point_count == 4

    @pytest.mark.asyncio
    async def test_rejected_on_completed_trek(self):
        trek = make_trek(status=TrekStatus.COMPLETED.value)
        fix = LocationPoint(latitude=0.0, longitude=0.0, timestamp=T0)

        with pytest.raises(ConflictError):
            await TrekService(make_db()).add_locations(trek, [fix])


class TestMetricsAndCompletion:
    """Metrics history and the complete operation."""

    @pytest.mark.asyncio
    async def test_add_metrics_appends_snapshot(self):
        db = make_db()
        trek = make_trek(metrics_history=[{"steps": 10}])

        await TrekService(db).add_metrics(trek, MetricsSnapshot(timestamp=T0, steps=50))

        assert len(trek.metrics_history) == 2
        assert trek.metrics_history[-1]["steps"] == 50

    @pytest.mark.asyncio
    async def test_complete_computes_summary_and_leaves_club(self):
        db = make_db()
        trek = make_trek(club_id=uuid.uuid4())
        path = [
            point(0.0, 0.0, altitude=10, speed=1.0),
            point(0.0, 0.01, altitude=30, speed=1.0),
        ]
        result = MagicMock()
        result.scalars.return_value.all.return_value = path
        db.execute.return_value = result

        await TrekService(db).complete(trek, notes="Windy", end_time=T0 + timedelta(hours=1))

        assert trek.status == TrekStatus.COMPLETED.value
        assert trek.duration_seconds == 3600
        assert trek.club_id is None
        assert trek.notes == "Windy"
        assert trek.summary["total_elevation_gain"] == pytest.approx(20.0)
        assert trek.summary["total_distance"] > 1000

    @pytest.mark.asyncio
    async def test_complete_twice_is_rejected(self):
        trek = make_trek(status=TrekStatus.COMPLETED.value)

        with pytest.raises(ConflictError):
            await TrekService(make_db()).complete(trek)
