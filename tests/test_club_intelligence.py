"""Tests for club trek group analysis.

Positions are laid out along the equator so distances are easy to reason
about: 0.001 degrees of longitude is roughly 111 m.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from trekmate.core.rate_limit import CooldownTracker
from trekmate.schemas.club_trek import AlertType, MemberClassification, SuggestionType
from trekmate.services.club_intelligence import (
    AnalysisThresholds,
    MemberSnapshot,
    analyze_group,
    speed_std_dev,
)

NOW = datetime(2026, 6, 1, 9, 0, tzinfo=UTC)
CLUB_ID = uuid.uuid4()


def member(name, lon, speed=1.0, leader=False, started_min_ago=30.0, lat=0.0):
    return MemberSnapshot(
        user_id=uuid.uuid4(),
        name=name,
        trek_id=uuid.uuid4(),
        latitude=lat,
        longitude=lon,
        timestamp=NOW,
        start_time=NOW - timedelta(minutes=started_min_ago),
        distance=1000.0,
        avg_speed=speed,
        is_leader=leader,
    )


@pytest.fixture
def thresholds():
    return AnalysisThresholds(
        ahead_m=50.0,
        lagging_m=200.0,
        tired_speed_percent=15.0,
        tired_duration_min=1.0,
        pace_variance=0.2,
    )


@pytest.fixture
def cooldowns():
    return CooldownTracker(60, clock=lambda: 1000.0)


def by_name(result):
    return {m.name: m for m in result.members}


class TestSpeedStdDev:
    def test_population_std_dev(self):
        assert speed_std_dev([1.0, 3.0]) == pytest.approx(1.0)

    def test_empty(self):
        assert speed_std_dev([]) == 0.0


class TestAnalyzeGroup:
    """Classification, alerts and suggestions."""

    def test_requires_active_leader(self, thresholds, cooldowns):
        members = [member("Ana", 0.0), member("Ben", 0.0001)]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        assert result.error == "Leader is not actively trekking"
        assert result.active_members_count == 2
        assert result.members == []

    def test_tight_group_is_on_pace(self, thresholds, cooldowns):
        members = [
            member("Leader", 0.0, leader=True),
            member("Ana", 0.0001),
            member("Ben", 0.0002),
        ]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        assert result.error is None
        assert result.summary.on_pace == 3
        assert result.alerts == []
        assert result.suggestions == []
        classes = {m.name: m.classification for m in result.members}
        assert classes["Leader"] == MemberClassification.LEADER
        assert classes["Ana"] == MemberClassification.ON_PACE
        assert result.group_metrics.total_members == 3
        assert result.group_metrics.avg_speed == pytest.approx(1.0)
        assert result.group_metrics.centroid.longitude == pytest.approx(0.0001)

    def test_single_lagging_member(self, thresholds, cooldowns):
        members = [
            member("Leader", 0.0, leader=True),
            member("Ana", 0.0001),
            member("Bob", 0.01),
        ]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        bob = by_name(result)["Bob"]
        assert bob.classification == MemberClassification.LAGGING
        assert bob.distance_from_leader == pytest.approx(1112, rel=1e-2)
        assert by_name(result)["Ana"].classification == MemberClassification.ON_PACE

        # Bob matched the ahead rule before being relabelled, both counters move
        assert result.summary.lagging == 1
        assert result.summary.ahead == 1
        assert result.summary.on_pace == 1

        assert [a.type for a in result.alerts] == [AlertType.LAGGING]
        alert = result.alerts[0]
        assert alert.message == "Bob is falling behind (~1.1km)"
        assert alert.severity == "warning"
        assert alert.member_id == bob.user_id

        types = [s.type for s in result.suggestions]
        assert SuggestionType.REGROUP in types
        # Leader sits ~370 m from the centroid, beyond 1.5x the ahead threshold
        assert SuggestionType.LEADER_SLOW_DOWN in types
        regroup = next(s for s in result.suggestions if s.type == SuggestionType.REGROUP)
        assert regroup.priority == "high"

    def test_alerts_respect_cooldown(self, thresholds, cooldowns):
        members = [
            member("Leader", 0.0, leader=True),
            member("Ana", 0.0001),
            member("Bob", 0.01),
        ]

        first = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)
        second = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        assert len(first.alerts) == 1
        assert second.alerts == []
        # Suggestions are not throttled
        assert [s.type for s in second.suggestions] == [s.type for s in first.suggestions]

    def test_cooldown_expires(self, thresholds):
        clock = [1000.0]
        tracker = CooldownTracker(60, clock=lambda: clock[0])
        members = [
            member("Leader", 0.0, leader=True),
            member("Ana", 0.0001),
            member("Bob", 0.01),
        ]

        analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=tracker)
        clock[0] += 61
        again = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=tracker)

        assert [a.type for a in again.alerts] == [AlertType.LAGGING]

    def test_tired_member_and_pace_mismatch(self, thresholds, cooldowns):
        members = [
            member("Leader", 0.0, speed=2.0, leader=True),
            member("Cara", 0.0, speed=1.0, started_min_ago=10),
        ]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        cara = by_name(result)["Cara"]
        assert cara.classification == MemberClassification.TIRED
        assert cara.speed_diff_from_group == pytest.approx(-0.5)
        assert result.summary.tired == 1
        assert result.group_metrics.speed_std_dev == pytest.approx(0.5)

        alerts = {a.type: a for a in result.alerts}
        assert alerts[AlertType.TIRED].message == "Cara might be tired (slow pace)"
        assert alerts[AlertType.TIRED].severity == "info"
        assert alerts[AlertType.PACE_MISMATCH].severity == "warning"
        assert [s.type for s in result.suggestions] == [SuggestionType.ADJUST_PACE]

    def test_slow_member_who_just_started_is_not_tired(self, thresholds, cooldowns):
        members = [
            member("Leader", 0.0, speed=2.0, leader=True),
            member("Dev", 0.0, speed=1.0, started_min_ago=0.5),
        ]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        assert by_name(result)["Dev"].classification == MemberClassification.ON_PACE
        assert result.summary.tired == 0

    def test_stationary_member_is_not_tired(self, thresholds, cooldowns):
        members = [
            member("Leader", 0.0, speed=2.0, leader=True),
            member("Eve", 0.0, speed=0.0),
        ]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        assert by_name(result)["Eve"].classification == MemberClassification.ON_PACE

    def test_many_lagging_members(self, thresholds, cooldowns):
        members = [
            member("Leader", 0.0, leader=True),
            member("Near", 0.0),
            member("F1", 0.02),
            member("F2", 0.02, lat=0.0001),
            member("F3", 0.02, lat=-0.0001),
        ]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)

        assert result.summary.lagging == 3
        types = [a.type for a in result.alerts]
        assert types.count(AlertType.LAGGING) == 3
        multiple = next(a for a in result.alerts if a.type == AlertType.MULTIPLE_LAGGING)
        assert multiple.severity == "critical"
        assert multiple.message == "Multiple members (3) are struggling"

        suggestion_types = [s.type for s in result.suggestions]
        assert SuggestionType.SPLIT_GROUP in suggestion_types
        assert SuggestionType.REGROUP not in suggestion_types

    def test_response_serialises_camel_case(self, thresholds, cooldowns):
        members = [member("Leader", 0.0, leader=True), member("Ana", 0.0001)]

        result = analyze_group(CLUB_ID, members, now=NOW, thresholds=thresholds, cooldowns=cooldowns)
        data = result.model_dump(mode="json", by_alias=True)

        assert data["activeMembersCount"] == 2
        assert "groupMetrics" in data
        assert data["members"][1]["distanceFromLeader"] >= 0
