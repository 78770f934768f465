# SPDX-License-Identifier: Apache-2.0

"""
Tests for leaderboard aggregation and the leaderboard service.
"""

import random
import pytest
from datetime import datetime
from unittest.mock import MagicMock

from domain.contributions import build_contribution_event
from domain.errors import ValidationException
from domain.leaderboard import (
    PeriodSelector,
    build_leaderboard,
    build_stats,
    build_user_history,
    compute_rank,
    aggregate_events
)
from models.enums import ContributionType
from services.leaderboard import LeaderboardService


def _event(user_id, contribution_type, issue_id, when, category="drainage"):
    return build_contribution_event(user_id, contribution_type, issue_id, when, category=category)


MARCH = datetime(2026, 3, 5, 10, 0)
APRIL = datetime(2026, 4, 2, 10, 0)


@pytest.fixture
def march_events():
    return [
        _event("alice", ContributionType.ISSUE_REPORTED, "i1", MARCH),
        _event("alice", ContributionType.ISSUE_RESOLVED, "i1", MARCH),
        _event("bob", ContributionType.ISSUE_REPORTED, "i2", MARCH, "electricity"),
        _event("bob", ContributionType.ISSUE_REPORTED, "i3", MARCH, "electricity"),
        _event("bob", ContributionType.UPVOTE_GIVEN, "i1", MARCH),
        _event("carol", ContributionType.ISSUE_REPORTED, "i4", MARCH),
        _event("carol", ContributionType.COMMENT_ADDED, "i1", MARCH),
        _event("carol", ContributionType.UPVOTE_GIVEN, "i2", MARCH),
        _event("carol", ContributionType.UPVOTE_GIVEN, "i3", MARCH),
        _event("carol", ContributionType.COMMENT_ADDED, "i2", MARCH),
        _event("dave", ContributionType.ISSUE_REPORTED, "i5", APRIL),
    ]


class TestBuildLeaderboard:

    def test_order_points_then_contributions_then_user(self, march_events):
        page = build_leaderboard(march_events, PeriodSelector(2026, 3))

        # alice 7/2, carol 6/5, bob 5/3
        assert [(row.user_id, row.total_points) for row in page.rows] == [
            ("alice", 7), ("carol", 6), ("bob", 5)
        ]
        assert [row.position for row in page.rows] == [1, 2, 3]
        assert page.total_participants == 3

    def test_tie_broken_by_contributions_then_id(self):
        events = [
            _event("zed", ContributionType.ISSUE_REPORTED, "i1", MARCH),
            _event("amy", ContributionType.UPVOTE_GIVEN, "i1", MARCH),
            _event("amy", ContributionType.COMMENT_ADDED, "i1", MARCH),
            _event("ben", ContributionType.UPVOTE_GIVEN, "i1", MARCH),
            _event("ben", ContributionType.COMMENT_ADDED, "i1", MARCH),
        ]
        page = build_leaderboard(events, PeriodSelector(2026, 3))

        assert [row.user_id for row in page.rows] == ["amy", "ben", "zed"]

    def test_result_independent_of_event_order(self, march_events):
        expected = build_leaderboard(march_events, PeriodSelector(2026, 3)).to_dict()
        shuffled = list(march_events)
        random.Random(7).shuffle(shuffled)

        assert build_leaderboard(shuffled, PeriodSelector(2026, 3)).to_dict() == expected

    def test_events_outside_period_ignored(self, march_events):
        page = build_leaderboard(march_events, PeriodSelector(2026, 3))
        assert "dave" not in [row.user_id for row in page.rows]

    def test_category_filter(self, march_events):
        page = build_leaderboard(march_events, PeriodSelector(2026, 3), category="electricity")
        assert [(row.user_id, row.total_points) for row in page.rows] == [("bob", 4)]

    def test_pagination(self, march_events):
        page = build_leaderboard(march_events, PeriodSelector(2026, 3), limit=1, offset=1)
        assert [row.user_id for row in page.rows] == ["carol"]
        assert page.rows[0].position == 2
        assert page.total_participants == 3

    def test_requester_rank(self, march_events):
        page = build_leaderboard(march_events, PeriodSelector(2026, 3), limit=1, requester_id="bob")
        assert page.requester_rank == 3

    def test_empty_period(self):
        page = build_leaderboard([], PeriodSelector(2026, 3), requester_id="alice")
        assert page.rows == []
        assert page.total_participants == 0
        assert page.requester_rank is None

    def test_yearly_rows_carry_monthly_breakdown(self, march_events):
        page = build_leaderboard(march_events, PeriodSelector(2026))
        dave = next(row for row in page.to_dict()["leaderboard"] if row["userId"] == "dave")

        assert dave["monthlyBreakdown"] == [{
            "month": 4,
            "monthName": "April",
            "points": 2,
            "contributions": 1,
            "categories": ["drainage"],
            "types": ["issue_reported"]
        }]
        assert "monthlyBreakdown" not in build_leaderboard(
            march_events, PeriodSelector(2026, 3)
        ).to_dict()["leaderboard"][0]

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            build_leaderboard([], PeriodSelector(2026, 3), limit=-1)

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            PeriodSelector(2026, 13)


class TestRank:

    def test_ties_share_rank(self):
        events = [
            _event("a", ContributionType.ISSUE_RESOLVED, "i1", MARCH),
            _event("b", ContributionType.ISSUE_RESOLVED, "i2", MARCH),
            _event("c", ContributionType.ISSUE_REPORTED, "i3", MARCH),
        ]
        aggregates = aggregate_events(events, PeriodSelector(2026, 3))

        assert compute_rank(aggregates, "a") == 1
        assert compute_rank(aggregates, "b") == 1
        assert compute_rank(aggregates, "c") == 3
        assert compute_rank(aggregates, "nobody") is None


class TestHistoryAndStats:

    def test_user_history(self, march_events):
        history = build_user_history("carol", march_events, 2026, yearly_rank=2)

        assert history["totals"] == {"points": 6, "contributions": 5, "categories": ["drainage"]}
        assert [bucket["month"] for bucket in history["monthlyBreakdown"]] == [3]
        assert history["categoryBreakdown"] == [{"category": "drainage", "points": 6, "contributions": 5}]
        assert history["yearlyRank"] == 2

    def test_stats(self, march_events):
        stats = build_stats(march_events, 2026, 3)

        assert stats["overview"]["totalUsers"] == 4
        assert stats["overview"]["totalPoints"] == 20
        assert [entry["month"] for entry in stats["monthlyGrowth"]] == [3, 4]
        assert stats["monthlyGrowth"][0]["uniqueUsers"] == 3
        assert stats["topCategories"][0]["category"] == "drainage"


class TestLeaderboardService:

    def _seed(self, services, clock):
        ledger = services.ledger
        ledger.record_event("alice", ContributionType.ISSUE_RESOLVED, "i1", category="drainage")
        ledger.record_event("bob", ContributionType.ISSUE_REPORTED, "i2", category="electricity")
        clock.set(datetime(2026, 4, 1, 9, 0))
        ledger.record_event("bob", ContributionType.ISSUE_RESOLVED, "i2", category="electricity")

    def test_monthly_and_yearly(self, services, clock):
        self._seed(services, clock)
        service = services.leaderboard

        march = service.get_leaderboard(PeriodSelector(2026, 3), requester_id="bob").to_dict()
        assert [row["userId"] for row in march["leaderboard"]] == ["alice", "bob"]
        assert march["requesterRank"] == 2
        assert march["period"] == "March 2026"

        year = service.get_leaderboard(PeriodSelector(2026)).to_dict()
        assert [row["userId"] for row in year["leaderboard"]] == ["bob", "alice"]
        assert year["leaderboard"][0]["totalPoints"] == 7

    def test_invalid_window(self, services):
        with pytest.raises(ValidationException):
            services.leaderboard.get_leaderboard(PeriodSelector(2026, 3), limit=0)
        with pytest.raises(ValidationException):
            services.leaderboard.get_leaderboard(PeriodSelector(2026, 3), limit=101)
        with pytest.raises(ValidationException):
            services.leaderboard.get_leaderboard(PeriodSelector(2026, 3), offset=-1)

    def test_unknown_category(self, services):
        with pytest.raises(ValidationException):
            services.leaderboard.get_leaderboard(PeriodSelector(2026, 3), category="volcano")

    def test_category_leaderboard_stats(self, services, clock):
        self._seed(services, clock)
        data = services.leaderboard.get_category_leaderboard("electricity", PeriodSelector(2026))

        assert data["stats"] == {"totalContributions": 2, "totalPoints": 7, "uniqueParticipants": 1}

    def test_user_history_has_yearly_rank(self, services, clock):
        self._seed(services, clock)
        history = services.leaderboard.get_user_contribution_history("alice", 2026)

        assert history["yearlyRank"] == 2
        assert history["totals"]["points"] == 5

    def test_user_score_without_cache(self, services):
        services.ledger.record_event("alice", ContributionType.ISSUE_REPORTED, "i1")
        score = services.leaderboard.get_user_score("alice", PeriodSelector(2026, 3))

        assert score["totalPoints"] == 2
        assert score["cached"] is False

    def test_user_score_served_from_snapshot(self, services):
        redis_service = MagicMock()
        redis_service.get_score_snapshot.return_value = {"userId": "alice", "totalPoints": 40}
        service = LeaderboardService(services.ledger, redis_service, clock=services.clock)

        score = service.get_user_score("alice", PeriodSelector(2026, 3))

        assert score == {"userId": "alice", "totalPoints": 40, "cached": True}
        redis_service.get_score_snapshot.assert_called_once_with("alice", "2026-03")

    def test_user_score_cached_on_miss(self, services):
        redis_service = MagicMock()
        redis_service.get_score_snapshot.return_value = None
        service = LeaderboardService(services.ledger, redis_service, clock=services.clock, snapshot_ttl=60)
        services.ledger.record_event("alice", ContributionType.ISSUE_REPORTED, "i1")

        service.get_user_score("alice", PeriodSelector(2026))

        user_id, label, totals, ttl = redis_service.cache_score_snapshot.call_args[0]
        assert (user_id, label, ttl) == ("alice", "2026", 60)
        assert totals["totalPoints"] == 2

    def test_refresh_snapshots(self, services):
        redis_service = MagicMock()
        redis_service.is_available.return_value = True
        redis_service.cache_score_snapshot.return_value = True
        service = LeaderboardService(services.ledger, redis_service, clock=services.clock)
        services.ledger.record_event("alice", ContributionType.ISSUE_REPORTED, "i1")
        services.ledger.record_event("bob", ContributionType.ISSUE_REPORTED, "i2")

        assert service.refresh_score_snapshots() == 2

    def test_refresh_snapshots_without_redis(self, services):
        assert services.leaderboard.refresh_score_snapshots() == 0

    def test_achievements(self, services):
        services.ledger.record_event("alice", ContributionType.ISSUE_REPORTED, "i1")
        services.ledger.record_event("alice", ContributionType.ISSUE_RESOLVED, "i1")

        data = services.leaderboard.get_achievements("alice")

        assert [a["id"] for a in data["achievements"]] == ["first_report", "first_resolution"]
        assert data["totalAchievements"] == 2
        next_types = {m["type"]: m["target"] for m in data["nextMilestones"]}
        assert next_types == {"issues_reported": 5, "issues_resolved": 5, "contribution_points": 10}

    def test_stats_default_to_current_month(self, services):
        services.ledger.record_event("alice", ContributionType.ISSUE_REPORTED, "i1", category="drainage")
        stats = services.leaderboard.get_stats()

        assert (stats["year"], stats["month"]) == (2026, 3)
        assert stats["topCategories"] == [{"category": "drainage", "points": 2, "contributions": 1}]
