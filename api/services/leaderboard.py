# SPDX-License-Identifier: Apache-2.0

"""
Leaderboard service.

Reads the contribution ledger and folds it through the aggregation core in
``domain.leaderboard`` at query time. It never mutates the ledger.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from opentelemetry import trace

from domain.achievements import calculate_achievements, calculate_next_milestones
from domain.errors import ValidationException
from domain.leaderboard import (
    LeaderboardPage,
    PeriodSelector,
    aggregate_events,
    build_leaderboard,
    build_stats,
    build_user_history,
    compute_rank,
    summarize_events
)
from models.base import utc_now
from models.enums import IssueCategory
from services.contribution_ledger import ContributionLedger
from services.redis import RedisService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_LIMIT = 100


def period_label(period: PeriodSelector) -> str:
    if period.is_monthly:
        return f"{period.year}-{period.month:02d}"
    return str(period.year)


class LeaderboardService:
    """Ranked, time-windowed views computed from the ledger on demand."""

    def __init__(self, ledger: ContributionLedger, redis_service: Optional[RedisService] = None,
                 clock: Callable[[], datetime] = utc_now, snapshot_ttl: int = 900):
        self.ledger = ledger
        self.redis_service = redis_service
        self.clock = clock
        self.snapshot_ttl = snapshot_ttl

    def current_period(self, monthly: bool = True) -> PeriodSelector:
        now = self.clock()
        return PeriodSelector(year=now.year, month=now.month if monthly else None)

    def _validate_window(self, limit: int, offset: int) -> None:
        errors = []
        if limit < 1 or limit > MAX_LIMIT:
            errors.append({"field": "limit", "message": f"must be between 1 and {MAX_LIMIT}"})
        if offset < 0:
            errors.append({"field": "offset", "message": "must be non-negative"})
        if errors:
            raise ValidationException("Invalid pagination parameters", errors)

    def _validate_category(self, category: Optional[str]) -> None:
        if category is None:
            return
        try:
            IssueCategory(category)
        except ValueError:
            raise ValidationException(
                f"Unknown category {category}",
                [{"field": "category", "message": f"unknown category {category}"}]
            )

    def get_leaderboard(
        self,
        period: PeriodSelector,
        category: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
        requester_id: Optional[str] = None
    ) -> LeaderboardPage:
        """
        Ranked leaderboard for a monthly or yearly period.

        An empty period yields no rows and no requester rank.
        """
        self._validate_window(limit, offset)
        self._validate_category(category)

        with tracer.start_as_current_span("leaderboard.get_leaderboard") as span:
            span.set_attributes({
                "leaderboard.period": period_label(period),
                "leaderboard.category": category or "",
                "leaderboard.limit": limit,
                "leaderboard.offset": offset
            })

            events = self.ledger.find_events(period=period, category=category)
            page = build_leaderboard(events, period, category, limit, offset, requester_id)

            span.set_attribute("leaderboard.participants", page.total_participants)
            return page

    def get_category_leaderboard(self, category: str, period: PeriodSelector,
                                 limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        """Category leaderboard plus participation totals for the category."""
        page = self.get_leaderboard(period, category=category, limit=limit, offset=offset)
        data = page.to_dict()
        summary = summarize_events(self.ledger.find_events(period=period, category=category))
        data["stats"] = {
            "totalContributions": summary["totalContributions"],
            "totalPoints": summary["totalPoints"],
            "uniqueParticipants": summary["totalUsers"]
        }
        return data

    def get_user_contribution_history(self, user_id: str, year: int) -> Dict[str, Any]:
        """Monthly and category breakdown of a user's year, with yearly rank."""
        period = PeriodSelector(year=year)
        year_events = list(self.ledger.find_events(period=period))
        rank = compute_rank(aggregate_events(year_events, period), user_id)
        return build_user_history(user_id, year_events, year, rank)

    def get_user_score(self, user_id: str, period: PeriodSelector) -> Dict[str, Any]:
        """
        User totals for a period, served from the snapshot cache when fresh.
        """
        label = period_label(period)
        if self.redis_service is not None:
            cached = self.redis_service.get_score_snapshot(user_id, label)
            if cached is not None:
                cached["cached"] = True
                return cached

        totals = self.ledger.get_user_totals(user_id, period)
        if self.redis_service is not None:
            self.redis_service.cache_score_snapshot(user_id, label, totals, self.snapshot_ttl)
        totals["cached"] = False
        return totals

    def refresh_score_snapshots(self, period: Optional[PeriodSelector] = None) -> int:
        """Recompute the snapshot of every user active in the period."""
        if self.redis_service is None or not self.redis_service.is_available():
            return 0

        period = period or self.current_period()
        label = period_label(period)
        refreshed = 0
        for user_id in aggregate_events(self.ledger.find_events(period=period), period):
            totals = self.ledger.get_user_totals(user_id, period)
            if self.redis_service.cache_score_snapshot(user_id, label, totals, self.snapshot_ttl):
                refreshed += 1
        return refreshed

    def get_achievements(self, user_id: str) -> Dict[str, Any]:
        events = self.ledger.get_user_events(user_id)
        achievements = calculate_achievements(events)
        return {
            "userId": user_id,
            "achievements": achievements,
            "totalAchievements": len(achievements),
            "recentAchievements": sorted(achievements, key=lambda a: a["unlockedAt"], reverse=True)[:3],
            "nextMilestones": calculate_next_milestones(events)
        }

    def get_stats(self, year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, Any]:
        now = self.clock()
        year = year or now.year
        month = month or now.month
        stats = build_stats(list(self.ledger.find_events()), year, month)
        stats["year"] = year
        stats["month"] = month
        return stats
