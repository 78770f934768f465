# SPDX-License-Identifier: Apache-2.0

"""
Leaderboard aggregation domain logic.

One aggregation core folds contribution events into per-user totals. Monthly
and yearly views differ only in the period-key function used to window the
events; sorting, pagination and rank computation are shared.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from models.entities import ContributionEvent

PeriodKey = Tuple[int, ...]
PeriodKeyFunction = Callable[[ContributionEvent], PeriodKey]

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December"
]


def monthly_period_key(event: ContributionEvent) -> PeriodKey:
    return (event.year, event.month)


def yearly_period_key(event: ContributionEvent) -> PeriodKey:
    return (event.year,)


@dataclass(frozen=True)
class PeriodSelector:
    """A (year, month) or (year) window over the ledger."""
    year: int
    month: Optional[int] = None

    def __post_init__(self):
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {self.month}")

    @property
    def is_monthly(self) -> bool:
        return self.month is not None

    @property
    def key(self) -> PeriodKey:
        if self.is_monthly:
            return (self.year, self.month)
        return (self.year,)

    @property
    def key_function(self) -> PeriodKeyFunction:
        return monthly_period_key if self.is_monthly else yearly_period_key

    @property
    def label(self) -> str:
        if self.is_monthly:
            return f"{MONTH_NAMES[self.month - 1]} {self.year}"
        return str(self.year)


@dataclass
class MonthlyBucket:
    """Per-month slice of a user's contributions."""
    month: int
    points: int = 0
    contributions: int = 0
    categories: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "month": self.month,
            "monthName": MONTH_NAMES[self.month - 1],
            "points": self.points,
            "contributions": self.contributions,
            "categories": self.categories,
            "types": self.types
        }


@dataclass
class UserAggregate:
    """Running totals for one user inside one period."""
    user_id: str
    total_points: int = 0
    total_contributions: int = 0
    categories: set = field(default_factory=set)
    months: Dict[int, MonthlyBucket] = field(default_factory=dict)

    def add(self, event: ContributionEvent) -> None:
        self.total_points += event.points
        self.total_contributions += 1
        if event.category:
            self.categories.add(event.category)

        bucket = self.months.get(event.month)
        if bucket is None:
            bucket = MonthlyBucket(month=event.month)
            self.months[event.month] = bucket
        bucket.points += event.points
        bucket.contributions += 1
        if event.category and event.category not in bucket.categories:
            bucket.categories.append(event.category)
        if event.type not in bucket.types:
            bucket.types.append(event.type)

    def sort_key(self) -> Tuple[int, int, str]:
        return (-self.total_points, -self.total_contributions, self.user_id)


@dataclass
class LeaderboardRow:
    """Presentation row; derived, never persisted as truth."""
    user_id: str
    position: int
    total_points: int
    total_contributions: int
    categories: List[str]
    monthly_breakdown: Optional[List[MonthlyBucket]] = None

    def to_dict(self) -> Dict:
        row = {
            "userId": self.user_id,
            "position": self.position,
            "totalPoints": self.total_points,
            "totalContributions": self.total_contributions,
            "categories": self.categories
        }
        if self.monthly_breakdown is not None:
            row["monthlyBreakdown"] = [bucket.to_dict() for bucket in self.monthly_breakdown]
        return row


@dataclass
class LeaderboardPage:
    """Sorted, paginated leaderboard plus the requester's rank."""
    period: PeriodSelector
    category: Optional[str]
    rows: List[LeaderboardRow]
    total_participants: int
    requester_rank: Optional[int]
    limit: int
    offset: int

    def to_dict(self) -> Dict:
        data = {
            "year": self.period.year,
            "period": self.period.label,
            "category": self.category,
            "leaderboard": [row.to_dict() for row in self.rows],
            "totalParticipants": self.total_participants,
            "requesterRank": self.requester_rank,
            "limit": self.limit,
            "offset": self.offset
        }
        if self.period.is_monthly:
            data["month"] = self.period.month
        return data


def aggregate_events(
    events: Iterable[ContributionEvent],
    period: PeriodSelector,
    category: Optional[str] = None
) -> Dict[str, UserAggregate]:
    """
    Group events by user within the period and optional category.

    Events outside the period are ignored, so callers may pass a superset.
    """
    key_function = period.key_function
    target_key = period.key
    aggregates: Dict[str, UserAggregate] = {}

    for event in events:
        if key_function(event) != target_key:
            continue
        if category is not None and event.category != category:
            continue

        aggregate = aggregates.get(event.user_id)
        if aggregate is None:
            aggregate = UserAggregate(user_id=event.user_id)
            aggregates[event.user_id] = aggregate
        aggregate.add(event)

    return aggregates


def sort_aggregates(aggregates: Iterable[UserAggregate]) -> List[UserAggregate]:
    """Order by points desc, contributions desc, then user id asc."""
    return sorted(aggregates, key=lambda aggregate: aggregate.sort_key())


def compute_rank(aggregates: Dict[str, UserAggregate], user_id: Optional[str]) -> Optional[int]:
    """
    Rank is one more than the number of users with strictly greater points.

    Users absent from the aggregation have no rank.
    """
    if user_id is None or user_id not in aggregates:
        return None

    points = aggregates[user_id].total_points
    return sum(1 for aggregate in aggregates.values() if aggregate.total_points > points) + 1


def build_leaderboard(
    events: Iterable[ContributionEvent],
    period: PeriodSelector,
    category: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
    requester_id: Optional[str] = None
) -> LeaderboardPage:
    """
    Compute a leaderboard page from ledger events.

    Args:
        events: Ledger events, at least those inside the period
        period: Monthly or yearly window
        category: Optional category filter
        limit: Maximum rows returned
        offset: Rows skipped after sorting
        requester_id: User whose rank is reported

    Returns:
        LeaderboardPage
    """
    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must be non-negative")

    aggregates = aggregate_events(events, period, category)
    ordered = sort_aggregates(aggregates.values())
    window = ordered[offset:offset + limit]

    rows = []
    for index, aggregate in enumerate(window):
        breakdown = None
        if not period.is_monthly:
            breakdown = [aggregate.months[month] for month in sorted(aggregate.months)]
        rows.append(LeaderboardRow(
            user_id=aggregate.user_id,
            position=offset + index + 1,
            total_points=aggregate.total_points,
            total_contributions=aggregate.total_contributions,
            categories=sorted(aggregate.categories),
            monthly_breakdown=breakdown
        ))

    return LeaderboardPage(
        period=period,
        category=category,
        rows=rows,
        total_participants=len(ordered),
        requester_rank=compute_rank(aggregates, requester_id),
        limit=limit,
        offset=offset
    )


def build_category_breakdown(events: Iterable[ContributionEvent]) -> List[Dict]:
    """Points and contributions per category, ordered by points desc then category."""
    totals: Dict[str, Dict] = {}
    for event in events:
        if not event.category:
            continue
        entry = totals.setdefault(event.category, {
            "category": event.category,
            "points": 0,
            "contributions": 0
        })
        entry["points"] += event.points
        entry["contributions"] += 1

    return sorted(totals.values(), key=lambda entry: (-entry["points"], entry["category"]))


def build_user_history(
    user_id: str,
    events: Iterable[ContributionEvent],
    year: int,
    yearly_rank: Optional[int]
) -> Dict:
    """
    Contribution history of one user for one year.

    Args:
        user_id: The user
        events: That user's events (others are ignored)
        year: Year to report
        yearly_rank: Rank in the yearly leaderboard, computed by the caller

    Returns:
        Dictionary with monthly and category breakdowns and yearly totals
    """
    user_events = [event for event in events if event.user_id == user_id and event.year == year]
    aggregates = aggregate_events(user_events, PeriodSelector(year=year))
    aggregate = aggregates.get(user_id, UserAggregate(user_id=user_id))

    return {
        "userId": user_id,
        "year": year,
        "monthlyBreakdown": [aggregate.months[month].to_dict() for month in sorted(aggregate.months)],
        "categoryBreakdown": build_category_breakdown(user_events),
        "totals": {
            "points": aggregate.total_points,
            "contributions": aggregate.total_contributions,
            "categories": sorted(aggregate.categories)
        },
        "yearlyRank": yearly_rank
    }


def summarize_events(events: Iterable[ContributionEvent]) -> Dict:
    """Totals, distinct participants and per-user average over a set of events."""
    total_points = 0
    total_contributions = 0
    users = set()
    for event in events:
        total_points += event.points
        total_contributions += 1
        users.add(event.user_id)

    return {
        "totalContributions": total_contributions,
        "totalPoints": total_points,
        "totalUsers": len(users),
        "averagePointsPerUser": round(total_points / len(users)) if users else 0
    }


def build_stats(events: List[ContributionEvent], year: int, month: int) -> Dict:
    """
    Platform-wide contribution statistics.

    Args:
        events: Every ledger event
        year: Year used for monthly growth
        month: Month used for top categories

    Returns:
        Overview, monthly growth and top categories
    """
    growth: Dict[int, Dict] = {}
    for event in events:
        if event.year != year:
            continue
        entry = growth.setdefault(event.month, {"contributions": 0, "points": 0, "users": set()})
        entry["contributions"] += 1
        entry["points"] += event.points
        entry["users"].add(event.user_id)

    monthly_growth = [
        {
            "month": month_number,
            "contributions": growth[month_number]["contributions"],
            "points": growth[month_number]["points"],
            "uniqueUsers": len(growth[month_number]["users"])
        }
        for month_number in sorted(growth)
    ]

    month_events = [event for event in events if event.year == year and event.month == month]

    return {
        "overview": summarize_events(events),
        "monthlyGrowth": monthly_growth,
        "topCategories": build_category_breakdown(month_events)
    }
