# SPDX-License-Identifier: Apache-2.0

"""
Resolution-time statistics shared by analytics and authority metrics.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from models.entities import Issue, PerformanceMetrics
from models.enums import IssueStatus

from .transitions import OPEN_ASSIGNMENT_STATUSES


# Statuses counted as resolved for rates and resolution-time samples
RESOLVED_STATUSES = frozenset({IssueStatus.RESOLVED, IssueStatus.CLOSED})


@dataclass
class ResolutionSummary:
    """Average and median over resolved issues."""
    sample_size: int
    average_hours: Optional[float]
    median_hours: Optional[float]


def median(values: Iterable[float]) -> Optional[float]:
    """
    Median by sort-and-midpoint.

    Returns None for an empty sample; for an even sample the two middle
    values are averaged.
    """
    ordered = sorted(values)
    if not ordered:
        return None

    middle = len(ordered) // 2
    if len(ordered) % 2:
        return round(ordered[middle], 2)
    return round((ordered[middle - 1] + ordered[middle]) / 2, 2)


def average(values: Iterable[float]) -> Optional[float]:
    samples = list(values)
    if not samples:
        return None
    return round(sum(samples) / len(samples), 2)


def resolution_rate(resolved: int, total: int) -> float:
    """Resolved share of total as a percentage rounded to 2 decimals."""
    if total <= 0:
        return 0.0
    return round(resolved / total * 100, 2)


def resolution_hours_samples(issues: Iterable[Issue]) -> List[float]:
    """Frozen resolution hours of every resolved or closed issue."""
    return [
        issue.actual_resolution_hours
        for issue in issues
        if issue.status in RESOLVED_STATUSES and issue.actual_resolution_hours is not None
    ]


def summarize_resolution_times(issues: Iterable[Issue]) -> ResolutionSummary:
    samples = resolution_hours_samples(issues)
    return ResolutionSummary(
        sample_size=len(samples),
        average_hours=average(samples),
        median_hours=median(samples)
    )


def compute_performance_metrics(assigned_issues: List[Issue], computed_at: datetime) -> PerformanceMetrics:
    """
    Recompute an authority's performance aggregates from its assigned issues.

    Args:
        assigned_issues: Every issue currently or historically assigned
        computed_at: Timestamp recorded on the aggregate

    Returns:
        Fresh PerformanceMetrics value
    """
    open_count = sum(1 for issue in assigned_issues if issue.status in OPEN_ASSIGNMENT_STATUSES)
    resolved_count = sum(1 for issue in assigned_issues if issue.status in RESOLVED_STATUSES)
    summary = summarize_resolution_times(assigned_issues)

    return PerformanceMetrics(
        total_assigned=len(assigned_issues),
        open_issues=open_count,
        resolved_issues=resolved_count,
        resolution_rate=resolution_rate(resolved_count, len(assigned_issues)),
        average_resolution_hours=summary.average_hours,
        median_resolution_hours=summary.median_hours,
        computed_at=computed_at
    )
