# SPDX-License-Identifier: Apache-2.0

"""
Community impact and resolution-time analytics over the issue registry.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List

from opentelemetry import trace

from domain.errors import ValidationException
from domain.metrics import RESOLVED_STATUSES, median, average, resolution_rate, summarize_resolution_times
from models.base import utc_now
from models.entities import Issue
from services.issue_registry import IssueRegistry

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _group_impact(issues: List[Issue], key: Callable[[Issue], Any]) -> List[Dict[str, Any]]:
    groups: Dict[Any, List[Issue]] = {}
    for issue in issues:
        value = key(issue)
        if value is None:
            continue
        groups.setdefault(value, []).append(issue)

    rows = []
    for value, members in groups.items():
        resolved = [issue for issue in members if issue.status in RESOLVED_STATUSES]
        hours = [issue.actual_resolution_hours for issue in resolved if issue.actual_resolution_hours is not None]
        rows.append({
            "key": value,
            "totalIssues": len(members),
            "resolvedIssues": len(resolved),
            "resolutionRate": resolution_rate(len(resolved), len(members)),
            "averageResolutionHours": average(hours),
            "medianResolutionHours": median(hours)
        })

    rows.sort(key=lambda row: (-row["totalIssues"], str(row["key"])))
    return rows


class AnalyticsService:
    """Read-only summaries for dashboards."""

    def __init__(self, issues: IssueRegistry, clock: Callable[[], datetime] = utc_now):
        self.issues = issues
        self.clock = clock

    def community_impact(self, timeframe_days: int = 30) -> Dict[str, Any]:
        """
        Issue throughput over the last ``timeframe_days`` days.

        Args:
            timeframe_days: Window size, 1 to 365

        Returns:
            Overview plus per-category and per-district breakdowns
        """
        if timeframe_days < 1 or timeframe_days > 365:
            raise ValidationException(
                "Invalid timeframe",
                [{"field": "timeframe", "message": "must be between 1 and 365 days"}]
            )

        with tracer.start_as_current_span("analytics.community_impact") as span:
            span.set_attribute("analytics.timeframe_days", timeframe_days)

            since = self.clock() - timedelta(days=timeframe_days)
            issues = self.issues.find_created_since(since)
            summary = summarize_resolution_times(issues)
            resolved_count = sum(1 for issue in issues if issue.status in RESOLVED_STATUSES)

            span.set_attribute("analytics.issues", len(issues))
            return {
                "timeframeDays": timeframe_days,
                "since": since,
                "overview": {
                    "totalIssues": len(issues),
                    "resolvedIssues": resolved_count,
                    "resolutionRate": resolution_rate(resolved_count, len(issues)),
                    "averageResolutionHours": summary.average_hours,
                    "medianResolutionHours": summary.median_hours
                },
                "categoryImpact": [
                    dict(row, category=row.pop("key"))
                    for row in _group_impact(issues, lambda issue: issue.category)
                ],
                "districtImpact": [
                    dict(row, district=row.pop("key"))
                    for row in _group_impact(issues, lambda issue: issue.location.district)
                ]
            }

    def resolution_time_summary(self) -> Dict[str, Any]:
        """Average and median resolution hours across every resolved issue."""
        summary = summarize_resolution_times(self.issues.find_by_status(RESOLVED_STATUSES))
        return {
            "sampleSize": summary.sample_size,
            "averageResolutionHours": summary.average_hours,
            "medianResolutionHours": summary.median_hours
        }
