# SPDX-License-Identifier: Apache-2.0

"""
Achievement and milestone rules evaluated over a user's ledger events.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from models.entities import ContributionEvent
from models.enums import ContributionType


REPORT_MILESTONES = [1, 5, 10, 25, 50, 100]
RESOLUTION_MILESTONES = [1, 5, 10, 25, 50]
POINT_MILESTONES = [10, 50, 100, 250, 500, 1000]


@dataclass(frozen=True)
class AchievementRule:
    id: str
    title: str
    description: str
    category: str
    contribution_type: ContributionType
    threshold: int


ACHIEVEMENT_RULES = [
    AchievementRule("first_report", "First Reporter", "Submitted your first issue",
                    "reporting", ContributionType.ISSUE_REPORTED, 1),
    AchievementRule("active_reporter", "Active Reporter", "Submitted 10 issues",
                    "reporting", ContributionType.ISSUE_REPORTED, 10),
    AchievementRule("super_reporter", "Super Reporter", "Submitted 50 issues",
                    "reporting", ContributionType.ISSUE_REPORTED, 50),
    AchievementRule("first_resolution", "Problem Solver", "Had your first issue resolved",
                    "resolution", ContributionType.ISSUE_RESOLVED, 1),
    AchievementRule("solution_master", "Solution Master", "Had 10 issues resolved",
                    "resolution", ContributionType.ISSUE_RESOLVED, 10),
    AchievementRule("supporter", "Community Supporter", "Upvoted 10 issues",
                    "engagement", ContributionType.UPVOTE_GIVEN, 10),
    AchievementRule("communicator", "Communicator", "Added 5 comments",
                    "engagement", ContributionType.COMMENT_ADDED, 5),
]


def _events_by_type(events: List[ContributionEvent]) -> Dict[str, List[ContributionEvent]]:
    grouped: Dict[str, List[ContributionEvent]] = {}
    for event in sorted(events, key=lambda e: (e.created_at, e.id)):
        grouped.setdefault(event.type, []).append(event)
    return grouped


def _unlocked_at(events: List[ContributionEvent], threshold: int) -> Optional[datetime]:
    # The event that crossed the threshold
    if len(events) < threshold:
        return None
    return events[threshold - 1].created_at


def calculate_achievements(events: List[ContributionEvent]) -> List[Dict]:
    """
    Achievements unlocked by a user's ledger events.

    Each achievement carries the creation time of the event that unlocked it.
    """
    grouped = _events_by_type(events)
    achievements = []

    for rule in ACHIEVEMENT_RULES:
        typed = grouped.get(rule.contribution_type.value, [])
        unlocked_at = _unlocked_at(typed, rule.threshold)
        if unlocked_at is None:
            continue
        achievements.append({
            "id": rule.id,
            "title": rule.title,
            "description": rule.description,
            "category": rule.category,
            "unlockedAt": unlocked_at
        })

    return achievements


def _next_milestone(kind: str, current: int, milestones: List[int]) -> Optional[Dict]:
    target = next((milestone for milestone in milestones if milestone > current), None)
    if target is None:
        return None
    return {
        "type": kind,
        "current": current,
        "target": target,
        "progress": round(current / target * 100, 1)
    }


def calculate_next_milestones(events: List[ContributionEvent]) -> List[Dict]:
    """Progress towards the next report, resolution and points milestones."""
    reported = sum(1 for event in events if event.type == ContributionType.ISSUE_REPORTED.value)
    resolved = sum(1 for event in events if event.type == ContributionType.ISSUE_RESOLVED.value)
    points = sum(event.points for event in events)

    candidates = [
        _next_milestone("issues_reported", reported, REPORT_MILESTONES),
        _next_milestone("issues_resolved", resolved, RESOLUTION_MILESTONES),
        _next_milestone("contribution_points", points, POINT_MILESTONES),
    ]
    return [milestone for milestone in candidates if milestone is not None]
