# SPDX-License-Identifier: Apache-2.0

"""
Contribution point rules and event construction.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from models.entities import ContributionEvent, Issue
from models.enums import ContributionType


CONTRIBUTION_POINTS: Dict[ContributionType, int] = {
    ContributionType.ISSUE_REPORTED: 2,
    ContributionType.ISSUE_RESOLVED: 5,
    ContributionType.UPVOTE_GIVEN: 1,
    ContributionType.COMMENT_ADDED: 1,
}


def points_for(contribution_type: ContributionType) -> int:
    return CONTRIBUTION_POINTS[ContributionType(contribution_type)]


def issue_metadata(issue: Issue) -> Dict[str, Any]:
    """Issue attributes copied onto every event awarded for it."""
    metadata = {
        "priority": issue.priority,
        "ward": issue.location.ward,
        "district": issue.location.district
    }
    if issue.actual_resolution_hours is not None:
        metadata["resolutionHours"] = issue.actual_resolution_hours
    return metadata


def build_contribution_event(
    user_id: str,
    contribution_type: ContributionType,
    issue_id: str,
    awarded_at: datetime,
    category: Optional[str] = None,
    points: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> ContributionEvent:
    """
    Build a ledger event whose period key comes from the award time.

    Args:
        user_id: Credited user
        contribution_type: Kind of contribution
        issue_id: Issue the contribution relates to
        awarded_at: Award time in UTC
        category: Issue category
        points: Points awarded; defaults to the point table
        metadata: Extra attributes stored with the event

    Returns:
        Unsaved ContributionEvent
    """
    if points is None:
        points = points_for(contribution_type)

    return ContributionEvent(
        user_id=user_id,
        type=contribution_type,
        issue_id=issue_id,
        points=points,
        month=awarded_at.month,
        year=awarded_at.year,
        category=category,
        metadata=metadata or {},
        created_at=awarded_at,
        updated_at=awarded_at
    )
