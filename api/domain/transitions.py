# SPDX-License-Identifier: Apache-2.0

"""
Issue lifecycle domain logic.

This module contains pure functions for status transition validation, actor
permission checks, timeline entry construction and resolution-time
computation. Nothing here touches storage.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from models.entities import ActorContext, Issue, TimelineEntry
from models.enums import ActorRole, BulkAction, IssueStatus, TimelineAction


ALLOWED_TRANSITIONS: Dict[IssueStatus, FrozenSet[IssueStatus]] = {
    IssueStatus.PENDING: frozenset({IssueStatus.VERIFIED, IssueStatus.REJECTED}),
    IssueStatus.VERIFIED: frozenset({IssueStatus.ASSIGNED}),
    IssueStatus.ASSIGNED: frozenset({IssueStatus.IN_PROGRESS}),
    IssueStatus.IN_PROGRESS: frozenset({IssueStatus.RESOLVED}),
    IssueStatus.RESOLVED: frozenset({IssueStatus.CLOSED}),
    IssueStatus.REJECTED: frozenset(),  # Terminal state
    IssueStatus.CLOSED: frozenset(),  # Terminal state
}

TERMINAL_STATUSES = frozenset({IssueStatus.REJECTED, IssueStatus.CLOSED})

# Statuses counted as open work for an assigned authority
OPEN_ASSIGNMENT_STATUSES = frozenset({IssueStatus.ASSIGNED, IssueStatus.IN_PROGRESS})

# Statuses an assigned authority may move its own issues into
AUTHORITY_TARGET_STATUSES = frozenset({IssueStatus.IN_PROGRESS, IssueStatus.RESOLVED})

# Limits of the issue fields transition text is written into
ADMIN_NOTES_MAX_LENGTH = 500
REJECTION_REASON_MAX_LENGTH = 300
MAX_ESTIMATED_RESOLUTION_HOURS = 8760

BULK_ACTION_TARGETS: Dict[BulkAction, IssueStatus] = {
    BulkAction.VERIFY: IssueStatus.VERIFIED,
    BulkAction.REJECT: IssueStatus.REJECTED,
    BulkAction.ASSIGN: IssueStatus.ASSIGNED,
}


@dataclass
class PermissionResult:
    """Result of an actor permission check."""
    allowed: bool
    reason: Optional[str] = None


@dataclass
class TransitionParamsResult:
    """Result of transition parameter validation."""
    is_valid: bool
    errors: List[Dict[str, str]] = field(default_factory=list)


def is_transition_allowed(current_status: IssueStatus, target_status: IssueStatus) -> bool:
    """
    Check whether an edge exists in the lifecycle graph.

    Args:
        current_status: Persisted issue status
        target_status: Requested status

    Returns:
        True if the edge is allowed
    """
    return IssueStatus(target_status) in ALLOWED_TRANSITIONS.get(IssueStatus(current_status), frozenset())


def is_terminal(status: IssueStatus) -> bool:
    return IssueStatus(status) in TERMINAL_STATUSES


def check_actor_can_transition(
    actor: ActorContext,
    issue: Issue,
    target_status: IssueStatus
) -> PermissionResult:
    """
    Check whether the actor's role may apply this edge to this issue.

    Admins may apply any valid edge. Authorities may only move issues
    assigned to them into in_progress or resolved. Citizens may not
    transition issues at all.
    """
    role = ActorRole(actor.role)
    target = IssueStatus(target_status)

    if role == ActorRole.ADMIN:
        return PermissionResult(allowed=True)

    if role == ActorRole.AUTHORITY:
        if target not in AUTHORITY_TARGET_STATUSES:
            return PermissionResult(
                allowed=False,
                reason=f"Authorities may only mark issues as in_progress or resolved, not {target.value}"
            )
        if issue.assigned_authority_id != actor.actor_id:
            return PermissionResult(
                allowed=False,
                reason="Issue is not assigned to this authority"
            )
        return PermissionResult(allowed=True)

    return PermissionResult(allowed=False, reason=f"Role {role.value} cannot change issue status")


def validate_transition_params(
    target_status: IssueStatus,
    assigned_authority_id: Optional[str],
    rejection_reason: Optional[str],
    notes: Optional[str] = None,
    estimated_resolution_hours: Optional[float] = None
) -> TransitionParamsResult:
    """
    Validate the parameters that accompany a transition.

    The assigned authority id is required on the assigned edge and is not
    accepted anywhere else. Text lengths are checked against the issue
    fields they end up in; on a rejection without an explicit reason the
    notes become the rejection reason and must fit that field too.
    """
    errors = []
    target = IssueStatus(target_status)

    if target == IssueStatus.ASSIGNED and not assigned_authority_id:
        errors.append({"field": "assigned_authority_id", "message": "required when assigning an issue"})

    if target != IssueStatus.ASSIGNED and assigned_authority_id:
        errors.append({"field": "assigned_authority_id", "message": "only allowed on the assigned transition"})

    if rejection_reason is not None and target != IssueStatus.REJECTED:
        errors.append({"field": "rejection_reason", "message": "only allowed on the rejected transition"})

    if notes and len(notes) > ADMIN_NOTES_MAX_LENGTH:
        errors.append({"field": "notes", "message": f"must be at most {ADMIN_NOTES_MAX_LENGTH} characters"})

    reason = rejection_reason or notes
    if target == IssueStatus.REJECTED and reason and len(reason) > REJECTION_REASON_MAX_LENGTH:
        field_name = "rejection_reason" if rejection_reason else "notes"
        errors.append({
            "field": field_name,
            "message": f"rejection reason must be at most {REJECTION_REASON_MAX_LENGTH} characters"
        })

    if estimated_resolution_hours is not None and not (
        0 < estimated_resolution_hours <= MAX_ESTIMATED_RESOLUTION_HOURS
    ):
        errors.append({
            "field": "estimated_resolution_hours",
            "message": f"must be greater than 0 and at most {MAX_ESTIMATED_RESOLUTION_HOURS}"
        })

    return TransitionParamsResult(is_valid=len(errors) == 0, errors=errors)


def next_timeline_timestamp(issue: Issue, now: datetime) -> datetime:
    """Clamp the clock reading so timeline timestamps never decrease."""
    last = issue.last_timeline_timestamp()
    if last is not None and now < last:
        return last
    return now


def build_timeline_entry(
    action: TimelineAction,
    timestamp: datetime,
    actor: Optional[ActorContext] = None,
    notes: Optional[str] = None
) -> TimelineEntry:
    """Build a timeline entry for a status change or submission."""
    return TimelineEntry(
        action=action,
        timestamp=timestamp,
        actor_id=actor.actor_id if actor else None,
        actor_role=actor.role if actor else None,
        notes=notes or ""
    )


def compute_resolution_hours(created_at: datetime, resolved_at: datetime) -> float:
    """
    Elapsed hours between creation and resolution, rounded to 2 decimals.

    Args:
        created_at: Issue creation timestamp
        resolved_at: Time of first entry into resolved

    Returns:
        Non-negative hours
    """
    elapsed = (resolved_at - created_at).total_seconds() / 3600
    return round(max(elapsed, 0.0), 2)
