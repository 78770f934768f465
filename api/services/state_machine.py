# SPDX-License-Identifier: Apache-2.0

"""
Issue state machine service.

``transition`` is the only way an issue changes status. It validates the
edge and the actor, writes the status and its timeline entry in one
compare-and-set update, records the ledger side effects and hands the
notifications to the dispatcher.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from domain.contributions import issue_metadata
from domain.errors import (
    ConflictException,
    DomainException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException
)
from domain.metrics import RESOLVED_STATUSES
from domain.transitions import (
    BULK_ACTION_TARGETS,
    build_timeline_entry,
    check_actor_can_transition,
    compute_resolution_hours,
    is_transition_allowed,
    next_timeline_timestamp,
    validate_transition_params
)
from models.base import utc_now
from models.entities import ActorContext, Comment, Issue
from models.enums import ActorRole, BulkAction, ContributionType, IssueStatus, TimelineAction
from models.requests import BulkTransitionRequest, CommentRequest, IssueDraft
from services.assignment import AssignmentResolver
from services.authority_registry import AuthorityRegistry
from services.contribution_ledger import ContributionLedger
from services.issue_registry import IssueRegistry
from services.notifier import NotificationDispatcher

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class BulkFailure:
    issue_id: str
    reason_code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"issueId": self.issue_id, "reasonCode": self.reason_code, "message": self.message}


@dataclass
class BulkResult:
    """Per-item outcome of a bulk operation; there is no global rollback."""
    successful: List[Issue] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successful": [{"issueId": issue.id, "status": issue.status} for issue in self.successful],
            "failed": [failure.to_dict() for failure in self.failed],
            "summary": {
                "total": len(self.successful) + len(self.failed),
                "successful": len(self.successful),
                "failed": len(self.failed)
            }
        }


@dataclass
class UpvoteResult:
    issue: Issue
    upvoted: bool
    awarded: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issueId": self.issue.id,
            "upvoted": self.upvoted,
            "upvoteCount": self.issue.upvote_count,
            "pointsAwarded": self.awarded
        }


class IssueStateMachine:
    """Single entry point for issue submission, status changes, upvotes and comments."""

    def __init__(
        self,
        issues: IssueRegistry,
        ledger: ContributionLedger,
        authorities: AuthorityRegistry,
        resolver: AssignmentResolver,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utc_now,
        bulk_max_workers: int = 4
    ):
        self.issues = issues
        self.ledger = ledger
        self.authorities = authorities
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.clock = clock
        self.bulk_max_workers = max(1, bulk_max_workers)

    # Submission

    def submit_issue(self, reporter_id: str, draft: Union[IssueDraft, Dict[str, Any]],
                     reporter_role: str = ActorRole.CITIZEN) -> Issue:
        """
        Store a new pending issue and award the reporter.

        Args:
            reporter_id: Verified reporter id
            draft: IssueDraft or raw mapping validated into one
            reporter_role: Role recorded on the submitted timeline entry

        Returns:
            The stored issue

        Raises:
            ValidationException: If the draft is malformed
        """
        with tracer.start_as_current_span("state_machine.submit_issue") as span:
            if not isinstance(draft, IssueDraft):
                try:
                    draft = IssueDraft.model_validate(draft)
                except ValidationError as e:
                    span.set_attribute("issue.valid", False)
                    raise ValidationException.from_pydantic(e, "Invalid issue draft")

            now = self.clock()
            issue = Issue(
                title=draft.title,
                description=draft.description,
                category=draft.category,
                priority=draft.priority,
                location=draft.location,
                media=draft.media,
                reporter_id=reporter_id,
                tags=draft.tags,
                visibility=draft.visibility,
                is_urgent=draft.is_urgent,
                estimated_resolution_hours=draft.estimated_resolution_hours,
                timeline=[build_timeline_entry(
                    TimelineAction.SUBMITTED,
                    now,
                    ActorContext(actor_id=reporter_id, role=reporter_role),
                    notes="Issue reported"
                )],
                created_at=now,
                updated_at=now
            )
            span.set_attributes({"issue.id": issue.id, "issue.category": issue.category})

            self.issues.insert(issue)
            self.ledger.record_event(
                reporter_id,
                ContributionType.ISSUE_REPORTED,
                issue.id,
                category=issue.category,
                metadata=issue_metadata(issue)
            )

            candidates = self.resolver.rank_candidates(issue)
            if candidates:
                self.dispatcher.dispatch_new_issue(issue, [candidate.authority for candidate in candidates])

            logger.info(
                "Issue submitted",
                extra={"extra_fields": {
                    "issue_id": issue.id,
                    "reporter_id": reporter_id,
                    "category": issue.category,
                    "candidate_authorities": len(candidates)
                }}
            )
            return issue

    # Transitions

    def transition(
        self,
        issue_id: str,
        actor: ActorContext,
        target_status: str,
        notes: Optional[str] = None,
        assigned_authority_id: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        estimated_resolution_hours: Optional[float] = None
    ) -> Issue:
        """
        Move an issue along one lifecycle edge.

        Raises:
            NotFoundException: Issue or assigned authority missing
            InvalidTransitionException: Edge not allowed from the persisted status
            ForbiddenException: Actor role cannot apply the edge to this issue
            ValidationException: Missing or misplaced transition parameters
            ConflictException: Status changed between read and write
        """
        with tracer.start_as_current_span("state_machine.transition") as span:
            span.set_attributes({
                "issue.id": issue_id,
                "actor.id": actor.actor_id,
                "actor.role": actor.role
            })

            try:
                target = IssueStatus(target_status)
            except ValueError:
                raise ValidationException(
                    f"Unknown status {target_status}",
                    [{"field": "status", "message": f"unknown status {target_status}"}]
                )

            issue = self.issues.get(issue_id)
            current = IssueStatus(issue.status)
            span.set_attribute("issue.current_status", current.value)
            span.set_attribute("issue.target_status", target.value)

            if not is_transition_allowed(current, target):
                raise InvalidTransitionException(current.value, target.value)

            permission = check_actor_can_transition(actor, issue, target)
            if not permission.allowed:
                raise ForbiddenException(permission.reason)

            params = validate_transition_params(
                target,
                assigned_authority_id,
                rejection_reason,
                notes=notes,
                estimated_resolution_hours=estimated_resolution_hours
            )
            if not params.is_valid:
                raise ValidationException("Invalid transition parameters", params.errors)

            authority = None
            if target == IssueStatus.ASSIGNED:
                authority = self.authorities.find(assigned_authority_id)
                if authority is None:
                    raise NotFoundException(f"Authority {assigned_authority_id} not found")
                if not authority.is_active():
                    raise ValidationException(
                        "Authority is inactive",
                        [{"field": "assigned_authority_id", "message": "authority is not active"}]
                    )

            now = next_timeline_timestamp(issue, self.clock())
            entry = build_timeline_entry(TimelineAction(target.value), now, actor, notes)
            updates: Dict[str, Any] = {"status": target.value, "updatedAt": now}

            if authority is not None:
                updates["assignedAuthorityId"] = authority.id
            if notes and actor.is_admin:
                updates["adminNotes"] = notes
            if target == IssueStatus.REJECTED and (rejection_reason or notes):
                updates["rejectionReason"] = rejection_reason or notes
            if estimated_resolution_hours is not None:
                updates["estimatedResolutionHours"] = estimated_resolution_hours
            if target == IssueStatus.RESOLVED and issue.actual_resolution_hours is None:
                updates["actualResolutionHours"] = compute_resolution_hours(issue.created_at, now)

            updated = self.issues.compare_and_set_status(issue_id, current.value, updates, entry)
            if updated is None:
                if self.issues.find(issue_id) is None:
                    raise NotFoundException(f"Issue {issue_id} not found")
                span.set_status(Status(StatusCode.ERROR, "conflict"))
                raise ConflictException(
                    f"Issue {issue_id} changed status concurrently; expected {current.value}"
                )

            if target == IssueStatus.RESOLVED:
                self._award_resolution(updated)

            self.dispatcher.dispatch_status_change(updated, current.value, target.value, actor, notes)
            if authority is not None:
                self.dispatcher.dispatch_new_issue(updated, [authority])

            logger.info(
                "Issue status changed",
                extra={"extra_fields": {
                    "issue_id": issue_id,
                    "old_status": current.value,
                    "new_status": target.value,
                    "actor_id": actor.actor_id,
                    "actor_role": actor.role
                }}
            )
            return updated

    def _award_resolution(self, issue: Issue) -> bool:
        result = self.ledger.record_event(
            issue.reporter_id,
            ContributionType.ISSUE_RESOLVED,
            issue.id,
            category=issue.category,
            metadata=issue_metadata(issue)
        )
        return result.created

    def bulk_transition(
        self,
        issue_ids: List[str],
        action: str,
        actor: ActorContext,
        assigned_authority_id: Optional[str] = None,
        reason: Optional[str] = None
    ) -> BulkResult:
        """
        Apply one action to many issues independently.

        Items run with bounded parallelism and a failing item never blocks or
        rolls back another. Results keep the order of ``issue_ids``.

        Raises:
            ValidationException: If the request itself is malformed
        """
        try:
            request = BulkTransitionRequest(
                issue_ids=issue_ids,
                action=action,
                assigned_authority_id=assigned_authority_id,
                reason=reason
            )
        except ValidationError as e:
            raise ValidationException.from_pydantic(e, "Invalid bulk request")

        target = BULK_ACTION_TARGETS[BulkAction(request.action)]

        def apply(issue_id: str):
            try:
                return self.transition(
                    issue_id,
                    actor,
                    target,
                    notes=request.reason,
                    assigned_authority_id=request.assigned_authority_id,
                    rejection_reason=request.reason if target == IssueStatus.REJECTED else None
                )
            except DomainException as e:
                return BulkFailure(issue_id, e.reason_code, e.message)
            except Exception as e:
                logger.error(
                    "Bulk item failed unexpectedly",
                    extra={"extra_fields": {"issue_id": issue_id, "error": str(e)}},
                    exc_info=True
                )
                return BulkFailure(issue_id, "InternalError", str(e))

        with tracer.start_as_current_span("state_machine.bulk_transition") as span:
            span.set_attributes({
                "bulk.action": request.action,
                "bulk.size": len(request.issue_ids),
                "actor.id": actor.actor_id
            })

            result = BulkResult()
            workers = min(self.bulk_max_workers, len(request.issue_ids))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bulk") as executor:
                for outcome in executor.map(apply, request.issue_ids):
                    if isinstance(outcome, BulkFailure):
                        result.failed.append(outcome)
                    else:
                        result.successful.append(outcome)

            span.set_attributes({
                "bulk.successful": len(result.successful),
                "bulk.failed": len(result.failed)
            })
            logger.info(
                "Bulk action completed",
                extra={"extra_fields": {
                    "action": request.action,
                    "successful": len(result.successful),
                    "failed": len(result.failed)
                }}
            )
            return result

    # Engagement

    def toggle_upvote(self, issue_id: str, user_id: str) -> UpvoteResult:
        """
        Add or remove the user's upvote.

        Only the first toggle-on awards a point; later toggles neither
        re-award nor retract it.
        """
        with tracer.start_as_current_span("state_machine.toggle_upvote") as span:
            span.set_attributes({"issue.id": issue_id, "user.id": user_id})

            issue = self.issues.get(issue_id)
            now = self.clock()
            awarded = False

            upvoted = self.issues.add_upvoter(issue_id, user_id, now)
            if upvoted:
                result = self.ledger.record_event(
                    user_id,
                    ContributionType.UPVOTE_GIVEN,
                    issue_id,
                    category=issue.category
                )
                awarded = result.created
            else:
                self.issues.remove_upvoter(issue_id, user_id, now)

            span.set_attributes({"upvote.added": upvoted, "upvote.awarded": awarded})
            return UpvoteResult(issue=self.issues.get(issue_id), upvoted=upvoted, awarded=awarded)

    def add_comment(self, issue_id: str, user_id: str, message: str) -> Comment:
        """Append a comment and award comment_added once per user and issue."""
        try:
            request = CommentRequest(message=message)
        except ValidationError as e:
            raise ValidationException.from_pydantic(e, "Invalid comment")

        comment = Comment(user_id=user_id, message=request.message, timestamp=self.clock())
        updated = self.issues.push_comment(issue_id, comment)
        if updated is None:
            raise NotFoundException(f"Issue {issue_id} not found")

        self.ledger.record_event(
            user_id,
            ContributionType.COMMENT_ADDED,
            issue_id,
            category=updated.category
        )
        logger.info(
            "Comment added",
            extra={"extra_fields": {"issue_id": issue_id, "user_id": user_id}}
        )
        return comment

    def reconcile_resolution_awards(self) -> int:
        """Record any missing issue_resolved events; returns how many were created."""
        created = 0
        for issue in self.issues.find_by_status(RESOLVED_STATUSES):
            if self._award_resolution(issue):
                created += 1
        return created
