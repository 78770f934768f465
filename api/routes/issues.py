# SPDX-License-Identifier: Apache-2.0

"""
Issue lifecycle endpoints.

Submission, status transitions, bulk moderation, upvotes and comments. All
status changes go through the issue state machine.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging
from typing import Any, Dict, List

from middleware.auth import require_actor
from models.entities import Issue
from models.enums import ActorRole
from models.requests import (
    BulkTransitionRequest, CommentRequest, IssueDraft, IssueListQuery, IssuePath, TransitionRequest
)
from utils.request import RequestParser, serialize

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

issues_tag = Tag(name="Issues", description="Civic issue lifecycle")
issues_bp = APIBlueprint(
    'issues',
    __name__,
    url_prefix='/api/issues',
    abp_tags=[issues_tag]
)


def issue_to_dict(issue: Issue) -> Dict[str, Any]:
    data = serialize(issue)
    data["upvoteCount"] = issue.upvote_count
    data["commentCount"] = issue.comment_count
    return data


def issue_page_to_dict(issues: List[Issue], total: int, page: int, page_size: int) -> Dict[str, Any]:
    return {
        "issues": [issue_to_dict(issue) for issue in issues],
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": (total + page_size - 1) // page_size
        }
    }


@issues_bp.get('')
@require_actor(ActorRole.ADMIN.value)
def list_issues():
    """
    Moderation worklist, newest first.

    ``?status=pending`` is the queue of issues awaiting verification.
    """
    query = RequestParser.parse_query(IssueListQuery)

    with tracer.start_as_current_span("issues.list") as span:
        span.set_attributes({"filter.status": query.status or "", "pagination.page": query.page})
        issues, total = current_app.services.issues.list_by_status(
            status=query.status,
            category=query.category,
            priority=query.priority,
            page=query.page,
            page_size=query.page_size
        )
        return jsonify(issue_page_to_dict(issues, total, query.page, query.page_size)), 200


@issues_bp.post('')
@require_actor()
def submit_issue():
    """
    Submit a new issue.

    The issue starts in pending and the reporter earns the report points.
    """
    actor = g.actor
    draft = RequestParser.parse_body(IssueDraft, "Invalid issue draft")

    issue = current_app.services.state_machine.submit_issue(actor.actor_id, draft, actor.role)
    return jsonify(issue_to_dict(issue)), 201


@issues_bp.post('/bulk')
@require_actor(ActorRole.ADMIN.value)
def bulk_transition():
    """
    Apply verify, reject or assign to many issues.

    Each item succeeds or fails on its own; the response lists both.
    """
    request_body = RequestParser.parse_body(BulkTransitionRequest, "Invalid bulk request")

    with tracer.start_as_current_span("issues.bulk_transition") as span:
        span.set_attributes({
            "bulk.action": request_body.action,
            "bulk.size": len(request_body.issue_ids)
        })
        result = current_app.services.state_machine.bulk_transition(
            request_body.issue_ids,
            request_body.action,
            g.actor,
            assigned_authority_id=request_body.assigned_authority_id,
            reason=request_body.reason
        )
        return jsonify(result.to_dict()), 200


@issues_bp.get('/<string:issue_id>')
def get_issue(path: IssuePath):
    """Get one issue with its timeline."""
    issue = current_app.services.issues.get(path.issue_id)
    return jsonify(issue_to_dict(issue)), 200


@issues_bp.get('/<string:issue_id>/candidates')
def get_candidate_authorities(path: IssuePath):
    """Ranked authorities eligible to take the issue."""
    services = current_app.services
    issue = services.issues.get(path.issue_id)
    candidates = services.resolver.rank_candidates(issue)
    return jsonify({
        "issueId": issue.id,
        "candidates": [candidate.to_dict() for candidate in candidates]
    }), 200


@issues_bp.post('/<string:issue_id>/transitions')
@require_actor()
def transition_issue(path: IssuePath):
    """Move an issue to a new status."""
    request_body = RequestParser.parse_body(TransitionRequest, "Invalid transition request")

    issue = current_app.services.state_machine.transition(
        path.issue_id,
        g.actor,
        request_body.status,
        notes=request_body.notes,
        assigned_authority_id=request_body.assigned_authority_id,
        rejection_reason=request_body.rejection_reason,
        estimated_resolution_hours=request_body.estimated_resolution_hours
    )
    return jsonify(issue_to_dict(issue)), 200


@issues_bp.post('/<string:issue_id>/upvote')
@require_actor()
def toggle_upvote(path: IssuePath):
    result = current_app.services.state_machine.toggle_upvote(path.issue_id, g.actor.actor_id)
    return jsonify(result.to_dict()), 200


@issues_bp.post('/<string:issue_id>/comments')
@require_actor()
def add_comment(path: IssuePath):
    request_body = RequestParser.parse_body(CommentRequest, "Invalid comment")
    comment = current_app.services.state_machine.add_comment(
        path.issue_id, g.actor.actor_id, request_body.message
    )
    return jsonify(serialize(comment)), 201
