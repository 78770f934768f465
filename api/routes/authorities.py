# SPDX-License-Identifier: Apache-2.0

"""
Authority management endpoints.

Reads are public except the assigned-issue worklist; creation, updates and
deletion require the admin role.
"""

from flask import request, jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
import logging

from domain.errors import ForbiddenException
from middleware.auth import require_actor
from models.enums import ActorRole
from models.requests import AuthorityPath, CreateAuthorityRequest, IssueListQuery, UpdateAuthorityRequest
from routes.issues import issue_page_to_dict
from utils.request import RequestParser, serialize

logger = logging.getLogger(__name__)

authorities_tag = Tag(name="Authorities", description="Responsible departments and their performance")
authorities_bp = APIBlueprint(
    'authorities',
    __name__,
    url_prefix='/api/authorities',
    abp_tags=[authorities_tag]
)


@authorities_bp.get('')
def list_authorities():
    """List authorities, optionally filtered by department and status."""
    authorities = current_app.services.authorities.list(
        department=request.args.get('department') or None,
        status=request.args.get('status') or None
    )
    return jsonify({
        "authorities": [serialize(authority) for authority in authorities],
        "total": len(authorities)
    }), 200


@authorities_bp.post('')
@require_actor(ActorRole.ADMIN.value)
def create_authority():
    request_body = RequestParser.parse_body(CreateAuthorityRequest, "Invalid authority")
    authority = current_app.services.authorities.create(request_body)
    return jsonify(serialize(authority)), 201


@authorities_bp.get('/<string:authority_id>')
def get_authority(path: AuthorityPath):
    authority = current_app.services.authorities.get(path.authority_id)
    return jsonify(serialize(authority)), 200


@authorities_bp.put('/<string:authority_id>')
@require_actor(ActorRole.ADMIN.value)
def update_authority(path: AuthorityPath):
    request_body = RequestParser.parse_body(UpdateAuthorityRequest, "Invalid authority update")
    authority = current_app.services.authorities.update(path.authority_id, request_body)
    return jsonify(serialize(authority)), 200


@authorities_bp.delete('/<string:authority_id>')
@require_actor(ActorRole.ADMIN.value)
def delete_authority(path: AuthorityPath):
    """
    Delete an authority.

    Refused while it still holds assigned or in_progress issues.
    """
    unassigned = current_app.services.authorities.delete(path.authority_id)
    return jsonify({"authorityId": path.authority_id, "deleted": True, "unassignedIssues": unassigned}), 200


@authorities_bp.get('/<string:authority_id>/metrics')
def authority_metrics(path: AuthorityPath):
    """Recompute and return the authority's performance metrics."""
    metrics = current_app.services.authorities.refresh_metrics(path.authority_id)
    return jsonify({"authorityId": path.authority_id, "performance": serialize(metrics)}), 200


@authorities_bp.get('/<string:authority_id>/issues')
@require_actor(ActorRole.ADMIN.value, ActorRole.AUTHORITY.value)
def authority_issues(path: AuthorityPath):
    """
    Issues assigned to an authority, newest first.

    Authorities may only read their own worklist.
    """
    actor = g.actor
    if actor.role == ActorRole.AUTHORITY.value and actor.actor_id != path.authority_id:
        raise ForbiddenException("Authorities may only list their own issues")

    query = RequestParser.parse_query(IssueListQuery)
    services = current_app.services
    authority = services.authorities.get(path.authority_id)
    issues, total = services.issues.page_by_authority(
        authority.id,
        status=query.status,
        priority=query.priority,
        page=query.page,
        page_size=query.page_size
    )

    body = issue_page_to_dict(issues, total, query.page, query.page_size)
    body["authority"] = {"id": authority.id, "name": authority.name, "department": authority.department}
    return jsonify(body), 200
