# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the issue lifecycle rules.
"""

import pytest
from datetime import datetime

from domain.transitions import (
    ALLOWED_TRANSITIONS,
    build_timeline_entry,
    check_actor_can_transition,
    compute_resolution_hours,
    is_terminal,
    is_transition_allowed,
    next_timeline_timestamp,
    validate_transition_params
)
from models.entities import ActorContext, Issue, TimelineEntry
from models.enums import ActorRole, IssueStatus, TimelineAction


def _issue(status=IssueStatus.ASSIGNED, assigned_authority_id="auth-1", timeline=None) -> Issue:
    return Issue(
        title="Overflowing bins",
        description="Bins have not been collected for days",
        category="waste_management",
        location={"address": "Market Square", "coordinates": {"lat": 0, "lng": 0}},
        reporter_id="citizen-1",
        status=status,
        assigned_authority_id=assigned_authority_id,
        timeline=timeline or []
    )


class TestTransitionGraph:

    @pytest.mark.parametrize("current,target", [
        (IssueStatus.PENDING, IssueStatus.VERIFIED),
        (IssueStatus.PENDING, IssueStatus.REJECTED),
        (IssueStatus.VERIFIED, IssueStatus.ASSIGNED),
        (IssueStatus.ASSIGNED, IssueStatus.IN_PROGRESS),
        (IssueStatus.IN_PROGRESS, IssueStatus.RESOLVED),
        (IssueStatus.RESOLVED, IssueStatus.CLOSED),
    ])
    def test_allowed_edges(self, current, target):
        assert is_transition_allowed(current, target)

    @pytest.mark.parametrize("current,target", [
        (IssueStatus.PENDING, IssueStatus.RESOLVED),
        (IssueStatus.VERIFIED, IssueStatus.VERIFIED),
        (IssueStatus.ASSIGNED, IssueStatus.RESOLVED),
        (IssueStatus.RESOLVED, IssueStatus.IN_PROGRESS),
        (IssueStatus.CLOSED, IssueStatus.PENDING),
        (IssueStatus.REJECTED, IssueStatus.VERIFIED),
    ])
    def test_disallowed_edges(self, current, target):
        assert not is_transition_allowed(current, target)

    def test_terminal_statuses_have_no_exits(self):
        for status in (IssueStatus.REJECTED, IssueStatus.CLOSED):
            assert is_terminal(status)
            assert ALLOWED_TRANSITIONS[status] == frozenset()
        assert not is_terminal("pending")

    def test_accepts_plain_strings(self):
        assert is_transition_allowed("in_progress", "resolved")


class TestActorPermissions:

    def test_admin_may_apply_any_edge(self):
        admin = ActorContext(actor_id="admin-1", role=ActorRole.ADMIN)
        assert check_actor_can_transition(admin, _issue(IssueStatus.PENDING), IssueStatus.VERIFIED).allowed

    def test_authority_on_own_issue(self):
        actor = ActorContext(actor_id="auth-1", role=ActorRole.AUTHORITY)
        assert check_actor_can_transition(actor, _issue(), IssueStatus.IN_PROGRESS).allowed

    def test_authority_on_other_issue(self):
        actor = ActorContext(actor_id="auth-2", role=ActorRole.AUTHORITY)
        result = check_actor_can_transition(actor, _issue(), IssueStatus.IN_PROGRESS)
        assert not result.allowed
        assert "not assigned" in result.reason

    def test_authority_cannot_close(self):
        actor = ActorContext(actor_id="auth-1", role=ActorRole.AUTHORITY)
        assert not check_actor_can_transition(actor, _issue(IssueStatus.RESOLVED), IssueStatus.CLOSED).allowed

    def test_citizen_cannot_transition(self):
        actor = ActorContext(actor_id="citizen-1", role=ActorRole.CITIZEN)
        assert not check_actor_can_transition(actor, _issue(IssueStatus.PENDING), IssueStatus.VERIFIED).allowed


class TestTransitionParams:

    def test_assigned_requires_authority(self):
        result = validate_transition_params(IssueStatus.ASSIGNED, None, None)
        assert not result.is_valid
        assert result.errors[0]["field"] == "assigned_authority_id"

    def test_authority_only_on_assigned(self):
        assert not validate_transition_params(IssueStatus.VERIFIED, "auth-1", None).is_valid
        assert validate_transition_params(IssueStatus.ASSIGNED, "auth-1", None).is_valid

    def test_rejection_reason_only_on_rejected(self):
        assert not validate_transition_params(IssueStatus.VERIFIED, None, "duplicate").is_valid
        assert validate_transition_params(IssueStatus.REJECTED, None, "duplicate").is_valid

    def test_notes_fallback_must_fit_rejection_reason(self):
        result = validate_transition_params(IssueStatus.REJECTED, None, None, notes="x" * 301)
        assert not result.is_valid
        assert result.errors[0]["field"] == "notes"

        assert validate_transition_params(IssueStatus.VERIFIED, None, None, notes="x" * 301).is_valid
        assert validate_transition_params(IssueStatus.REJECTED, None, "spam", notes="x" * 400).is_valid

    def test_text_and_estimate_limits(self):
        assert not validate_transition_params(IssueStatus.VERIFIED, None, None, notes="x" * 501).is_valid
        assert not validate_transition_params(IssueStatus.REJECTED, None, "r" * 301).is_valid
        assert not validate_transition_params(
            IssueStatus.IN_PROGRESS, None, None, estimated_resolution_hours=0
        ).is_valid
        assert validate_transition_params(
            IssueStatus.IN_PROGRESS, None, None, estimated_resolution_hours=48
        ).is_valid


class TestTimeline:

    def test_timestamps_never_decrease(self):
        last = datetime(2026, 3, 10, 12, 0)
        issue = _issue(timeline=[TimelineEntry(action=TimelineAction.SUBMITTED, timestamp=last)])

        assert next_timeline_timestamp(issue, datetime(2026, 3, 10, 11, 0)) == last
        assert next_timeline_timestamp(issue, datetime(2026, 3, 10, 13, 0)) == datetime(2026, 3, 10, 13, 0)

    def test_entry_records_actor(self):
        actor = ActorContext(actor_id="admin-1", role=ActorRole.ADMIN)
        entry = build_timeline_entry(TimelineAction.VERIFIED, datetime(2026, 1, 1), actor, "looks valid")
        assert entry.actor_id == "admin-1"
        assert entry.actor_role == "admin"
        assert entry.notes == "looks valid"

    def test_entry_without_actor(self):
        entry = build_timeline_entry(TimelineAction.CLOSED, datetime(2026, 1, 1))
        assert entry.actor_id is None
        assert entry.notes == ""


class TestResolutionHours:

    def test_rounded_to_two_decimals(self):
        created = datetime(2026, 3, 1, 0, 0, 0)
        assert compute_resolution_hours(created, datetime(2026, 3, 2, 5, 0, 0)) == 29.0
        assert compute_resolution_hours(created, datetime(2026, 3, 1, 1, 20, 0)) == 1.33

    def test_never_negative(self):
        assert compute_resolution_hours(datetime(2026, 3, 2), datetime(2026, 3, 1)) == 0.0
