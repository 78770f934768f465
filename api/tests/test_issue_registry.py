# SPDX-License-Identifier: Apache-2.0

"""
Tests for issue registry worklist queries.
"""

import pytest

from models.enums import IssueStatus


@pytest.fixture
def reported(services, issue_draft, clock):
    """Five issues an hour apart; the last two are low priority."""
    issues = []
    for index in range(5):
        draft = dict(issue_draft, priority="low" if index >= 3 else "high")
        issues.append(services.state_machine.submit_issue(f"citizen-{index}", draft))
        clock.advance(hours=1)
    return issues


class TestWorklists:

    def test_pending_queue_newest_first(self, services, admin, reported):
        services.state_machine.transition(reported[0].id, admin, "verified")

        issues, total = services.issues.list_by_status(status="pending")

        assert total == 4
        assert [issue.id for issue in issues] == [issue.id for issue in reversed(reported[1:])]

    def test_filters_and_pages(self, services, reported):
        first, total = services.issues.list_by_status(status="pending", page=1, page_size=2)
        last, _ = services.issues.list_by_status(status="pending", page=3, page_size=2)
        low, low_total = services.issues.list_by_status(priority="low")

        assert total == 5
        assert [issue.id for issue in first] == [reported[4].id, reported[3].id]
        assert [issue.id for issue in last] == [reported[0].id]
        assert low_total == 2
        assert {issue.priority for issue in low} == {"low"}

    def test_unknown_status_rejected(self, services):
        with pytest.raises(ValueError):
            services.issues.list_by_status(status="archived")

    def test_authority_worklist(self, services, admin, authority, authority_actor, reported):
        for issue in reported[:3]:
            services.state_machine.transition(issue.id, admin, "verified")
            services.state_machine.transition(
                issue.id, admin, "assigned", assigned_authority_id=authority.id
            )
        services.state_machine.transition(reported[0].id, authority_actor, "in_progress")

        assigned, total = services.issues.page_by_authority(authority.id)
        in_progress, in_progress_total = services.issues.page_by_authority(
            authority.id, status=IssueStatus.IN_PROGRESS.value
        )
        other, other_total = services.issues.page_by_authority("someone-else")

        assert total == 3
        assert [issue.id for issue in assigned] == [reported[2].id, reported[1].id, reported[0].id]
        assert (in_progress_total, [issue.id for issue in in_progress]) == (1, [reported[0].id])
        assert (other_total, other) == (0, [])
