# SPDX-License-Identifier: Apache-2.0

"""
Tests for authority candidate ranking.
"""

from domain.assignment import filter_eligible, rank_candidates
from models.entities import Authority, Issue
from conftest import make_authority_request


def _authority(authority_id, department="drainage", wards=None, status="active", rate=0.0) -> Authority:
    return Authority(
        id=authority_id,
        name=f"Authority {authority_id}",
        department=department,
        contact={"email": f"{authority_id}@city.gov", "phone": "+5511999990000",
                 "office_address": "City Hall, Avenue 1, Floor 3"},
        service_area={"description": "Somewhere in the city", "wards": wards or []},
        status=status,
        performance={"resolution_rate": rate}
    )


def _issue(ward="W1") -> Issue:
    return Issue(
        title="Blocked drain",
        description="Drain blocked after the storm",
        category="drainage",
        location={"address": "River Road 3", "coordinates": {"lat": 0, "lng": 0}, "ward": ward},
        reporter_id="citizen-1"
    )


class TestRankCandidates:

    def test_filters_department_and_status(self):
        authorities = [
            _authority("a"),
            _authority("b", department="electricity"),
            _authority("c", status="inactive"),
        ]
        assert [a.id for a in filter_eligible(authorities, _issue())] == ["a"]

    def test_local_authorities_preferred(self):
        authorities = [_authority("a"), _authority("b", wards=["W1"])]
        assert [a.id for a in filter_eligible(authorities, _issue())] == ["b"]

    def test_falls_back_to_department_when_none_local(self):
        authorities = [_authority("a"), _authority("b", wards=["W9"])]
        assert [a.id for a in filter_eligible(authorities, _issue())] == ["a", "b"]

    def test_orders_by_workload_then_rate_then_id(self):
        authorities = [_authority("c"), _authority("b"), _authority("a"), _authority("d")]
        open_counts = {"a": 2, "b": 1, "c": 1, "d": 1}
        rates = {"a": 90.0, "b": 50.0, "c": 50.0, "d": 75.0}

        ranked = rank_candidates(authorities, _issue(), open_counts, rates)

        assert [candidate.authority.id for candidate in ranked] == ["d", "b", "c", "a"]
        assert ranked[0].to_dict()["openIssues"] == 1

    def test_stored_rate_used_without_live_rates(self):
        authorities = [_authority("a", rate=10.0), _authority("b", rate=60.0)]
        ranked = rank_candidates(authorities, _issue(), {})
        assert [candidate.authority.id for candidate in ranked] == ["b", "a"]

    def test_empty_when_nobody_eligible(self):
        assert rank_candidates([_authority("a", department="police")], _issue(), {}) == []


class TestAssignmentResolver:

    def test_uses_live_workload(self, services, issue_draft, admin):
        busy = services.authorities.create(make_authority_request(name="Road Works A", email="a@city.gov"))
        idle = services.authorities.create(make_authority_request(name="Road Works B", email="b@city.gov"))

        first = services.state_machine.submit_issue("citizen-1", issue_draft)
        services.state_machine.transition(first.id, admin, "verified")
        services.state_machine.transition(first.id, admin, "assigned", assigned_authority_id=busy.id)

        second = services.state_machine.submit_issue("citizen-2", issue_draft)
        ranked = services.resolver.rank_candidates(second)

        assert [candidate.authority.id for candidate in ranked] == [idle.id, busy.id]
        assert ranked[1].open_issues == 1
        assert services.issues.get(second.id).assigned_authority_id is None
