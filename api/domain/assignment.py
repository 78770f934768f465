# SPDX-License-Identifier: Apache-2.0

"""
Authority candidate ranking.

Ranks authorities for an issue; never assigns one.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from models.entities import Authority, Issue


@dataclass
class CandidateAuthority:
    """An authority together with the workload figures used to rank it."""
    authority: Authority
    open_issues: int
    resolution_rate: float
    serves_location: bool

    def to_dict(self) -> Dict:
        return {
            "authorityId": self.authority.id,
            "name": self.authority.name,
            "department": self.authority.department,
            "openIssues": self.open_issues,
            "resolutionRate": self.resolution_rate,
            "servesLocation": self.serves_location
        }


def filter_eligible(authorities: List[Authority], issue: Issue) -> List[Authority]:
    """
    Active authorities of the issue's department, narrowed to those serving
    the issue's ward or district when any do.
    """
    department_matches = [
        authority for authority in authorities
        if authority.is_active() and authority.department == issue.category
    ]

    ward = issue.location.ward
    district = issue.location.district
    local_matches = [
        authority for authority in department_matches
        if authority.service_area.covers(ward, district)
    ]

    return local_matches or department_matches


def rank_candidates(
    authorities: List[Authority],
    issue: Issue,
    open_counts: Dict[str, int],
    resolution_rates: Optional[Dict[str, float]] = None
) -> List[CandidateAuthority]:
    """
    Order eligible authorities by open workload asc, resolution rate desc,
    then authority id asc.

    Args:
        authorities: Candidate pool, usually every authority of the department
        issue: Issue being routed
        open_counts: Current assigned plus in_progress count per authority id
        resolution_rates: Historical resolution rate per authority id;
            falls back to the stored performance aggregate

    Returns:
        Ordered candidate list, possibly empty
    """
    resolution_rates = resolution_rates or {}
    candidates = []

    for authority in filter_eligible(authorities, issue):
        rate = resolution_rates.get(authority.id, authority.performance.resolution_rate)
        candidates.append(CandidateAuthority(
            authority=authority,
            open_issues=open_counts.get(authority.id, 0),
            resolution_rate=rate,
            serves_location=authority.service_area.covers(issue.location.ward, issue.location.district)
        ))

    candidates.sort(key=lambda c: (c.open_issues, -c.resolution_rate, c.authority.id))
    return candidates
