# SPDX-License-Identifier: Apache-2.0

"""
Authority assignment resolver.

Loads the candidate pool and workload figures, then delegates ordering to
the pure ranking in ``domain.assignment``. It never assigns an issue.
"""

import logging
from typing import List

from opentelemetry import trace

from domain.assignment import CandidateAuthority, rank_candidates
from models.entities import Issue
from models.enums import AuthorityStatus
from services.authority_registry import AuthorityRegistry
from services.issue_registry import IssueRegistry

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AssignmentResolver:
    """Ranks candidate authorities for an issue."""

    def __init__(self, authorities: AuthorityRegistry, issues: IssueRegistry):
        self.authorities = authorities
        self.issues = issues

    def rank_candidates(self, issue: Issue) -> List[CandidateAuthority]:
        with tracer.start_as_current_span("assignment.rank_candidates") as span:
            span.set_attributes({"issue.id": issue.id, "issue.category": issue.category})

            pool = self.authorities.list(department=issue.category, status=AuthorityStatus.ACTIVE.value)
            authority_ids = [authority.id for authority in pool]
            candidates = rank_candidates(
                pool,
                issue,
                self.issues.count_open_by_authority(authority_ids),
                self.issues.resolution_rates(authority_ids)
            )

            span.set_attribute("assignment.candidates", len(candidates))
            logger.debug(
                "Ranked candidate authorities",
                extra={"extra_fields": {
                    "issue_id": issue.id,
                    "candidates": [candidate.authority.id for candidate in candidates]
                }}
            )
            return candidates
