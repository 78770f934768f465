# SPDX-License-Identifier: Apache-2.0

"""
Contribution ledger: append-only, idempotent record of point-earning events.

Uniqueness of (userId, type, issueId) is enforced by a unique compound index;
a duplicate insert is resolved by returning the event already stored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

from opentelemetry import trace
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from domain.contributions import build_contribution_event
from domain.leaderboard import PeriodSelector
from models.base import utc_now
from models.entities import ContributionEvent
from models.enums import ContributionType
from services.mongodb import MongoDBService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class RecordResult:
    """Outcome of a ledger write."""
    event: ContributionEvent
    created: bool


class ContributionLedger:
    """Operations over the ``contributions`` collection."""

    def __init__(self, mongodb: MongoDBService, clock: Callable[[], datetime] = utc_now):
        self.mongodb = mongodb
        self.clock = clock

    @property
    def collection(self):
        return self.mongodb.contributions

    def _find_existing(self, user_id: str, contribution_type: str, issue_id: str) -> Optional[ContributionEvent]:
        document = self.collection.find_one({
            "userId": user_id,
            "type": contribution_type,
            "issueId": issue_id
        })
        if document is None:
            return None
        return ContributionEvent.from_document(document)

    def record_event(
        self,
        user_id: str,
        contribution_type: ContributionType,
        issue_id: str,
        category: Optional[str] = None,
        points: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> RecordResult:
        """
        Insert an event unless one already exists for (user, type, issue).

        Args:
            user_id: Credited user
            contribution_type: Kind of contribution
            issue_id: Related issue
            category: Issue category
            points: Points awarded; defaults to the point table
            metadata: Extra attributes stored with the event

        Returns:
            RecordResult with the stored event and whether this call created it
        """
        contribution_type = ContributionType(contribution_type)

        with tracer.start_as_current_span("contribution_ledger.record_event") as span:
            span.set_attributes({
                "contribution.user_id": user_id,
                "contribution.type": contribution_type.value,
                "contribution.issue_id": issue_id
            })

            existing = self._find_existing(user_id, contribution_type.value, issue_id)
            if existing is not None:
                span.set_attribute("contribution.created", False)
                return RecordResult(event=existing, created=False)

            event = build_contribution_event(
                user_id=user_id,
                contribution_type=contribution_type,
                issue_id=issue_id,
                awarded_at=self.clock(),
                category=category,
                points=points,
                metadata=metadata
            )

            try:
                self.collection.insert_one(event.to_document())
            except DuplicateKeyError:
                # A concurrent writer won the insert
                existing = self._find_existing(user_id, contribution_type.value, issue_id)
                if existing is None:
                    raise
                span.set_attribute("contribution.created", False)
                logger.debug(
                    "Duplicate contribution resolved to existing event",
                    extra={"extra_fields": {
                        "user_id": user_id,
                        "type": contribution_type.value,
                        "issue_id": issue_id
                    }}
                )
                return RecordResult(event=existing, created=False)

            span.set_attribute("contribution.created", True)
            logger.info(
                "Contribution recorded",
                extra={"extra_fields": {
                    "user_id": user_id,
                    "type": contribution_type.value,
                    "issue_id": issue_id,
                    "points": event.points
                }}
            )
            return RecordResult(event=event, created=True)

    def exists(self, user_id: str, contribution_type: ContributionType, issue_id: str) -> bool:
        return self._find_existing(user_id, ContributionType(contribution_type).value, issue_id) is not None

    def find_events(
        self,
        period: Optional[PeriodSelector] = None,
        category: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Iterator[ContributionEvent]:
        """Stream events narrowed by period, category and user."""
        query: Dict[str, Any] = {}
        if period is not None:
            query["year"] = period.year
            if period.is_monthly:
                query["month"] = period.month
        if category is not None:
            query["category"] = category
        if user_id is not None:
            query["userId"] = user_id

        cursor = self.collection.find(query).sort([("createdAt", ASCENDING), ("_id", ASCENDING)])
        for document in cursor:
            yield ContributionEvent.from_document(document)

    def get_user_events(self, user_id: str) -> List[ContributionEvent]:
        return list(self.find_events(user_id=user_id))

    def get_user_totals(self, user_id: str, period: Optional[PeriodSelector] = None) -> Dict[str, Any]:
        """
        Points and contribution counts per type for a user, optionally windowed.

        Returns:
            Dictionary with total points, total contributions and a per-type map
        """
        by_type = {
            contribution_type.value: {"points": 0, "contributions": 0}
            for contribution_type in ContributionType
        }
        total_points = 0
        total_contributions = 0

        for event in self.find_events(period=period, user_id=user_id):
            by_type[event.type]["points"] += event.points
            by_type[event.type]["contributions"] += 1
            total_points += event.points
            total_contributions += 1

        return {
            "userId": user_id,
            "year": period.year if period else None,
            "month": period.month if period else None,
            "totalPoints": total_points,
            "totalContributions": total_contributions,
            "byType": by_type
        }
