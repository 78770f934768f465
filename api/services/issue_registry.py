# SPDX-License-Identifier: Apache-2.0

"""
Issue registry: canonical MongoDB store of issues and their embedded timelines.

Status writes go through ``compare_and_set_status`` only, which applies the
status change and the timeline append as one conditional update.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from opentelemetry import trace
from pymongo import DESCENDING, ReturnDocument

from domain.errors import NotFoundException
from domain.metrics import resolution_rate
from domain.transitions import OPEN_ASSIGNMENT_STATUSES, TERMINAL_STATUSES
from models.entities import Comment, Issue, TimelineEntry
from models.enums import IssueStatus
from services.mongodb import MongoDBService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _status_values(statuses: Iterable[str]) -> List[str]:
    return [IssueStatus(status).value for status in statuses]


class IssueRegistry:
    """Persistence operations over the ``issues`` collection."""

    def __init__(self, mongodb: MongoDBService):
        self.mongodb = mongodb

    @property
    def collection(self):
        return self.mongodb.issues

    def insert(self, issue: Issue) -> Issue:
        with tracer.start_as_current_span("issue_registry.insert") as span:
            span.set_attributes({"issue.id": issue.id, "issue.category": issue.category})
            self.collection.insert_one(issue.to_document())
            logger.info(
                "Issue stored",
                extra={"extra_fields": {"issue_id": issue.id, "reporter_id": issue.reporter_id}}
            )
            return issue

    def find(self, issue_id: str) -> Optional[Issue]:
        document = self.collection.find_one({"_id": issue_id})
        if document is None:
            return None
        return Issue.from_document(document)

    def get(self, issue_id: str) -> Issue:
        """Load an issue or raise NotFoundException."""
        issue = self.find(issue_id)
        if issue is None:
            raise NotFoundException(f"Issue {issue_id} not found")
        return issue

    def compare_and_set_status(
        self,
        issue_id: str,
        expected_status: str,
        updates: Dict[str, Any],
        timeline_entry: TimelineEntry
    ) -> Optional[Issue]:
        """
        Apply a status change only if the persisted status still matches.

        Args:
            issue_id: Issue to update
            expected_status: Status read before validating the transition
            updates: Camel-cased fields to set, including the new status
            timeline_entry: Entry appended in the same update

        Returns:
            The updated issue, or None when the filter did not match
        """
        with tracer.start_as_current_span("issue_registry.compare_and_set_status") as span:
            span.set_attributes({
                "issue.id": issue_id,
                "issue.expected_status": expected_status,
                "issue.target_status": updates.get("status", "")
            })

            document = self.collection.find_one_and_update(
                {"_id": issue_id, "status": expected_status},
                {
                    "$set": updates,
                    "$push": {"timeline": timeline_entry.model_dump(by_alias=True)}
                },
                return_document=ReturnDocument.AFTER
            )

            span.set_attribute("issue.updated", document is not None)
            if document is None:
                return None
            return Issue.from_document(document)

    def add_upvoter(self, issue_id: str, user_id: str, now: datetime) -> bool:
        """Add the user to the upvoter set; False if already present or missing."""
        result = self.collection.update_one(
            {"_id": issue_id, "upvoterIds": {"$ne": user_id}},
            {"$addToSet": {"upvoterIds": user_id}, "$set": {"updatedAt": now}}
        )
        return result.modified_count > 0

    def remove_upvoter(self, issue_id: str, user_id: str, now: datetime) -> bool:
        result = self.collection.update_one(
            {"_id": issue_id, "upvoterIds": user_id},
            {"$pull": {"upvoterIds": user_id}, "$set": {"updatedAt": now}}
        )
        return result.modified_count > 0

    def push_comment(self, issue_id: str, comment: Comment) -> Optional[Issue]:
        document = self.collection.find_one_and_update(
            {"_id": issue_id},
            {
                "$push": {"comments": comment.model_dump(by_alias=True)},
                "$set": {"updatedAt": comment.timestamp}
            },
            return_document=ReturnDocument.AFTER
        )
        if document is None:
            return None
        return Issue.from_document(document)

    def list_by_authority(self, authority_id: str, statuses: Optional[Iterable[str]] = None) -> List[Issue]:
        query: Dict[str, Any] = {"assignedAuthorityId": authority_id}
        if statuses is not None:
            query["status"] = {"$in": _status_values(statuses)}
        return [Issue.from_document(document) for document in self.collection.find(query)]

    def page(self, query: Dict[str, Any], page: int = 1, page_size: int = 20) -> Tuple[List[Issue], int]:
        """
        One page of matching issues, newest first.

        Returns:
            The issues on the page and the total number of matches
        """
        with tracer.start_as_current_span("issue_registry.page") as span:
            span.set_attributes({"pagination.page": page, "pagination.page_size": page_size})
            total = self.collection.count_documents(query)
            cursor = (
                self.collection.find(query)
                .sort("createdAt", DESCENDING)
                .skip((page - 1) * page_size)
                .limit(page_size)
            )
            span.set_attribute("pagination.total", total)
            return [Issue.from_document(document) for document in cursor], total

    def list_by_status(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Issue], int]:
        """Worklist over the whole registry, e.g. the pending moderation queue."""
        query: Dict[str, Any] = {}
        if status:
            query["status"] = IssueStatus(status).value
        if category:
            query["category"] = category
        if priority:
            query["priority"] = priority
        return self.page(query, page, page_size)

    def page_by_authority(
        self,
        authority_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Issue], int]:
        """Issues assigned to one authority, filtered by status and priority."""
        query: Dict[str, Any] = {"assignedAuthorityId": authority_id}
        if status:
            query["status"] = IssueStatus(status).value
        if priority:
            query["priority"] = priority
        return self.page(query, page, page_size)

    def count_open_by_authority(self, authority_ids: Iterable[str]) -> Dict[str, int]:
        """Assigned plus in_progress issue count per authority id."""
        open_statuses = [status.value for status in OPEN_ASSIGNMENT_STATUSES]
        return {
            authority_id: self.collection.count_documents({
                "assignedAuthorityId": authority_id,
                "status": {"$in": open_statuses}
            })
            for authority_id in authority_ids
        }

    def resolution_rates(self, authority_ids: Iterable[str]) -> Dict[str, float]:
        """Resolved or closed share of every issue ever assigned, per authority id."""
        resolved_statuses = [IssueStatus.RESOLVED.value, IssueStatus.CLOSED.value]
        rates = {}
        for authority_id in authority_ids:
            total = self.collection.count_documents({"assignedAuthorityId": authority_id})
            resolved = self.collection.count_documents({
                "assignedAuthorityId": authority_id,
                "status": {"$in": resolved_statuses}
            })
            rates[authority_id] = resolution_rate(resolved, total)
        return rates

    def find_created_since(self, since: Optional[datetime] = None) -> List[Issue]:
        query = {"createdAt": {"$gte": since}} if since else {}
        cursor = self.collection.find(query).sort("createdAt", DESCENDING)
        return [Issue.from_document(document) for document in cursor]

    def find_by_status(self, statuses: Iterable[str]) -> List[Issue]:
        query = {"status": {"$in": _status_values(statuses)}}
        return [Issue.from_document(document) for document in self.collection.find(query)]

    def find_expired_terminal(self, cutoff: datetime) -> List[str]:
        """Ids of terminal issues last updated before the cutoff."""
        cursor = self.collection.find(
            {
                "status": {"$in": [status.value for status in TERMINAL_STATUSES]},
                "updatedAt": {"$lt": cutoff}
            },
            {"_id": 1}
        )
        return [document["_id"] for document in cursor]

    def delete_many(self, issue_ids: List[str]) -> int:
        if not issue_ids:
            return 0
        result = self.collection.delete_many({"_id": {"$in": issue_ids}})
        logger.warning(
            "Issues purged",
            extra={"extra_fields": {"count": result.deleted_count}}
        )
        return result.deleted_count

    def unassign_authority(self, authority_id: str, now: datetime) -> int:
        """Clear the authority from every issue that references it."""
        result = self.collection.update_many(
            {"assignedAuthorityId": authority_id},
            {"$set": {"assignedAuthorityId": None, "updatedAt": now}}
        )
        return result.modified_count
