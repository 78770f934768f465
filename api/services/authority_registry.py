# SPDX-License-Identifier: Apache-2.0

"""
Authority registry: administrative CRUD for authorities and their derived
performance aggregates.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from opentelemetry import trace
from pydantic.alias_generators import to_camel
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from domain.errors import ConflictException, NotFoundException
from domain.metrics import compute_performance_metrics
from models.base import utc_now
from models.entities import Authority, PerformanceMetrics
from models.requests import CreateAuthorityRequest, UpdateAuthorityRequest
from services.issue_registry import IssueRegistry
from services.mongodb import MongoDBService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AuthorityRegistry:
    """Operations over the ``authorities`` collection."""

    def __init__(self, mongodb: MongoDBService, issues: IssueRegistry,
                 clock: Callable[[], datetime] = utc_now):
        self.mongodb = mongodb
        self.issues = issues
        self.clock = clock

    @property
    def collection(self):
        return self.mongodb.authorities

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        query: Dict = {"contact.email": email}
        if exclude_id:
            query["_id"] = {"$ne": exclude_id}
        return self.collection.find_one(query) is not None

    def create(self, request: CreateAuthorityRequest) -> Authority:
        """
        Create an authority.

        Raises:
            ConflictException: If the contact email is already registered
        """
        with tracer.start_as_current_span("authority_registry.create") as span:
            span.set_attribute("authority.department", request.department)

            if self._email_taken(request.contact.email):
                raise ConflictException(f"Authority with email {request.contact.email} already exists")

            now = self.clock()
            authority = Authority(
                name=request.name,
                department=request.department,
                contact=request.contact,
                service_area=request.service_area,
                status=request.status,
                created_at=now,
                updated_at=now
            )

            try:
                self.collection.insert_one(authority.to_document())
            except DuplicateKeyError:
                raise ConflictException(f"Authority with email {request.contact.email} already exists")

            logger.info(
                "Authority created",
                extra={"extra_fields": {"authority_id": authority.id, "department": authority.department}}
            )
            return authority

    def find(self, authority_id: str) -> Optional[Authority]:
        document = self.collection.find_one({"_id": authority_id})
        if document is None:
            return None
        return Authority.from_document(document)

    def get(self, authority_id: str) -> Authority:
        authority = self.find(authority_id)
        if authority is None:
            raise NotFoundException(f"Authority {authority_id} not found")
        return authority

    def list(self, department: Optional[str] = None, status: Optional[str] = None) -> List[Authority]:
        query: Dict = {}
        if department:
            query["department"] = department
        if status:
            query["status"] = status
        cursor = self.collection.find(query).sort("_id", ASCENDING)
        return [Authority.from_document(document) for document in cursor]

    def update(self, authority_id: str, request: UpdateAuthorityRequest) -> Authority:
        """Update the allowed fields of an authority."""
        changes = request.model_dump(exclude_none=True)
        if "contact" in changes and self._email_taken(request.contact.email, exclude_id=authority_id):
            raise ConflictException(f"Authority with email {request.contact.email} already exists")

        updates = {}
        for field_name, value in changes.items():
            attribute = getattr(request, field_name)
            if hasattr(attribute, "model_dump"):
                value = attribute.model_dump(by_alias=True)
            updates[to_camel(field_name)] = value
        updates["updatedAt"] = self.clock()

        try:
            document = self.collection.find_one_and_update(
                {"_id": authority_id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise ConflictException(f"Authority with email {request.contact.email} already exists")

        if document is None:
            raise NotFoundException(f"Authority {authority_id} not found")

        logger.info(
            "Authority updated",
            extra={"extra_fields": {"authority_id": authority_id, "fields": sorted(changes)}}
        )
        return Authority.from_document(document)

    def delete(self, authority_id: str) -> int:
        """
        Delete an authority with no open assignments.

        Historical issues that referenced it are unassigned.

        Returns:
            Number of issues unassigned

        Raises:
            NotFoundException: If the authority does not exist
            ConflictException: If it still has assigned or in_progress issues
        """
        self.get(authority_id)

        open_count = self.issues.count_open_by_authority([authority_id])[authority_id]
        if open_count > 0:
            raise ConflictException(
                f"Authority {authority_id} has {open_count} assigned or in_progress issues"
            )

        self.collection.delete_one({"_id": authority_id})
        unassigned = self.issues.unassign_authority(authority_id, self.clock())

        logger.warning(
            "Authority deleted",
            extra={"extra_fields": {"authority_id": authority_id, "unassigned_issues": unassigned}}
        )
        return unassigned

    def refresh_metrics(self, authority_id: str) -> PerformanceMetrics:
        """Recompute and store the performance aggregates of one authority."""
        self.get(authority_id)
        metrics = compute_performance_metrics(self.issues.list_by_authority(authority_id), self.clock())
        self.collection.update_one(
            {"_id": authority_id},
            {"$set": {"performance": metrics.model_dump(by_alias=True)}}
        )
        return metrics

    def refresh_all_metrics(self) -> int:
        refreshed = 0
        for authority in self.list():
            self.refresh_metrics(authority.id)
            refreshed += 1
        return refreshed

