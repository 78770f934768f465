# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the civic issue tracker.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any, Tuple
from pydantic import BaseModel, Field, field_validator, ConfigDict
from .base import BaseEntity, BaseValue, generate_object_id, utc_now
from .enums import (
    IssueStatus,
    IssueCategory,
    IssuePriority,
    IssueVisibility,
    TimelineAction,
    MediaType,
    ContributionType,
    AuthorityDepartment,
    AuthorityStatus,
    ActorRole
)


class Coordinates(BaseValue):
    """Geographic coordinates."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")


class Location(BaseValue):
    """Where an issue was reported."""

    address: str = Field(..., min_length=1, max_length=300, description="Street address")
    coordinates: Coordinates
    landmark: Optional[str] = Field(None, max_length=200)
    ward: Optional[str] = Field(None, max_length=100)
    district: Optional[str] = Field(None, max_length=100)

    @field_validator('address')
    @classmethod
    def validate_address(cls, v):
        """Validate address."""
        if not v.strip():
            raise ValueError('Location address cannot be empty')
        return v.strip()


class MediaReference(BaseValue):
    """Opaque reference returned by the media store."""

    type: MediaType
    url: str = Field(..., min_length=1)
    public_id: Optional[str] = None
    filename: Optional[str] = None
    size: Optional[int] = Field(None, ge=0)
    uploaded_at: datetime = Field(default_factory=utc_now)


class TimelineEntry(BaseValue):
    """One entry of an issue's append-only audit log."""

    action: TimelineAction
    timestamp: datetime
    actor_id: Optional[str] = None
    actor_role: Optional[ActorRole] = None
    notes: str = ""


class Comment(BaseValue):
    """Citizen comment on an issue."""

    id: str = Field(default_factory=generate_object_id)
    user_id: str
    message: str = Field(..., min_length=1, max_length=300)
    timestamp: datetime = Field(default_factory=utc_now)


class Issue(BaseEntity):
    """
    Reported civic issue.

    Instances are immutable: status, timeline and resolution time change only
    through the issue state machine, which persists a new version.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1, max_length=100, description="Issue title")
    description: str = Field(..., min_length=1, max_length=1000, description="Issue description")
    category: IssueCategory
    priority: IssuePriority = IssuePriority.MEDIUM
    location: Location
    media: List[MediaReference] = Field(default_factory=list)
    reporter_id: str
    assigned_authority_id: Optional[str] = None
    status: IssueStatus = IssueStatus.PENDING
    admin_notes: Optional[str] = Field(None, max_length=500)
    rejection_reason: Optional[str] = Field(None, max_length=300)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    upvoter_ids: List[str] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    is_urgent: bool = False
    estimated_resolution_hours: Optional[float] = Field(None, gt=0, le=8760)
    actual_resolution_hours: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    visibility: IssueVisibility = IssueVisibility.PUBLIC

    @property
    def upvote_count(self) -> int:
        return len(self.upvoter_ids)

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    def last_timeline_timestamp(self) -> Optional[datetime]:
        """Timestamp of the most recent timeline entry, if any."""
        if not self.timeline:
            return None
        return self.timeline[-1].timestamp


class ContributionEvent(BaseEntity):
    """Immutable ledger record crediting a user for one action on one issue."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    type: ContributionType
    issue_id: str
    points: int = Field(..., ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020)
    category: Optional[IssueCategory] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def period_key(self) -> Tuple[int, int]:
        return (self.year, self.month)


class AuthorityContact(BaseValue):
    """Authority contact details."""

    email: str
    phone: str = Field(..., pattern=r'^\+?[1-9]\d{0,15}$')
    office_address: str = Field(..., min_length=10, max_length=200)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        import re
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()


class ServiceArea(BaseValue):
    """Geographic area served by an authority."""

    description: str = Field(..., min_length=10, max_length=300)
    wards: List[str] = Field(default_factory=list)
    districts: List[str] = Field(default_factory=list)

    def covers(self, ward: Optional[str], district: Optional[str]) -> bool:
        """Whether the area explicitly lists the given ward or district."""
        if ward and ward in self.wards:
            return True
        if district and district in self.districts:
            return True
        return False


class PerformanceMetrics(BaseValue):
    """Derived authority performance aggregates, recomputed by a job."""

    total_assigned: int = 0
    open_issues: int = 0
    resolved_issues: int = 0
    resolution_rate: float = 0.0
    average_resolution_hours: Optional[float] = None
    median_resolution_hours: Optional[float] = None
    computed_at: Optional[datetime] = None


class Authority(BaseEntity):
    """Department responsible for resolving issues in a category and area."""

    name: str = Field(..., min_length=3, max_length=100, description="Authority name")
    department: AuthorityDepartment
    contact: AuthorityContact
    service_area: ServiceArea
    status: AuthorityStatus = AuthorityStatus.ACTIVE
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate authority name."""
        if not v.strip():
            raise ValueError('Authority name cannot be empty')
        return v.strip()

    def is_active(self) -> bool:
        return self.status == AuthorityStatus.ACTIVE


class ActorContext(BaseModel):
    """Already-verified caller identity supplied by the identity collaborator."""

    actor_id: str = Field(..., min_length=1)
    role: ActorRole

    model_config = ConfigDict(
        use_enum_values=True,
        frozen=True
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_authority(self) -> bool:
        return self.role == ActorRole.AUTHORITY
