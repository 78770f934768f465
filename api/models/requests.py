# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints and service calls.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from .entities import Location, MediaReference, AuthorityContact, ServiceArea
from .enums import (
    IssueCategory,
    IssuePriority,
    IssueVisibility,
    IssueStatus,
    AuthorityDepartment,
    AuthorityStatus,
    BulkAction
)


class IssueDraft(BaseModel):
    """Issue submission as received from a reporter."""

    model_config = ConfigDict(use_enum_values=True)

    title: str = Field(..., min_length=5, max_length=100, description="Issue title")
    description: str = Field(..., min_length=10, max_length=1000, description="Issue description")
    category: IssueCategory
    priority: IssuePriority = IssuePriority.MEDIUM
    location: Location
    media: List[MediaReference] = Field(default_factory=list, max_length=5)
    tags: List[str] = Field(default_factory=list, max_length=10)
    visibility: IssueVisibility = IssueVisibility.PUBLIC
    is_urgent: bool = False
    estimated_resolution_hours: Optional[float] = Field(None, gt=0, le=8760)

    @field_validator('title', 'description')
    @classmethod
    def validate_text(cls, v):
        """Strip surrounding whitespace and reject blank text."""
        if not v.strip():
            raise ValueError('Text cannot be empty')
        return v.strip()

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        """Normalize tags."""
        tags = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in tags:
                tags.append(tag)
        return tags


class TransitionRequest(BaseModel):
    """Request to move an issue to a new status."""

    model_config = ConfigDict(use_enum_values=True)

    status: IssueStatus
    notes: Optional[str] = Field(None, max_length=500)
    assigned_authority_id: Optional[str] = None
    rejection_reason: Optional[str] = Field(None, max_length=300)
    estimated_resolution_hours: Optional[float] = Field(None, gt=0, le=8760)


class BulkTransitionRequest(BaseModel):
    """Bulk operation over many issues."""

    model_config = ConfigDict(use_enum_values=True)

    issue_ids: List[str] = Field(..., min_length=1, max_length=100)
    action: BulkAction
    assigned_authority_id: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=300)

    @model_validator(mode='after')
    def validate_action_params(self):
        """Validate action-dependent parameters."""
        if self.action == BulkAction.ASSIGN and not self.assigned_authority_id:
            raise ValueError('assigned_authority_id is required for assign')
        if self.action != BulkAction.ASSIGN and self.assigned_authority_id:
            raise ValueError('assigned_authority_id is only allowed for assign')
        if self.action == BulkAction.REJECT and not (self.reason and self.reason.strip()):
            raise ValueError('reason is required for reject')
        return self


class CommentRequest(BaseModel):
    """Request to add a comment."""

    message: str = Field(..., min_length=1, max_length=300)

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        """Reject blank comments."""
        if not v.strip():
            raise ValueError('Comment cannot be empty')
        return v.strip()


class CreateAuthorityRequest(BaseModel):
    """Request model for creating an authority."""

    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=3, max_length=100)
    department: AuthorityDepartment
    contact: AuthorityContact
    service_area: ServiceArea
    status: AuthorityStatus = AuthorityStatus.ACTIVE


class UpdateAuthorityRequest(BaseModel):
    """Request model for updating an authority."""

    model_config = ConfigDict(use_enum_values=True, extra='ignore')

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    department: Optional[AuthorityDepartment] = None
    contact: Optional[AuthorityContact] = None
    service_area: Optional[ServiceArea] = None
    status: Optional[AuthorityStatus] = None


class IssueListQuery(BaseModel):
    """Filters and paging for issue worklists."""

    model_config = ConfigDict(use_enum_values=True, extra='ignore')

    status: Optional[IssueStatus] = None
    category: Optional[IssueCategory] = None
    priority: Optional[IssuePriority] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class IssuePath(BaseModel):
    """Path parameters for issue endpoints."""

    issue_id: str


class AuthorityPath(BaseModel):
    """Path parameters for authority endpoints."""

    authority_id: str


class UserPath(BaseModel):
    """Path parameters for user leaderboard endpoints."""

    user_id: str
