# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the civic issue tracker.
"""

# Base models
from .base import BaseEntity, BaseValue, generate_object_id, utc_now

# Enumerations
from .enums import (
    IssueStatus,
    TimelineAction,
    IssueCategory,
    AuthorityDepartment,
    IssuePriority,
    IssueVisibility,
    MediaType,
    ContributionType,
    AuthorityStatus,
    ActorRole,
    BulkAction
)

# Core entities
from .entities import (
    Coordinates,
    Location,
    MediaReference,
    TimelineEntry,
    Comment,
    Issue,
    ContributionEvent,
    AuthorityContact,
    ServiceArea,
    PerformanceMetrics,
    Authority,
    ActorContext
)

# Request models
from .requests import (
    IssueDraft,
    TransitionRequest,
    BulkTransitionRequest,
    CommentRequest,
    CreateAuthorityRequest,
    UpdateAuthorityRequest,
    IssueListQuery,
    IssuePath,
    AuthorityPath,
    UserPath
)

__all__ = [
    # Base models
    "BaseEntity",
    "BaseValue",
    "generate_object_id",
    "utc_now",

    # Enumerations
    "IssueStatus",
    "TimelineAction",
    "IssueCategory",
    "AuthorityDepartment",
    "IssuePriority",
    "IssueVisibility",
    "MediaType",
    "ContributionType",
    "AuthorityStatus",
    "ActorRole",
    "BulkAction",

    # Core entities
    "Coordinates",
    "Location",
    "MediaReference",
    "TimelineEntry",
    "Comment",
    "Issue",
    "ContributionEvent",
    "AuthorityContact",
    "ServiceArea",
    "PerformanceMetrics",
    "Authority",
    "ActorContext",

    # Request models
    "IssueDraft",
    "TransitionRequest",
    "BulkTransitionRequest",
    "CommentRequest",
    "CreateAuthorityRequest",
    "UpdateAuthorityRequest",
    "IssueListQuery",
    "IssuePath",
    "AuthorityPath",
    "UserPath"
]
