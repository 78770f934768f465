# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the civic issue tracker.
"""

from enum import Enum


class IssueStatus(str, Enum):
    """Issue lifecycle status enumeration."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TimelineAction(str, Enum):
    """Actions recorded on an issue timeline."""
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    REJECTED = "rejected"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class IssueCategory(str, Enum):
    """Closed set of issue categories."""
    ROAD_MAINTENANCE = "road_maintenance"
    WASTE_MANAGEMENT = "waste_management"
    WATER_SUPPLY = "water_supply"
    ELECTRICITY = "electricity"
    FIRE_SAFETY = "fire_safety"
    PUBLIC_TRANSPORT = "public_transport"
    PARKS_RECREATION = "parks_recreation"
    STREET_LIGHTING = "street_lighting"
    DRAINAGE = "drainage"
    NOISE_POLLUTION = "noise_pollution"
    ILLEGAL_CONSTRUCTION = "illegal_construction"
    ANIMAL_CONTROL = "animal_control"
    OTHER = "other"


class AuthorityDepartment(str, Enum):
    """Departments an authority can belong to."""
    ROAD_MAINTENANCE = "road_maintenance"
    WASTE_MANAGEMENT = "waste_management"
    WATER_SUPPLY = "water_supply"
    ELECTRICITY = "electricity"
    FIRE_SAFETY = "fire_safety"
    PUBLIC_TRANSPORT = "public_transport"
    PARKS_RECREATION = "parks_recreation"
    STREET_LIGHTING = "street_lighting"
    DRAINAGE = "drainage"
    NOISE_POLLUTION = "noise_pollution"
    ILLEGAL_CONSTRUCTION = "illegal_construction"
    ANIMAL_CONTROL = "animal_control"
    MUNICIPAL_CORPORATION = "municipal_corporation"
    POLICE = "police"
    OTHER = "other"


class IssuePriority(str, Enum):
    """Issue priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class IssueVisibility(str, Enum):
    """Issue visibility."""
    PUBLIC = "public"
    PRIVATE = "private"


class MediaType(str, Enum):
    """Media reference types."""
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class ContributionType(str, Enum):
    """Point-earning contribution types."""
    ISSUE_REPORTED = "issue_reported"
    ISSUE_RESOLVED = "issue_resolved"
    UPVOTE_GIVEN = "upvote_given"
    COMMENT_ADDED = "comment_added"


class AuthorityStatus(str, Enum):
    """Authority status enumeration."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ActorRole(str, Enum):
    """Roles supplied by the identity collaborator."""
    CITIZEN = "citizen"
    AUTHORITY = "authority"
    ADMIN = "admin"


class BulkAction(str, Enum):
    """Actions accepted by bulk issue operations."""
    VERIFY = "verify"
    REJECT = "reject"
    ASSIGN = "assign"
