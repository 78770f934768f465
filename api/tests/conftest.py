# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import threading
import pytest
import mongomock
from datetime import datetime, timedelta
from typing import Any, Dict, List

from models.entities import ActorContext
from models.enums import ActorRole
from models.requests import CreateAuthorityRequest
from services.container import build_services
from services.notifier import Notifier

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['MONGODB_DATABASE'] = 'civic_issues_test'


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self.now

    def advance(self, **delta) -> datetime:
        with self._lock:
            self.now = self.now + timedelta(**delta)
            return self.now

    def set(self, value: datetime) -> None:
        with self._lock:
            self.now = value


class RecordingNotifier(Notifier):
    """Notifier keeping every call in memory."""

    def __init__(self):
        self.status_changes: List[Dict[str, Any]] = []
        self.new_issues: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def notify_issue_status_change(self, issue, old_status, new_status, actor, notes=None):
        with self._lock:
            self.status_changes.append({
                "issue_id": issue.id,
                "old_status": old_status,
                "new_status": new_status,
                "actor_id": actor.actor_id
            })

    def notify_new_issue(self, issue, candidate_authorities):
        with self._lock:
            self.new_issues.append({
                "issue_id": issue.id,
                "authority_ids": [authority.id for authority in candidate_authorities]
            })


class FailingNotifier(Notifier):
    """Notifier whose every call raises."""

    def notify_issue_status_change(self, issue, old_status, new_status, actor, notes=None):
        raise ConnectionError("broker unreachable")

    def notify_new_issue(self, issue, candidate_authorities):
        raise ConnectionError("broker unreachable")


@pytest.fixture
def clock():
    """Clock starting at 2026-03-10 08:00 UTC."""
    return FakeClock(datetime(2026, 3, 10, 8, 0, 0))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def test_config():
    return {
        "MONGODB_URI": "mongodb://localhost:27017/civic_issues_test",
        "MONGODB_DATABASE": "civic_issues_test",
        "REDIS_URL": None,
        "NOTIFIER_ENABLED": False,
        "BULK_MAX_WORKERS": 1,
        "NOTIFY_WAIT_SECONDS": 2.0,
        "JOBS_ENABLED": False,
        "OTEL_ENABLED": False
    }


@pytest.fixture
def services(test_config, notifier, clock):
    """Full service graph over an in-process MongoDB."""
    container = build_services(
        test_config,
        mongo_client=mongomock.MongoClient(),
        notifier=notifier,
        clock=clock
    )
    container.mongodb.create_indexes()
    yield container
    container.dispatcher.shutdown()


@pytest.fixture
def admin():
    return ActorContext(actor_id="admin-1", role=ActorRole.ADMIN)


@pytest.fixture
def citizen():
    return ActorContext(actor_id="citizen-1", role=ActorRole.CITIZEN)


@pytest.fixture
def issue_draft():
    """Valid issue draft for a road maintenance problem in ward 12."""
    return {
        "title": "Pothole on Main Street",
        "description": "Large pothole near the bus stop causing traffic issues",
        "category": "road_maintenance",
        "priority": "high",
        "location": {
            "address": "Main Street 120",
            "coordinates": {"lat": -23.55, "lng": -46.63},
            "ward": "Ward 12",
            "district": "Central"
        },
        "tags": ["pothole"]
    }


def make_authority_request(name: str = "Road Works Central", email: str = "roads@city.gov",
                           department: str = "road_maintenance", wards=None, districts=None,
                           status: str = "active") -> CreateAuthorityRequest:
    return CreateAuthorityRequest(
        name=name,
        department=department,
        contact={
            "email": email,
            "phone": "+5511999990000",
            "office_address": "City Hall, Avenue 1, Floor 3"
        },
        service_area={
            "description": "Central district road network",
            "wards": wards if wards is not None else ["Ward 12"],
            "districts": districts if districts is not None else ["Central"]
        },
        status=status
    )


@pytest.fixture
def authority(services):
    """Active road maintenance authority serving ward 12."""
    return services.authorities.create(make_authority_request())


@pytest.fixture
def authority_actor(authority):
    return ActorContext(actor_id=authority.id, role=ActorRole.AUTHORITY)
