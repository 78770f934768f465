# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for MongoDB service layer.
"""

import pytest
import mongomock
from pymongo.errors import DuplicateKeyError
from unittest.mock import MagicMock

from services.mongodb import MongoDBService


class TestMongoDBService:
    """Test MongoDB service functionality."""

    @pytest.fixture
    def mongodb_service(self):
        service = MongoDBService(
            "mongodb://localhost:27017/civic_issues_test",
            "civic_issues_test",
            client=mongomock.MongoClient()
        )
        service.create_indexes()
        yield service
        service.close_connection()

    def test_collections(self, mongodb_service):
        assert mongodb_service.issues.name == "issues"
        assert mongodb_service.contributions.name == "contributions"
        assert mongodb_service.authorities.name == "authorities"
        assert mongodb_service.database.name == "civic_issues_test"

    def test_contribution_uniqueness_index(self, mongodb_service):
        document = {"userId": "u1", "type": "issue_reported", "issueId": "i1", "points": 2}
        mongodb_service.contributions.insert_one(dict(document))

        with pytest.raises(DuplicateKeyError):
            mongodb_service.contributions.insert_one(dict(document))

        mongodb_service.contributions.insert_one(dict(document, type="comment_added"))
        assert mongodb_service.contributions.count_documents({}) == 2

    def test_authority_email_unique(self, mongodb_service):
        mongodb_service.authorities.insert_one({"contact": {"email": "a@city.gov"}})

        with pytest.raises(DuplicateKeyError):
            mongodb_service.authorities.insert_one({"contact": {"email": "a@city.gov"}})

    def test_drop_indexes(self, mongodb_service):
        mongodb_service.drop_indexes("contributions")

        assert list(mongodb_service.contributions.index_information()) == ["_id_"]

    def test_health_check_healthy(self):
        client = MagicMock()
        client.admin.command.return_value = {"ok": 1}
        service = MongoDBService("mongodb://db:27017", "civic", client=client)

        health = service.health_check()

        assert health["status"] == "healthy"
        assert health["ping"] is True
        assert health["database"] == "civic"

    def test_health_check_unhealthy(self):
        client = MagicMock()
        client.admin.command.side_effect = RuntimeError("no server")
        service = MongoDBService("mongodb://db:27017", "civic", client=client)

        health = service.health_check()

        assert health["status"] == "unhealthy"
        assert "no server" in health["error"]

    def test_close_connection(self):
        client = MagicMock()
        service = MongoDBService("mongodb://db:27017", "civic", client=client)

        service.close_connection()

        client.close.assert_called_once()
        assert service._client is None
