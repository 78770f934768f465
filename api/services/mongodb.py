# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB access for issues, contribution events and authorities.

Holds one pooled client per process, exposes the three collections and owns
their indexes. The unique index on contribution events is what makes ledger
writes idempotent under concurrency.
"""

import os
import logging
from typing import Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)


ISSUES_COLLECTION = "issues"
CONTRIBUTIONS_COLLECTION = "contributions"
AUTHORITIES_COLLECTION = "authorities"


def _pool_options() -> Dict[str, Any]:
    """Client pool options, tunable through MONGODB_* variables."""
    return {
        "maxPoolSize": int(os.getenv('MONGODB_MAX_POOL_SIZE', '10')),
        "minPoolSize": int(os.getenv('MONGODB_MIN_POOL_SIZE', '1')),
        "maxIdleTimeMS": int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000')),
        "serverSelectionTimeoutMS": int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000')),
        "retryWrites": True,
        "retryReads": True
    }


class MongoDBService:
    """Lazily connected MongoDB client and collection accessors."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 client: Optional[MongoClient] = None):
        """
        Args:
            connection_string: MongoDB URI
            database_name: Database holding the tracker collections
            client: Client to use as-is, e.g. an in-process one for tests
        """
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/civic_issues_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'civic_issues_dev')
        self.pool_options = _pool_options()
        self._client: Optional[MongoClient] = client
        self._database: Optional[Database] = None

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            try:
                self._client = MongoClient(self.connection_string, **self.pool_options)
                self._client.admin.command('ping')
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(
                    "MongoDB connection failed",
                    extra={"extra_fields": {"database": self.database_name, "error": str(e)}}
                )
                raise
            logger.info("MongoDB connected", extra={"extra_fields": {"database": self.database_name}})

        return self._client

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        return self.database[collection_name]

    @property
    def issues(self) -> Collection:
        return self.get_collection(ISSUES_COLLECTION)

    @property
    def contributions(self) -> Collection:
        return self.get_collection(CONTRIBUTIONS_COLLECTION)

    @property
    def authorities(self) -> Collection:
        return self.get_collection(AUTHORITIES_COLLECTION)

    def close_connection(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Ping the server; never raises."""
        try:
            reply = self.client.admin.command('ping')
        except Exception as e:
            logger.error(
                "MongoDB health check failed",
                extra={"extra_fields": {"database": self.database_name, "error": str(e)}}
            )
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

        return {
            'status': 'healthy',
            'ping': reply.get('ok') == 1,
            'database': self.database_name,
            'connection_pool_size': self.pool_options['maxPoolSize']
        }

    # Index Management

    def create_indexes(self) -> None:
        """Create uniqueness and query indexes on every collection."""
        try:
            self.issues.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            self.issues.create_index([("assignedAuthorityId", ASCENDING), ("status", ASCENDING)])
            self.issues.create_index("reporterId")
            self.issues.create_index([("category", ASCENDING), ("status", ASCENDING)])

            # Backs ledger idempotency: one event per (user, type, issue)
            self.contributions.create_index(
                [("userId", ASCENDING), ("type", ASCENDING), ("issueId", ASCENDING)],
                unique=True,
                name="unique_contribution"
            )
            self.contributions.create_index([("year", ASCENDING), ("month", ASCENDING)])
            self.contributions.create_index("userId")
            self.contributions.create_index(
                [("category", ASCENDING), ("year", ASCENDING), ("month", ASCENDING)]
            )

            self.authorities.create_index("contact.email", unique=True)
            self.authorities.create_index([("department", ASCENDING), ("status", ASCENDING)])
        except Exception as e:
            logger.error("Index creation failed", extra={"extra_fields": {"error": str(e)}})
            raise

        logger.info("MongoDB indexes ensured", extra={"extra_fields": {"database": self.database_name}})

    def drop_indexes(self, collection: str) -> None:
        """Drop every index of a collection except the one on _id."""
        self.get_collection(collection).drop_indexes()
        logger.info("Indexes dropped", extra={"extra_fields": {"collection": collection}})
