# SPDX-License-Identifier: Apache-2.0

"""
Redis-backed score snapshot cache.

Snapshots are per-user totals kept for fast profile reads. Ranking never
reads them; the contribution ledger stays the only source of truth for
leaderboard order. Every operation degrades to a cache miss when Redis is
down.
"""

import os
import json
import logging
from typing import Optional, Dict, Any, Union, List

import redis
from opentelemetry import trace

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

SNAPSHOT_KEY_PREFIX = "scores"


class RedisConnectionError(Exception):
    """Redis did not answer a ping."""
    pass


class RedisService:
    """Thin JSON cache over the redis-py client."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[Any] = None):
        """
        Args:
            redis_url: Connection URL such as redis://cache:6379/0
            client: Pre-built client used without a connection check
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379")

        if client is not None:
            self.client = client
            return

        try:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
            self._ping()
            logger.info("Score snapshot cache connected", extra={"extra_fields": {"url": self.redis_url}})
        except Exception as e:
            logger.error(
                "Score snapshot cache disabled",
                extra={"extra_fields": {"url": self.redis_url, "error": str(e)}}
            )
            self.client = None

    def _ping(self) -> None:
        try:
            answered = self.client.ping()
        except Exception as e:
            raise RedisConnectionError(f"Redis ping failed: {e}")
        if not answered:
            raise RedisConnectionError("Redis ping returned no answer")

    def is_available(self) -> bool:
        return self.client is not None

    def set(self, key: str, value: Union[str, Dict, List], ttl: Optional[int] = None) -> bool:
        """
        Store a value, JSON-encoding dicts and lists.

        Returns:
            Whether Redis acknowledged the write
        """
        if self.client is None:
            return False

        with tracer.start_as_current_span("redis.set") as span:
            span.set_attributes({"redis.key": key, "redis.ttl": ttl or 0})

            payload = json.dumps(value, default=str) if isinstance(value, (dict, list)) else value
            try:
                if ttl:
                    stored = self.client.setex(key, ttl, payload)
                else:
                    stored = self.client.set(key, payload)
            except Exception as e:
                span.set_attribute("redis.outcome", "error")
                logger.warning("Redis write failed", extra={"extra_fields": {"key": key, "error": str(e)}})
                return False

            span.set_attribute("redis.outcome", "stored")
            return bool(stored)

    def get(self, key: str) -> Optional[Any]:
        """Read a value, decoding JSON when the stored text is JSON."""
        if self.client is None:
            return None

        with tracer.start_as_current_span("redis.get") as span:
            span.set_attribute("redis.key", key)

            try:
                raw = self.client.get(key)
            except Exception as e:
                span.set_attribute("redis.outcome", "error")
                logger.warning("Redis read failed", extra={"extra_fields": {"key": key, "error": str(e)}})
                return None

            if raw is None:
                span.set_attribute("redis.outcome", "miss")
                return None

            span.set_attribute("redis.outcome", "hit")
            try:
                return json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                return raw

    def health_check(self) -> Dict[str, Any]:
        if self.client is None:
            return {"status": "unavailable"}
        try:
            self._ping()
        except RedisConnectionError as e:
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}

    # Score snapshots

    def score_snapshot_key(self, user_id: str, period_label: str) -> str:
        return f"{SNAPSHOT_KEY_PREFIX}:{period_label}:{user_id}"

    def cache_score_snapshot(self, user_id: str, period_label: str,
                             totals: Dict[str, Any], ttl: int = 900) -> bool:
        """
        Cache a user's totals for a period.

        Args:
            user_id: User identifier
            period_label: ``2026-03`` for a month, ``2026`` for a year
            totals: Totals computed from the ledger
            ttl: Seconds before the snapshot expires
        """
        return self.set(self.score_snapshot_key(user_id, period_label), totals, ttl)

    def get_score_snapshot(self, user_id: str, period_label: str) -> Optional[Dict[str, Any]]:
        return self.get(self.score_snapshot_key(user_id, period_label))
