# SPDX-License-Identifier: Apache-2.0

"""
Tests for the Redis score snapshot cache.
"""

import json
from unittest.mock import MagicMock, patch

from services.redis import RedisService


class TestRedisService:

    def test_set_serializes_json_with_ttl(self):
        client = MagicMock()
        client.setex.return_value = True
        service = RedisService("redis://localhost:6379", client=client)

        assert service.set("key", {"a": 1}, ttl=30) is True
        client.setex.assert_called_once_with("key", 30, json.dumps({"a": 1}))

    def test_get_decodes_json(self):
        client = MagicMock()
        client.get.return_value = '{"totalPoints": 12}'
        service = RedisService("redis://localhost:6379", client=client)

        assert service.get("key") == {"totalPoints": 12}

    def test_get_plain_string(self):
        client = MagicMock()
        client.get.return_value = "plain"
        service = RedisService("redis://localhost:6379", client=client)

        assert service.get("key") == "plain"

    def test_errors_degrade_to_miss(self):
        client = MagicMock()
        client.get.side_effect = ConnectionError("reset")
        client.setex.side_effect = ConnectionError("reset")
        service = RedisService("redis://localhost:6379", client=client)

        assert service.get("key") is None
        assert service.set("key", "v", ttl=5) is False

    def test_score_snapshot_key(self):
        client = MagicMock()
        client.setex.return_value = True
        service = RedisService("redis://localhost:6379", client=client)

        service.cache_score_snapshot("alice", "2026-03", {"totalPoints": 4}, ttl=60)

        key, ttl, value = client.setex.call_args[0]
        assert key == "scores:2026-03:alice"
        assert ttl == 60
        assert json.loads(value) == {"totalPoints": 4}

    @patch("services.redis.redis.from_url")
    def test_unreachable_server_disables_client(self, mock_from_url):
        mock_from_url.return_value.ping.side_effect = ConnectionError("refused")

        service = RedisService("redis://nowhere:6379")

        assert service.is_available() is False
        assert service.get_score_snapshot("alice", "2026") is None
        assert service.health_check() == {"status": "unavailable"}

    def test_health_check(self):
        client = MagicMock()
        client.ping.return_value = True
        assert RedisService("redis://localhost:6379", client=client).health_check() == {"status": "healthy"}

        client.ping.side_effect = ConnectionError("down")
        assert RedisService("redis://localhost:6379", client=client).health_check()["status"] == "unhealthy"
