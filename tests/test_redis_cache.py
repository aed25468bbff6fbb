"""
Redis Cache Tests - Cocoa Contest Evaluation Engine
tests/test_redis_cache.py

Tests for the ranking cache: key layout, hits, misses, invalidation and
graceful degradation when Redis is disabled or unreachable.
"""
import pytest
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone

import redis

from cocoa_contest.models.enumerations import RankingSource
from cocoa_contest.models.ranking import RankingResponse
from cocoa_contest.services.redis_cache import RedisCache, ranking_key, ranking_pattern
from cocoa_contest.services.cache import get_cache, reset_cache


def make_response() -> RankingResponse:
    return RankingResponse(
        contest_id="c1",
        source=RankingSource.SENSORY,
        entries=[],
        computed_at=datetime(2026, 5, 1, tzinfo=timezone.utc),
    )


class TestKeys:

    def test_ranking_key(self):
        assert ranking_key("c1", "final") == "rankings:c1:final"

    def test_pattern_matches_both_sources(self):
        assert ranking_pattern("c1") == "rankings:c1:*"


class TestRedisCache:
    """Tests for the RedisCache class."""

    def test_redis_cache_init(self):
        with patch('cocoa_contest.services.redis_cache.redis.from_url') as mock_from_url:
            cache = RedisCache("redis://cache:6379/1")
            mock_from_url.assert_called_once()
            assert mock_from_url.call_args.args[0] == "redis://cache:6379/1"
            assert cache.client is mock_from_url.return_value

    def test_cache_set_and_get(self):
        with patch('cocoa_contest.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_from_url.return_value = mock_client

            cache = RedisCache()
            response = make_response()

            cache.set("rankings:c1:sensory", response, 300)
            mock_client.setex.assert_called_once_with(
                "rankings:c1:sensory",
                300,
                response.model_dump_json(),
            )

            mock_client.get.return_value = response.model_dump_json()
            result = cache.get("rankings:c1:sensory", RankingResponse)
            assert result == response

    def test_cache_get_miss(self):
        with patch('cocoa_contest.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_client.get.return_value = None
            mock_from_url.return_value = mock_client

            assert RedisCache().get("rankings:missing:sensory", RankingResponse) is None

    def test_cache_delete(self):
        with patch('cocoa_contest.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_from_url.return_value = mock_client

            RedisCache().delete("rankings:c1:sensory")
            mock_client.delete.assert_called_once_with("rankings:c1:sensory")

    def test_cache_delete_pattern(self):
        with patch('cocoa_contest.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_client.scan_iter.return_value = ["rankings:c1:sensory", "rankings:c1:final"]
            mock_client.delete.return_value = 1
            mock_from_url.return_value = mock_client

            removed = RedisCache().delete_pattern("rankings:c1:*")

            mock_client.scan_iter.assert_called_once_with(match="rankings:c1:*")
            assert mock_client.delete.call_count == 2
            assert removed == 2


class TestCacheSingleton:
    """Tests for the get_cache singleton."""

    @pytest.fixture(autouse=True)
    def clean_singleton(self):
        reset_cache()
        yield
        reset_cache()

    def test_disabled_cache_returns_none(self):
        with patch('cocoa_contest.services.cache.settings') as mock_settings, \
                patch('cocoa_contest.services.cache.RedisCache') as mock_cache_cls:
            mock_settings.CACHE_ENABLED = False
            assert get_cache() is None
            mock_cache_cls.assert_not_called()

    def test_get_cache_returns_singleton(self):
        with patch('cocoa_contest.services.cache.settings') as mock_settings, \
                patch('cocoa_contest.services.cache.RedisCache') as mock_cache_cls:
            mock_settings.CACHE_ENABLED = True
            mock_instance = MagicMock()
            mock_cache_cls.return_value = mock_instance

            first = get_cache()
            second = get_cache()

            assert first is mock_instance
            assert second is first
            mock_cache_cls.assert_called_once()
            mock_instance.client.ping.assert_called_once()

    def test_get_cache_handles_connection_error(self):
        with patch('cocoa_contest.services.cache.settings') as mock_settings, \
                patch('cocoa_contest.services.cache.RedisCache') as mock_cache_cls:
            mock_settings.CACHE_ENABLED = True
            mock_instance = MagicMock()
            mock_instance.client.ping.side_effect = redis.ConnectionError("Connection refused")
            mock_cache_cls.return_value = mock_instance

            assert get_cache() is None

    def test_reset_cache_forces_reconnect(self):
        with patch('cocoa_contest.services.cache.settings') as mock_settings, \
                patch('cocoa_contest.services.cache.RedisCache') as mock_cache_cls:
            mock_settings.CACHE_ENABLED = True
            get_cache()
            reset_cache()
            get_cache()
            assert mock_cache_cls.call_count == 2
