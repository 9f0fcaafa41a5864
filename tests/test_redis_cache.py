"""
Redis Cache / Snapshot Store Tests - Feedback Insights Engine
tests/test_redis_cache.py

Tests for Redis caching, the snapshot stores, the cache gate and graceful
degradation when Redis is unreachable.
"""
import asyncio
import pytest
import redis
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone
from pydantic import BaseModel

from feedback_insights.core.exceptions import SnapshotStoreError
from feedback_insights.models.insights import AnalysisSnapshot
from feedback_insights.services.redis_cache import RedisCache
from feedback_insights.services.cache import get_cache, reset_cache
from feedback_insights.services.snapshot_gate import SnapshotCacheGate
from feedback_insights.services.snapshot_store import (
    InMemorySnapshotStore,
    RedisSnapshotStore,
    snapshot_key,
)

from tests.fakes import UnreadableSnapshotStore


class MockModel(BaseModel):
    """Mock Pydantic model for testing."""
    id: str
    name: str


def make_snapshot(feedback_hash: str = "hash-1") -> AnalysisSnapshot:
    return AnalysisSnapshot(
        feedback_hash=feedback_hash,
        insights=[],
        last_analyzed_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
    )


class TestRedisCache:
    """Tests for the RedisCache class."""

    def test_redis_cache_init(self):
        with patch('feedback_insights.services.redis_cache.redis.from_url') as mock_from_url:
            cache = RedisCache("redis://example:6379/0")
            mock_from_url.assert_called_once_with(
                "redis://example:6379/0",
                decode_responses=True,
                socket_connect_timeout=5,
            )
            assert cache.client is mock_from_url.return_value

    def test_cache_set_with_ttl_and_get(self):
        with patch('feedback_insights.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_from_url.return_value = mock_client

            cache = RedisCache()
            model = MockModel(id="123", name="Test")

            cache.set("test:key", model, 300)
            mock_client.setex.assert_called_once_with("test:key", 300, model.model_dump_json())

            mock_client.get.return_value = model.model_dump_json()
            result = cache.get("test:key", MockModel)
            assert result == model

    def test_cache_set_without_ttl(self):
        with patch('feedback_insights.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_from_url.return_value = mock_client

            cache = RedisCache()
            model = MockModel(id="1", name="Persistent")
            cache.set("test:key", model)
            mock_client.set.assert_called_once_with("test:key", model.model_dump_json())
            mock_client.setex.assert_not_called()

    def test_cache_get_miss(self):
        with patch('feedback_insights.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_client.get.return_value = None
            mock_from_url.return_value = mock_client

            assert RedisCache().get("nonexistent:key", MockModel) is None


class TestCacheSingleton:
    """Tests for get_cache graceful degradation."""

    def setup_method(self):
        reset_cache()

    def teardown_method(self):
        reset_cache()

    def test_get_cache_returns_none_when_unreachable(self):
        with patch('feedback_insights.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_client.ping.side_effect = redis.ConnectionError("refused")
            mock_from_url.return_value = mock_client

            assert get_cache() is None

    def test_get_cache_is_singleton(self):
        with patch('feedback_insights.services.redis_cache.redis.from_url') as mock_from_url:
            mock_from_url.return_value = MagicMock()

            first = get_cache()
            second = get_cache()
            assert first is not None
            assert first is second
            mock_from_url.assert_called_once()


class TestRedisSnapshotStore:

    def _store(self, client):
        with patch('feedback_insights.services.redis_cache.redis.from_url', return_value=client):
            return RedisSnapshotStore(RedisCache(), ttl_seconds=0)

    def test_put_and_get(self):
        client = MagicMock()
        store = self._store(client)
        snapshot = make_snapshot()

        asyncio.run(store.put("analysis:e:c", snapshot))
        client.set.assert_called_once_with("analysis:e:c", snapshot.model_dump_json())

        client.get.return_value = snapshot.model_dump_json()
        assert asyncio.run(store.get("analysis:e:c")) == snapshot

    def test_not_found_is_none(self):
        client = MagicMock()
        client.get.return_value = None
        assert asyncio.run(self._store(client).get("analysis:e:c")) is None

    def test_read_failure_raises_store_error(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        with pytest.raises(SnapshotStoreError):
            asyncio.run(self._store(client).get("analysis:e:c"))

    def test_malformed_snapshot_raises_store_error(self):
        client = MagicMock()
        client.get.return_value = '{"feedback_hash": 12}'
        with pytest.raises(SnapshotStoreError):
            asyncio.run(self._store(client).get("analysis:e:c"))

    def test_write_failure_raises_store_error(self):
        client = MagicMock()
        client.set.side_effect = redis.ConnectionError("down")
        with pytest.raises(SnapshotStoreError):
            asyncio.run(self._store(client).put("analysis:e:c", make_snapshot()))


class TestSnapshotCacheGate:

    def test_key_format(self):
        assert snapshot_key("emp-1", "2025-h1") == "analysis:emp-1:2025-h1"

    def test_hit_on_matching_hash(self):
        gate = SnapshotCacheGate(InMemorySnapshotStore())
        asyncio.run(gate.save("emp-1", "c1", make_snapshot("h1")))
        assert asyncio.run(gate.check("emp-1", "c1", "h1")) is not None

    def test_miss_on_stale_hash(self):
        gate = SnapshotCacheGate(InMemorySnapshotStore())
        asyncio.run(gate.save("emp-1", "c1", make_snapshot("h1")))
        assert asyncio.run(gate.check("emp-1", "c1", "h2")) is None

    def test_miss_when_absent(self):
        gate = SnapshotCacheGate(InMemorySnapshotStore())
        assert asyncio.run(gate.check("emp-1", "c1", "h1")) is None

    def test_read_failure_is_a_miss(self):
        gate = SnapshotCacheGate(UnreadableSnapshotStore())
        assert asyncio.run(gate.check("emp-1", "c1", "h1")) is None

    def test_last_writer_wins(self):
        store = InMemorySnapshotStore()
        gate = SnapshotCacheGate(store)
        asyncio.run(gate.save("emp-1", "c1", make_snapshot("h1")))
        asyncio.run(gate.save("emp-1", "c1", make_snapshot("h2")))
        assert asyncio.run(gate.load("emp-1", "c1")).feedback_hash == "h2"
        assert store.writes == 2
