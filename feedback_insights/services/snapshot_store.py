"""
Snapshot Store - Feedback Insights Engine
feedback_insights/services/snapshot_store.py

Key-value persistence for AnalysisSnapshot, keyed per (subject, cycle).
Writes are last-writer-wins. Not-found is None, never an error.
"""
import asyncio
import logging
from typing import Dict, Optional, Protocol

import redis
from pydantic import ValidationError

from feedback_insights.core.exceptions import SnapshotStoreError
from feedback_insights.models.insights import AnalysisSnapshot
from feedback_insights.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)


def snapshot_key(subject_id: str, cycle_id: str) -> str:
    return f"analysis:{subject_id}:{cycle_id}"


class SnapshotStore(Protocol):
    async def get(self, key: str) -> Optional[AnalysisSnapshot]:
        ...

    async def put(self, key: str, snapshot: AnalysisSnapshot) -> None:
        ...


class RedisSnapshotStore:
    """Snapshots stored as pydantic JSON in Redis."""

    def __init__(self, cache: RedisCache, ttl_seconds: int = 0):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def get(self, key: str) -> Optional[AnalysisSnapshot]:
        try:
            return await asyncio.to_thread(self.cache.get, key, AnalysisSnapshot)
        except redis.RedisError as e:
            raise SnapshotStoreError(f"Snapshot read failed for {key}: {e}") from e
        except ValidationError as e:
            raise SnapshotStoreError(f"Malformed snapshot at {key}") from e

    async def put(self, key: str, snapshot: AnalysisSnapshot) -> None:
        try:
            await asyncio.to_thread(self.cache.set, key, snapshot, self.ttl_seconds)
        except redis.RedisError as e:
            raise SnapshotStoreError(f"Snapshot write failed for {key}: {e}") from e
        logger.info("snapshot_saved", extra={"key": key, "hash": snapshot.feedback_hash})


class InMemorySnapshotStore:
    """Process-local store for development and tests."""

    def __init__(self):
        self._snapshots: Dict[str, str] = {}
        self.writes = 0

    async def get(self, key: str) -> Optional[AnalysisSnapshot]:
        data = self._snapshots.get(key)
        if data is None:
            return None
        try:
            return AnalysisSnapshot.model_validate_json(data)
        except ValidationError as e:
            raise SnapshotStoreError(f"Malformed snapshot at {key}") from e

    async def put(self, key: str, snapshot: AnalysisSnapshot) -> None:
        self._snapshots[key] = snapshot.model_dump_json()
        self.writes += 1

    def clear(self) -> None:
        self._snapshots.clear()
        self.writes = 0
