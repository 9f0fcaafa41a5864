"""
Snapshot Cache Gate - Feedback Insights Engine
feedback_insights/services/snapshot_gate.py

Decides whether a persisted snapshot can be served instead of recomputing.
A snapshot is fresh only when its hash equals the hash of current feedback.
"""
import logging
from typing import Optional

from feedback_insights.models.insights import AnalysisSnapshot
from feedback_insights.services.snapshot_store import SnapshotStore, snapshot_key

logger = logging.getLogger(__name__)


class SnapshotCacheGate:
    """Hash comparison in front of a SnapshotStore."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    async def load(self, subject_id: str, cycle_id: str) -> Optional[AnalysisSnapshot]:
        """
        Read the stored snapshot, fresh or stale.

        Read failures are logged and reported as "no snapshot".
        """
        key = snapshot_key(subject_id, cycle_id)
        try:
            return await self.store.get(key)
        except Exception as e:
            logger.warning("snapshot_read_failed", extra={"key": key, "error": str(e)})
            return None

    async def check(
        self,
        subject_id: str,
        cycle_id: str,
        feedback_hash: str,
    ) -> Optional[AnalysisSnapshot]:
        """Return the snapshot if it matches `feedback_hash`, else None (miss)."""
        snapshot = await self.load(subject_id, cycle_id)
        if snapshot is None:
            logger.info("snapshot_miss", extra={"subject_id": subject_id, "cycle_id": cycle_id})
            return None
        if snapshot.feedback_hash != feedback_hash:
            logger.info(
                "snapshot_stale",
                extra={"subject_id": subject_id, "cycle_id": cycle_id},
            )
            return None
        logger.info("snapshot_hit", extra={"subject_id": subject_id, "cycle_id": cycle_id})
        return snapshot

    async def save(self, subject_id: str, cycle_id: str, snapshot: AnalysisSnapshot) -> None:
        """Persist the snapshot. Raises SnapshotStoreError on failure."""
        await self.store.put(snapshot_key(subject_id, cycle_id), snapshot)
