"""
Feedback Repository - Feedback Insights Engine
feedback_insights/services/feedback_repository.py

Read access to submitted feedback per (subject, cycle).
"""
import logging
from typing import Dict, List, Protocol, Tuple

from feedback_insights.models.feedback import RawFeedbackItem

logger = logging.getLogger(__name__)


class FeedbackStore(Protocol):
    async def get_feedback(self, subject_id: str, cycle_id: str) -> List[RawFeedbackItem]:
        ...


class DuplicateFeedbackError(ValueError):
    """A feedback item with this id was already submitted."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Feedback '{item_id}' already submitted")


class InMemoryFeedbackRepository:
    """Process-local feedback storage for development and tests."""

    def __init__(self):
        self._items: Dict[Tuple[str, str], Dict[str, RawFeedbackItem]] = {}

    async def get_feedback(self, subject_id: str, cycle_id: str) -> List[RawFeedbackItem]:
        return list(self._items.get((subject_id, cycle_id), {}).values())

    def add(self, subject_id: str, cycle_id: str, item: RawFeedbackItem) -> RawFeedbackItem:
        bucket = self._items.setdefault((subject_id, cycle_id), {})
        if item.id in bucket:
            raise DuplicateFeedbackError(item.id)
        bucket[item.id] = item
        logger.info(
            "feedback_added",
            extra={
                "subject_id": subject_id,
                "cycle_id": cycle_id,
                "relationship": item.relationship_type.value,
                "count": len(bucket),
            },
        )
        return item

    def replace(self, subject_id: str, cycle_id: str, items: List[RawFeedbackItem]) -> None:
        """Overwrite all feedback for a (subject, cycle)."""
        self._items[(subject_id, cycle_id)] = {item.id: item for item in items}

    def count(self, subject_id: str, cycle_id: str) -> int:
        return len(self._items.get((subject_id, cycle_id), {}))
