"""
Feedback content hash.

SHA-256 over the stable JSON serialization of every item, sorted so the
hash does not depend on the order the store returns items in.
"""
import hashlib
import json
from typing import Iterable

from feedback_insights.models.feedback import RawFeedbackItem


def _serialize_item(item: RawFeedbackItem) -> str:
    payload = {
        "id": item.id,
        "relationship": item.relationship_type.value,
        "submitted_at": item.submitted_at.isoformat(),
        "strengths": item.strengths,
        "areas_for_improvement": item.areas_for_improvement,
        "responses": item.responses,
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_feedback_hash(items: Iterable[RawFeedbackItem]) -> str:
    serialized = sorted(_serialize_item(item) for item in items)
    digest = hashlib.sha256()
    for line in serialized:
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()
