from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Dict, List, Union

from feedback_insights.models.enumerations import RelationshipType, RELATIONSHIP_ORDER


ResponseValue = Union[float, int, str]


def normalize_relationship(raw: str) -> RelationshipType:
    """
    Map a survey relationship label onto one of the three rater groups.

    'senior_colleague' -> senior, 'equal_colleague' / 'equal' / 'peer' -> peer,
    'junior_colleague' -> junior. Unclear labels fall back to peer.
    """
    normalized = str(raw).lower().replace("_", "").replace(" ", "")
    if "senior" in normalized:
        return RelationshipType.SENIOR
    if "peer" in normalized or "equal" in normalized:
        return RelationshipType.PEER
    if "junior" in normalized:
        return RelationshipType.JUNIOR
    return RelationshipType.PEER


class RawFeedbackItem(BaseModel):
    """
    One rater's submission. Immutable once submitted.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Feedback response identifier"
    )

    relationship_type: RelationshipType = Field(
        ...,
        description="Rater seniority relative to the subject (senior, peer, junior)"
    )

    submitted_at: datetime = Field(
        ...,
        description="Submission timestamp"
    )

    strengths: str = Field(
        default="",
        description="Free-text strengths"
    )

    areas_for_improvement: str = Field(
        default="",
        description="Free-text areas for improvement"
    )

    responses: Dict[str, ResponseValue] = Field(
        default_factory=dict,
        description="Competency / question id -> numeric or text answer"
    )

    @field_validator("relationship_type", mode="before")
    @classmethod
    def coerce_relationship(cls, v):
        if isinstance(v, RelationshipType):
            return v
        return normalize_relationship(v)

    def numeric_responses(self) -> Dict[str, float]:
        """Responses that carry a numeric rating (booleans excluded)."""
        return {
            key: float(value)
            for key, value in self.responses.items()
            if isinstance(value, (int, float)) and not isinstance(value, bool)
        }


class FeedbackSubmission(BaseModel):
    """Request body for submitting a feedback item over HTTP."""

    id: str = Field(..., min_length=1)
    relationship: str = Field(..., description="Survey relationship label")
    submitted_at: datetime
    strengths: str = ""
    areas_for_improvement: str = ""
    responses: Dict[str, ResponseValue] = Field(default_factory=dict)

    def to_item(self) -> RawFeedbackItem:
        return RawFeedbackItem(
            id=self.id,
            relationship_type=self.relationship,
            submitted_at=self.submitted_at,
            strengths=self.strengths,
            areas_for_improvement=self.areas_for_improvement,
            responses=self.responses,
        )


def group_by_relationship(
    items: List[RawFeedbackItem],
) -> Dict[RelationshipType, List[RawFeedbackItem]]:
    """Group items by relationship; every relationship key is present."""
    grouped: Dict[RelationshipType, List[RawFeedbackItem]] = {r: [] for r in RELATIONSHIP_ORDER}
    for item in items:
        grouped[item.relationship_type].append(item)
    return grouped
