from pydantic import BaseModel, Field
from datetime import datetime
from typing import Annotated, Optional, List

from feedback_insights.models.enumerations import (
    AnalysisStatus,
    ConfidenceLevel,
    InsightRelationship,
)


class CompetencyEvidence(BaseModel):
    """
    Per-group evidence for one competency, as extracted by the oracle.
    """

    name: str = Field(..., min_length=1, description="Competency display name")

    score: float = Field(
        ...,
        ge=1.0,
        le=5.0,
        description="Raw average score for the group (1.0-5.0)"
    )

    evidence_count: int = Field(
        default=0,
        ge=0,
        description="Number of distinct reviewers who gave evidence"
    )

    evidence_quotes: List[str] = Field(default_factory=list)

    reviewer_scores: List[Annotated[float, Field(ge=1.0, le=5.0)]] = Field(
        default_factory=list,
        description="Individual reviewer scores behind the average, when known"
    )

    description: str = Field(default="")


class OracleResult(BaseModel):
    """What the oracle returns for one group (or for the aggregate narrative)."""

    themes: List[str] = Field(default_factory=list)
    competencies: List[CompetencyEvidence] = Field(default_factory=list)
    unique_perspectives: List[str] = Field(default_factory=list)


class AggregateCompetencyScore(BaseModel):
    """The calibrated per-competency unit that is ultimately displayed."""

    name: str
    score: float = Field(..., ge=1.0, le=5.0)
    confidence_level: ConfidenceLevel
    description: str = ""
    role_specific_notes: str = ""
    evidence_quotes: List[str] = Field(default_factory=list)
    evidence_count: int = Field(default=0, ge=0)


class RelationshipInsight(BaseModel):
    relationship: InsightRelationship
    themes: List[str] = Field(default_factory=list)
    competencies: List[AggregateCompetencyScore] = Field(default_factory=list)
    response_count: int = Field(default=0, ge=0)
    unique_perspectives: List[str] = Field(default_factory=list)


class AnalysisSnapshot(BaseModel):
    """Persisted result of a completed run, keyed by content hash."""

    feedback_hash: str = Field(..., min_length=1)
    insights: List[RelationshipInsight]
    last_analyzed_at: datetime


class AnalysisOutcome(BaseModel):
    """Result of asking the orchestrator to run."""

    status: AnalysisStatus
    from_cache: bool = False
    insights: List[RelationshipInsight] = Field(default_factory=list)
    last_analyzed_at: Optional[datetime] = None
    review_count: int = 0
    reviews_required: int = 0
    error: Optional[str] = None
    failed_stage: Optional[str] = None
    cancelled: bool = False


class AnalysisStatusView(BaseModel):
    """What a dashboard needs to render the analysis panel."""

    subject_id: str
    cycle_id: str
    status: AnalysisStatus
    review_count: int
    reviews_required: int
    is_stale: bool = False
    stage: Optional[int] = None
    substep: Optional[str] = None
    error: Optional[str] = None
    last_analyzed_at: Optional[datetime] = None
    insights: List[RelationshipInsight] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(default=None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error occurrence timestamp")
