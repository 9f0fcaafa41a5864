from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from feedback_insights.models.enumerations import AnalysisStage, RelationshipType
from feedback_insights.models.insights import OracleResult, RelationshipInsight


@dataclass
class AnalysisRunState:
    """
    Transient state of one analysis run for a (subject, cycle).
    Lives only as long as the orchestrator that owns it; never persisted.
    """

    subject_id: str
    cycle_id: str

    stage: AnalysisStage = AnalysisStage.IDLE
    substep: Optional[str] = None

    feedback_hash: str = ""
    review_count: int = 0

    # Artifacts from each stage
    group_results: Dict[RelationshipType, OracleResult] = field(default_factory=dict)
    group_insights: Dict[RelationshipType, RelationshipInsight] = field(default_factory=dict)
    aggregate: Optional[RelationshipInsight] = None

    error: Optional[str] = None
    failed_stage: Optional[AnalysisStage] = None

    started_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    def enter(self, stage: AnalysisStage, substep: Optional[str] = None) -> None:
        """Move to a new stage."""
        self.stage = stage
        self.substep = substep
        self.last_updated = datetime.now(timezone.utc)

    def record_group(
        self,
        relationship: RelationshipType,
        result: OracleResult,
        insight: RelationshipInsight,
    ) -> None:
        self.group_results[relationship] = result
        self.group_insights[relationship] = insight
        self.last_updated = datetime.now(timezone.utc)

    def fail(self, stage: AnalysisStage, message: str) -> None:
        self.failed_stage = stage
        self.error = message
        self.enter(AnalysisStage.ERROR)

    def reset(self) -> None:
        """Reset state for a new run."""
        self.stage = AnalysisStage.IDLE
        self.substep = None
        self.feedback_hash = ""
        self.review_count = 0
        self.group_results = {}
        self.group_insights = {}
        self.aggregate = None
        self.error = None
        self.failed_stage = None
        self.started_at = datetime.now(timezone.utc)
        self.last_updated = self.started_at
