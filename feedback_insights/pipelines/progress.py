"""
Progress reporting for analysis runs.

Stages reported through a sink:
    0  Preparing
    1  Processing (substep: senior / peer / junior / aggregate)
    2  Saving
    3  Complete
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from feedback_insights.models.insights import RelationshipInsight

logger = logging.getLogger(__name__)


STAGE_PREPARING = 0
STAGE_PROCESSING = 1
STAGE_SAVING = 2
STAGE_COMPLETE = 3

STAGE_LABELS = {
    STAGE_PREPARING: "Preparing",
    STAGE_PROCESSING: "Processing",
    STAGE_SAVING: "Saving",
    STAGE_COMPLETE: "Complete",
}


class ProgressSink(Protocol):
    def on_stage_change(self, stage: int, substep: Optional[str] = None) -> None:
        ...

    def on_error(self, message: str) -> None:
        ...

    def on_success(self, insights: List[RelationshipInsight], timestamp: datetime) -> None:
        ...


class LoggingProgressSink:
    """Writes progress events to the log."""

    def __init__(self, subject_id: str, cycle_id: str):
        self.subject_id = subject_id
        self.cycle_id = cycle_id

    def on_stage_change(self, stage: int, substep: Optional[str] = None) -> None:
        logger.info(
            "analysis_progress",
            extra={
                "subject_id": self.subject_id,
                "cycle_id": self.cycle_id,
                "stage": STAGE_LABELS.get(stage, str(stage)),
                "substep": substep,
            },
        )

    def on_error(self, message: str) -> None:
        logger.error(
            "analysis_failed",
            extra={"subject_id": self.subject_id, "cycle_id": self.cycle_id, "error": message},
        )

    def on_success(self, insights: List[RelationshipInsight], timestamp: datetime) -> None:
        logger.info(
            "analysis_complete",
            extra={
                "subject_id": self.subject_id,
                "cycle_id": self.cycle_id,
                "insights": len(insights),
                "analyzed_at": timestamp.isoformat(),
            },
        )


@dataclass
class RecordingProgressSink:
    """
    Keeps the latest progress in memory so it can be shown in a status view.
    Optionally forwards every event to another sink.
    """

    forward: Optional[ProgressSink] = None
    stage: Optional[int] = None
    substep: Optional[str] = None
    error: Optional[str] = None
    insights: List[RelationshipInsight] = field(default_factory=list)
    completed_at: Optional[datetime] = None
    events: List[Tuple[str, object]] = field(default_factory=list)

    def on_stage_change(self, stage: int, substep: Optional[str] = None) -> None:
        self.stage = stage
        self.substep = substep
        self.events.append(("stage", (stage, substep)))
        if self.forward is not None:
            self.forward.on_stage_change(stage, substep)

    def on_error(self, message: str) -> None:
        self.error = message
        self.events.append(("error", message))
        if self.forward is not None:
            self.forward.on_error(message)

    def on_success(self, insights: List[RelationshipInsight], timestamp: datetime) -> None:
        self.insights = list(insights)
        self.completed_at = timestamp
        self.error = None
        self.events.append(("success", timestamp))
        if self.forward is not None:
            self.forward.on_success(insights, timestamp)

    @property
    def stages(self) -> List[Tuple[int, Optional[str]]]:
        return [payload for kind, payload in self.events if kind == "stage"]
