"""
Feedback Analysis API Router
feedback_insights/routers/analysis.py

Endpoints:
  GET  /api/v1/analysis/weights                     — Resolved relationship weights
  GET  /api/v1/analysis/{subject_id}/{cycle_id}     — Status view for the analysis panel
  POST /api/v1/analysis/{subject_id}/{cycle_id}/run — Run (or collapse into) an analysis
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from typing import Dict, List
from datetime import datetime, timezone
import logging

from feedback_insights.core.dependencies import (
    get_analysis_registry,
    get_feedback_repository,
    get_snapshot_gate,
    get_weight_resolver,
)
from feedback_insights.models.enumerations import AnalysisStatus, RelationshipType
from feedback_insights.models.insights import AnalysisOutcome, AnalysisStatusView, ErrorResponse
from feedback_insights.pipelines.orchestrator import AnalysisRegistry
from feedback_insights.pipelines.status import build_status_view
from feedback_insights.scoring.weight_resolver import WeightResolver
from feedback_insights.services.feedback_repository import InMemoryFeedbackRepository
from feedback_insights.services.snapshot_gate import SnapshotCacheGate
from feedback_insights.shutdown import is_shutting_down

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Analysis"])


# =====================================================================
# Response Models
# =====================================================================

class WeightsResponse(BaseModel):
    """Effective relationship weights for a set of present groups."""
    present: List[RelationshipType]
    weights: Dict[str, float]
    can_analyze: bool


# =====================================================================
# Exception Helpers
# =====================================================================

def raise_error(status_code: int, error_code: str, message: str, details: dict = None):
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error_code=error_code,
            message=message,
            details=details,
            timestamp=datetime.now(timezone.utc),
        ).model_dump(mode="json"),
    )


# =====================================================================
# GET /api/v1/analysis/weights
# =====================================================================

@router.get(
    "/analysis/weights",
    response_model=WeightsResponse,
    summary="Resolve relationship weights",
    description="Normalized base weights for the relationship groups given in `present`.",
)
async def resolve_weights(
    present: List[RelationshipType] = Query(default=[]),
    resolver: WeightResolver = Depends(get_weight_resolver),
):
    result = resolver.resolve(present)
    return WeightsResponse(
        present=result.present,
        weights=result.as_floats(),
        can_analyze=bool(result.weights),
    )


# =====================================================================
# GET /api/v1/analysis/{subject_id}/{cycle_id}
# =====================================================================

@router.get(
    "/analysis/{subject_id}/{cycle_id}",
    response_model=AnalysisStatusView,
    summary="Analysis status",
    description="""
    Collecting / ready / analyzing / failed / available, with the stored
    insights and whether they are stale against current feedback.
    """,
)
async def get_analysis_status(
    subject_id: str,
    cycle_id: str,
    repository: InMemoryFeedbackRepository = Depends(get_feedback_repository),
    gate: SnapshotCacheGate = Depends(get_snapshot_gate),
    registry: AnalysisRegistry = Depends(get_analysis_registry),
):
    return await build_status_view(subject_id, cycle_id, repository, gate, registry)


# =====================================================================
# POST /api/v1/analysis/{subject_id}/{cycle_id}/run
# =====================================================================

@router.post(
    "/analysis/{subject_id}/{cycle_id}/run",
    response_model=AnalysisOutcome,
    responses={
        502: {"model": ErrorResponse, "description": "Analysis failed"},
        503: {"model": ErrorResponse, "description": "Service shutting down"},
    },
    summary="Run analysis",
    description="""
    Runs the analysis for one subject and review cycle. Served from the
    snapshot when feedback is unchanged, unless `force=true`. A request
    while a run is in flight waits for that run.
    """,
)
async def run_analysis(
    subject_id: str,
    cycle_id: str,
    force: bool = Query(default=False, description="Bypass the snapshot cache"),
    registry: AnalysisRegistry = Depends(get_analysis_registry),
):
    if is_shutting_down():
        raise_error(status.HTTP_503_SERVICE_UNAVAILABLE, "SHUTTING_DOWN", "Service is shutting down")

    outcome = await registry.run(subject_id, cycle_id, force=force)

    if outcome.status == AnalysisStatus.FAILED:
        raise_error(
            status.HTTP_502_BAD_GATEWAY,
            "ANALYSIS_CANCELLED" if outcome.cancelled else "ANALYSIS_FAILED",
            outcome.error or "Analysis failed",
            {"stage": outcome.failed_stage},
        )

    return outcome
