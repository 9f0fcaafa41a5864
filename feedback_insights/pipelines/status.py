"""
Status view for the analysis panel.

Precedence: collecting (too few reviews) → analyzing (run in flight)
→ available (fresh snapshot, with any later run error attached)
→ failed (last run errored) → available (stale snapshot) → ready.
"""
from feedback_insights.models.enumerations import AnalysisStatus
from feedback_insights.models.insights import AnalysisStatusView
from feedback_insights.pipelines.orchestrator import AnalysisRegistry
from feedback_insights.services.feedback_hash import compute_feedback_hash
from feedback_insights.services.feedback_repository import FeedbackStore
from feedback_insights.services.snapshot_gate import SnapshotCacheGate


async def build_status_view(
    subject_id: str,
    cycle_id: str,
    feedback_store: FeedbackStore,
    gate: SnapshotCacheGate,
    registry: AnalysisRegistry,
) -> AnalysisStatusView:
    items = await feedback_store.get_feedback(subject_id, cycle_id)
    view = AnalysisStatusView(
        subject_id=subject_id,
        cycle_id=cycle_id,
        status=AnalysisStatus.READY,
        review_count=len(items),
        reviews_required=registry.min_reviews,
    )

    if len(items) < registry.min_reviews:
        view.status = AnalysisStatus.COLLECTING
        return view

    progress = registry.last_progress(subject_id, cycle_id)
    if registry.in_flight(subject_id, cycle_id) is not None:
        view.status = AnalysisStatus.ANALYZING
        if progress is not None:
            view.stage = progress.stage
            view.substep = progress.substep
        return view

    snapshot = await gate.load(subject_id, cycle_id)
    if snapshot is not None:
        view.status = AnalysisStatus.AVAILABLE
        view.insights = snapshot.insights
        view.last_analyzed_at = snapshot.last_analyzed_at
        view.is_stale = snapshot.feedback_hash != compute_feedback_hash(items)

    if progress is not None and progress.error:
        view.error = progress.error
        # A fresh snapshot is still served; the error is reported alongside
        if snapshot is None or view.is_stale:
            view.status = AnalysisStatus.FAILED

    return view
