"""
Analysis Orchestrator - Feedback Insights Engine
feedback_insights/pipelines/orchestrator.py

State machine that runs one analysis for a (subject, cycle):

    Idle → CacheCheck → [hit: Complete | miss: Preparing]
         → ProcessingGroup(senior → peer → junior) → ProcessingAggregate
         → Saving → Complete
    any processing / saving stage → Error(message, stage)

Gating on the minimum review count happens before CacheCheck. The
snapshot is written only after every stage succeeded.

AnalysisRegistry keeps at most one in-flight run per (subject, cycle);
concurrent requests for the same key await the same run.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, Type

from feedback_insights.config import COMPETENCY_ORDER, settings
from feedback_insights.core.exceptions import (
    AnalysisException,
    AnalysisFailedError,
    FeedbackStoreError,
    OracleError,
    SnapshotStoreError,
)
from feedback_insights.models.enumerations import (
    AnalysisStage,
    AnalysisStatus,
    RELATIONSHIP_ORDER,
)
from feedback_insights.models.feedback import group_by_relationship
from feedback_insights.models.insights import (
    AnalysisOutcome,
    AnalysisSnapshot,
    OracleResult,
    RelationshipInsight,
)
from feedback_insights.pipelines.analysis_state import AnalysisRunState
from feedback_insights.pipelines.progress import (
    LoggingProgressSink,
    ProgressSink,
    RecordingProgressSink,
    STAGE_COMPLETE,
    STAGE_PREPARING,
    STAGE_PROCESSING,
    STAGE_SAVING,
)
from feedback_insights.scoring.score_synthesizer import ScoreSynthesizer, competency_key, dedupe
from feedback_insights.services.feedback_hash import compute_feedback_hash
from feedback_insights.services.feedback_repository import FeedbackStore
from feedback_insights.services.oracle import Oracle
from feedback_insights.services.snapshot_gate import SnapshotCacheGate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_analysis_error(error: Exception, wrapper: Type[AnalysisException]) -> AnalysisException:
    """Wrap collaborator errors that are not AnalysisExceptions."""
    if isinstance(error, AnalysisException):
        return error
    return wrapper(f"{type(error).__name__}: {error}")


class AnalysisOrchestrator:
    """Runs the analysis state machine for one (subject, cycle)."""

    def __init__(
        self,
        subject_id: str,
        cycle_id: str,
        feedback_store: FeedbackStore,
        oracle: Oracle,
        gate: SnapshotCacheGate,
        synthesizer: Optional[ScoreSynthesizer] = None,
        sink: Optional[ProgressSink] = None,
        min_reviews: Optional[int] = None,
        competencies: Optional[List[str]] = None,
        narrate_aggregate: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.subject_id = subject_id
        self.cycle_id = cycle_id
        self.feedback_store = feedback_store
        self.oracle = oracle
        self.gate = gate
        self.synthesizer = synthesizer or ScoreSynthesizer()
        self.sink = sink or LoggingProgressSink(subject_id, cycle_id)
        self.min_reviews = settings.MIN_REVIEWS_REQUIRED if min_reviews is None else min_reviews
        self.competencies = list(competencies or COMPETENCY_ORDER)
        self.narrate_aggregate = narrate_aggregate
        self.clock = clock

        self.state = AnalysisRunState(subject_id=subject_id, cycle_id=cycle_id)
        self._alive = True

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    @property
    def alive(self) -> bool:
        return self._alive

    def teardown(self) -> None:
        """
        Stop reacting to results. Calls already in flight are not aborted;
        whatever they return is discarded.
        """
        self._alive = False
        logger.info(
            "analysis_torn_down",
            extra={"subject_id": self.subject_id, "cycle_id": self.cycle_id, "stage": self.state.stage.value},
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, force: bool = False) -> AnalysisOutcome:
        """
        Run the analysis once.

        Args:
            force: Skip the cache short-circuit and recompute.

        Returns:
            AnalysisOutcome. Failures are reported as status=failed with the
            stage they happened in; they are not raised.
        """
        self.state.reset()

        try:
            items = await self.feedback_store.get_feedback(self.subject_id, self.cycle_id)
        except Exception as e:
            return self._fail(AnalysisStage.IDLE, _as_analysis_error(e, FeedbackStoreError))
        if not self._alive:
            return self._cancelled()

        self.state.review_count = len(items)
        if len(items) < self.min_reviews:
            logger.info(
                "analysis_gated",
                extra={
                    "subject_id": self.subject_id,
                    "cycle_id": self.cycle_id,
                    "review_count": len(items),
                    "required": self.min_reviews,
                },
            )
            return AnalysisOutcome(
                status=AnalysisStatus.COLLECTING,
                review_count=len(items),
                reviews_required=self.min_reviews,
            )

        # ---- CacheCheck ----
        self.state.enter(AnalysisStage.CACHE_CHECK)
        self.state.feedback_hash = compute_feedback_hash(items)

        if not force:
            cached = await self.gate.check(self.subject_id, self.cycle_id, self.state.feedback_hash)
            if not self._alive:
                return self._cancelled()
            if cached is not None:
                self.state.enter(AnalysisStage.COMPLETE)
                self.sink.on_stage_change(STAGE_COMPLETE)
                self.sink.on_success(cached.insights, cached.last_analyzed_at)
                return self._outcome(cached.insights, cached.last_analyzed_at, from_cache=True)

        # ---- Preparing ----
        self.state.enter(AnalysisStage.PREPARING)
        self.sink.on_stage_change(STAGE_PREPARING)
        grouped = group_by_relationship(items)

        # ---- ProcessingGroup (sequential) ----
        for relationship in RELATIONSHIP_ORDER:
            group_items = grouped[relationship]
            if not group_items:
                continue

            self.state.enter(AnalysisStage.PROCESSING_GROUP, relationship.value)
            self.sink.on_stage_change(STAGE_PROCESSING, relationship.value)
            try:
                result = await self.oracle.analyze(relationship.value, group_items, self.competencies)
            except Exception as e:
                if not self._alive:
                    return self._cancelled()
                return self._fail(AnalysisStage.PROCESSING_GROUP, _as_analysis_error(e, OracleError))
            if not self._alive:
                return self._cancelled()

            insight = self.synthesizer.build_group_insight(relationship, result, group_items)
            self.state.record_group(relationship, result, insight)

        # ---- ProcessingAggregate ----
        self.state.enter(AnalysisStage.PROCESSING_AGGREGATE, "aggregate")
        self.sink.on_stage_change(STAGE_PROCESSING, "aggregate")
        aggregate = self.synthesizer.build_aggregate_insight(self.state.group_results, grouped)

        if self.narrate_aggregate:
            group_insights = [self.state.group_insights[r] for r in RELATIONSHIP_ORDER if r in self.state.group_insights]
            try:
                narrative = await self.oracle.analyze("aggregate", group_insights, self.competencies)
            except Exception as e:
                if not self._alive:
                    return self._cancelled()
                return self._fail(AnalysisStage.PROCESSING_AGGREGATE, _as_analysis_error(e, OracleError))
            if not self._alive:
                return self._cancelled()
            aggregate = self._apply_narrative(aggregate, narrative)

        self.state.aggregate = aggregate
        insights = [aggregate] + [
            self.state.group_insights[r] for r in RELATIONSHIP_ORDER if r in self.state.group_insights
        ]

        # ---- Saving ----
        self.state.enter(AnalysisStage.SAVING)
        self.sink.on_stage_change(STAGE_SAVING)
        analyzed_at = self.clock()
        snapshot = AnalysisSnapshot(
            feedback_hash=self.state.feedback_hash,
            insights=insights,
            last_analyzed_at=analyzed_at,
        )
        try:
            await self.gate.save(self.subject_id, self.cycle_id, snapshot)
        except Exception as e:
            if not self._alive:
                return self._cancelled()
            return self._fail(AnalysisStage.SAVING, _as_analysis_error(e, SnapshotStoreError))
        if not self._alive:
            return self._cancelled()

        # ---- Complete ----
        self.state.enter(AnalysisStage.COMPLETE)
        self.sink.on_stage_change(STAGE_COMPLETE)
        self.sink.on_success(insights, analyzed_at)

        logger.info(
            "analysis_saved",
            extra={
                "subject_id": self.subject_id,
                "cycle_id": self.cycle_id,
                "groups": [r.value for r in self.state.group_results],
                "competencies": len(aggregate.competencies),
            },
        )
        return self._outcome(insights, analyzed_at, from_cache=False)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _outcome(
        self,
        insights: List[RelationshipInsight],
        analyzed_at: datetime,
        from_cache: bool,
    ) -> AnalysisOutcome:
        return AnalysisOutcome(
            status=AnalysisStatus.AVAILABLE,
            from_cache=from_cache,
            insights=insights,
            last_analyzed_at=analyzed_at,
            review_count=self.state.review_count,
            reviews_required=self.min_reviews,
        )

    def _fail(self, stage: AnalysisStage, error: AnalysisException) -> AnalysisOutcome:
        failure = AnalysisFailedError(stage.value, getattr(error, "message", str(error)))
        self.state.fail(stage, str(failure))
        logger.error(
            "analysis_stage_failed",
            extra={
                "subject_id": self.subject_id,
                "cycle_id": self.cycle_id,
                "stage": stage.value,
                "error": str(error),
            },
        )
        self.sink.on_error(str(failure))
        return AnalysisOutcome(
            status=AnalysisStatus.FAILED,
            review_count=self.state.review_count,
            reviews_required=self.min_reviews,
            error=str(failure),
            failed_stage=stage.value,
        )

    def _cancelled(self) -> AnalysisOutcome:
        return AnalysisOutcome(
            status=AnalysisStatus.FAILED,
            review_count=self.state.review_count,
            reviews_required=self.min_reviews,
            error="Analysis cancelled",
            failed_stage=self.state.stage.value,
            cancelled=True,
        )

    @staticmethod
    def _apply_narrative(aggregate: RelationshipInsight, narrative: OracleResult) -> RelationshipInsight:
        """Take descriptions and perspectives from the narrative; scores stay synthesized."""
        descriptions = {
            competency_key(c.name): c.description for c in narrative.competencies if c.description
        }
        competencies = [
            c.model_copy(update={"description": descriptions.get(competency_key(c.name), c.description)})
            for c in aggregate.competencies
        ]
        return aggregate.model_copy(
            update={
                "competencies": competencies,
                "unique_perspectives": dedupe(
                    aggregate.unique_perspectives + narrative.unique_perspectives
                ),
            }
        )


class AnalysisRegistry:
    """
    Owns in-flight orchestrators, one per (subject, cycle).

    A request for a key that already has a run in flight awaits that run
    and receives the same outcome.
    """

    def __init__(
        self,
        feedback_store: FeedbackStore,
        oracle: Oracle,
        gate: SnapshotCacheGate,
        synthesizer: Optional[ScoreSynthesizer] = None,
        min_reviews: Optional[int] = None,
        narrate_aggregate: bool = False,
    ):
        self.feedback_store = feedback_store
        self.oracle = oracle
        self.gate = gate
        self.synthesizer = synthesizer or ScoreSynthesizer()
        self.min_reviews = settings.MIN_REVIEWS_REQUIRED if min_reviews is None else min_reviews
        self.narrate_aggregate = narrate_aggregate

        self._inflight: Dict[Tuple[str, str], Tuple[AnalysisOrchestrator, asyncio.Task]] = {}
        self._progress: Dict[Tuple[str, str], RecordingProgressSink] = {}

    def create(self, subject_id: str, cycle_id: str, sink: Optional[ProgressSink] = None) -> AnalysisOrchestrator:
        return AnalysisOrchestrator(
            subject_id,
            cycle_id,
            feedback_store=self.feedback_store,
            oracle=self.oracle,
            gate=self.gate,
            synthesizer=self.synthesizer,
            sink=sink,
            min_reviews=self.min_reviews,
            narrate_aggregate=self.narrate_aggregate,
        )

    async def run(self, subject_id: str, cycle_id: str, force: bool = False) -> AnalysisOutcome:
        key = (subject_id, cycle_id)
        entry = self._inflight.get(key)

        # A torn-down run still owns the key until its pending call returns
        while entry is not None and not entry[0].alive:
            await asyncio.wait([entry[1]])
            entry = self._inflight.get(key)

        if entry is not None:
            logger.info("analysis_collapsed", extra={"subject_id": subject_id, "cycle_id": cycle_id})
            return await asyncio.shield(entry[1])

        sink = RecordingProgressSink(forward=LoggingProgressSink(subject_id, cycle_id))
        orchestrator = self.create(subject_id, cycle_id, sink)
        task = asyncio.ensure_future(orchestrator.run(force=force))
        self._inflight[key] = (orchestrator, task)
        self._progress[key] = sink

        def _release(done: asyncio.Task) -> None:
            current = self._inflight.get(key)
            if current is not None and current[1] is done:
                del self._inflight[key]
            # Only a failure needs to outlive the run; success is in the snapshot
            if not self._failed(done) and self._progress.get(key) is sink:
                del self._progress[key]

        task.add_done_callback(_release)
        return await asyncio.shield(task)

    @staticmethod
    def _failed(task: asyncio.Task) -> bool:
        if task.cancelled() or task.exception() is not None:
            return False
        outcome = task.result()
        return outcome.status == AnalysisStatus.FAILED and not outcome.cancelled

    def in_flight(self, subject_id: str, cycle_id: str) -> Optional[AnalysisOrchestrator]:
        """The live run for a key, if any. Torn-down runs are not reported."""
        entry = self._inflight.get((subject_id, cycle_id))
        if entry is None or not entry[0].alive:
            return None
        return entry[0]

    def last_progress(self, subject_id: str, cycle_id: str) -> Optional[RecordingProgressSink]:
        """Progress of the running or last failed run for a key."""
        return self._progress.get((subject_id, cycle_id))

    def teardown(self, subject_id: str, cycle_id: str) -> None:
        entry = self._inflight.get((subject_id, cycle_id))
        if entry is not None:
            entry[0].teardown()

    def teardown_all(self) -> None:
        """Tear down every in-flight run (app shutdown)."""
        for orchestrator, _ in list(self._inflight.values()):
            orchestrator.teardown()
        self._progress.clear()
