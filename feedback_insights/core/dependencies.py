"""
Dependencies - Feedback Insights Engine
feedback_insights/core/dependencies.py

FastAPI dependency injection for repositories, stores and the analysis registry.
"""

import logging
from functools import lru_cache

from feedback_insights.config import settings
from feedback_insights.scoring.weight_resolver import WeightResolver
from feedback_insights.scoring.confidence_calculator import ConfidenceCalculator
from feedback_insights.scoring.score_synthesizer import ScoreSynthesizer
from feedback_insights.services.cache import get_cache
from feedback_insights.services.feedback_repository import InMemoryFeedbackRepository
from feedback_insights.services.oracle import LLMOracle
from feedback_insights.services.snapshot_gate import SnapshotCacheGate
from feedback_insights.services.snapshot_store import InMemorySnapshotStore, RedisSnapshotStore
from feedback_insights.pipelines.orchestrator import AnalysisRegistry

logger = logging.getLogger(__name__)


@lru_cache()
def get_feedback_repository() -> InMemoryFeedbackRepository:
    """Get cached feedback repository."""
    return InMemoryFeedbackRepository()


@lru_cache()
def get_snapshot_store():
    """Redis-backed snapshot store, or in-process when Redis is unavailable."""
    cache = get_cache()
    if cache is None:
        logger.warning("snapshot_store_in_memory", extra={"redis_url": settings.REDIS_URL})
        return InMemorySnapshotStore()
    return RedisSnapshotStore(cache, ttl_seconds=settings.CACHE_TTL_SNAPSHOTS)


@lru_cache()
def get_snapshot_gate() -> SnapshotCacheGate:
    return SnapshotCacheGate(get_snapshot_store())


@lru_cache()
def get_oracle() -> LLMOracle:
    """Get cached LLM oracle client."""
    return LLMOracle()


@lru_cache()
def get_weight_resolver() -> WeightResolver:
    return WeightResolver(settings.relationship_weights)


@lru_cache()
def get_score_synthesizer() -> ScoreSynthesizer:
    return ScoreSynthesizer(
        weight_resolver=get_weight_resolver(),
        confidence_calculator=ConfidenceCalculator(
            min_reviews_per_group=settings.MIN_REVIEWS_PER_GROUP,
            saturation=settings.EVIDENCE_SATURATION_COUNT,
        ),
    )


@lru_cache()
def get_analysis_registry() -> AnalysisRegistry:
    """Get cached AnalysisRegistry instance."""
    return AnalysisRegistry(
        feedback_store=get_feedback_repository(),
        oracle=get_oracle(),
        gate=get_snapshot_gate(),
        synthesizer=get_score_synthesizer(),
        min_reviews=settings.MIN_REVIEWS_REQUIRED,
    )
