# tests/conftest.py

"""
Pytest Fixtures - Shared feedback data, fake oracle and in-memory stores

SAMPLE DATA REFERENCE:
- Subject: emp-001, cycle: 2025-h1
- Feedback: 2 senior, 2 peer, 1 junior (exactly MIN_REVIEWS_REQUIRED = 5)
"""

from typing import List

import pytest
from fastapi.testclient import TestClient

from feedback_insights.models.feedback import RawFeedbackItem
from feedback_insights.pipelines.orchestrator import AnalysisRegistry
from feedback_insights.services.feedback_repository import InMemoryFeedbackRepository
from feedback_insights.services.snapshot_gate import SnapshotCacheGate
from feedback_insights.services.snapshot_store import InMemorySnapshotStore

from tests.fakes import CYCLE_ID, SUBJECT_ID, FakeOracle, sample_feedback


# =============================================================================
# FEEDBACK ITEM FIXTURES
# =============================================================================

@pytest.fixture
def sample_items() -> List[RawFeedbackItem]:
    """Five items spanning all three relationship groups."""
    return sample_feedback()


# =============================================================================
# STORE / REGISTRY FIXTURES
# =============================================================================

@pytest.fixture
def repository(sample_items) -> InMemoryFeedbackRepository:
    repo = InMemoryFeedbackRepository()
    repo.replace(SUBJECT_ID, CYCLE_ID, sample_items)
    return repo


@pytest.fixture
def snapshot_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def gate(snapshot_store) -> SnapshotCacheGate:
    return SnapshotCacheGate(snapshot_store)


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def registry(repository, oracle, gate) -> AnalysisRegistry:
    return AnalysisRegistry(
        feedback_store=repository,
        oracle=oracle,
        gate=gate,
        min_reviews=5,
    )


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(monkeypatch, registry, repository, gate):
    """TestClient with the in-memory stores and fake oracle wired in."""
    from feedback_insights import main
    from feedback_insights.core import dependencies

    app = main.app
    app.dependency_overrides[dependencies.get_analysis_registry] = lambda: registry
    app.dependency_overrides[dependencies.get_feedback_repository] = lambda: repository
    app.dependency_overrides[dependencies.get_snapshot_gate] = lambda: gate
    monkeypatch.setattr(main, "get_analysis_registry", lambda: registry)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
