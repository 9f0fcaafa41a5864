# tests/test_property_based.py
"""
Property-Based Tests

Hypothesis tests with max_examples=500, covering:
  - WeightResolver normalization
  - Confidence bucket monotonicity and factor bounds
  - ScoreSynthesizer output bounds
  - Feedback hash order independence
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from feedback_insights.models.enumerations import RelationshipType, RELATIONSHIP_ORDER
from feedback_insights.models.insights import CompetencyEvidence
from feedback_insights.scoring.confidence_calculator import (
    ConfidenceCalculator,
    bucket_for_evidence,
    exponential_evidence_curve,
    log_evidence_curve,
    multiplier_for_bucket,
)
from feedback_insights.scoring.score_synthesizer import ScoreSynthesizer
from feedback_insights.scoring.weight_resolver import WeightResolver
from feedback_insights.services.feedback_hash import compute_feedback_hash

from tests.fakes import make_item

# ---------------------------------------------------------------------------
# Shared strategies
# ---------------------------------------------------------------------------

groups_st = st.sets(st.sampled_from(RELATIONSHIP_ORDER), min_size=1)

score_st = st.floats(min_value=1.0, max_value=5.0, allow_nan=False, allow_infinity=False)


@st.composite
def group_evidence_st(draw):
    """Draw evidence for a random non-empty subset of groups plus group sizes."""
    groups = draw(groups_st)
    sizes = {r: 0 for r in RELATIONSHIP_ORDER}
    evidence = {}
    for r in groups:
        size = draw(st.integers(min_value=1, max_value=20))
        sizes[r] = size
        evidence[r] = CompetencyEvidence(
            name="Innovation & Problem-Solving",
            score=draw(score_st),
            evidence_count=draw(st.integers(min_value=0, max_value=25)),
        )
    return evidence, sizes


# ---------------------------------------------------------------------------
# Weight properties
# ---------------------------------------------------------------------------


class TestWeightPropertyBased:

    @given(groups_st)
    @settings(max_examples=500)
    def test_weights_sum_to_one(self, groups):
        result = WeightResolver().resolve(groups)
        assert abs(float(sum(result.weights.values())) - 1.0) < 1e-9

    @given(groups_st)
    @settings(max_examples=500)
    def test_only_present_groups_weighted(self, groups):
        result = WeightResolver().resolve(groups)
        assert set(result.weights) == set(groups)
        assert all(w > 0 for w in result.weights.values())

    @given(groups_st)
    @settings(max_examples=500)
    def test_relative_order_preserved(self, groups):
        """Senior never weighs less than peer, peer never less than junior."""
        result = WeightResolver().resolve(groups)
        present = [r for r in RELATIONSHIP_ORDER if r in result.weights]
        values = [result.weights[r] for r in present]
        assert values == sorted(values, reverse=True)


# ---------------------------------------------------------------------------
# Confidence properties
# ---------------------------------------------------------------------------


class TestConfidencePropertyBased:

    @given(st.integers(min_value=0, max_value=200), st.integers(min_value=0, max_value=200))
    @settings(max_examples=500)
    def test_multiplier_monotonic_in_evidence(self, a, b):
        low, high = sorted((a, b))
        assert multiplier_for_bucket(bucket_for_evidence(low)) <= multiplier_for_bucket(
            bucket_for_evidence(high)
        )

    @given(st.integers(min_value=0, max_value=100), st.integers(min_value=1, max_value=50))
    @settings(max_examples=500)
    def test_curves_bounded(self, n, saturation):
        for curve in (log_evidence_curve(saturation), exponential_evidence_curve(saturation)):
            assert 0.0 <= curve(n) <= 1.0

    @given(
        st.integers(min_value=0, max_value=30),
        st.lists(score_st, max_size=12),
        st.dictionaries(st.sampled_from(RELATIONSHIP_ORDER), st.integers(min_value=0, max_value=10)),
    )
    @settings(max_examples=500)
    def test_confidence_value_in_unit_interval(self, n, scores, sizes):
        result = ConfidenceCalculator().calculate(n, scores, sizes)
        assert Decimal("0") <= result.confidence_value <= Decimal("1")


# ---------------------------------------------------------------------------
# Synthesizer properties
# ---------------------------------------------------------------------------


class TestSynthesizerPropertyBased:

    @given(group_evidence_st())
    @settings(max_examples=500)
    def test_final_score_bounded(self, drawn):
        evidence, sizes = drawn
        weights = WeightResolver().resolve(r for r, n in sizes.items() if n > 0)
        result = ScoreSynthesizer().synthesize_competency(
            "Innovation & Problem-Solving", evidence, weights, sizes
        )
        assert result is not None
        assert 1.0 <= result.score <= 5.0

    @given(group_evidence_st())
    @settings(max_examples=500)
    def test_final_score_between_group_averages(self, drawn):
        evidence, sizes = drawn
        weights = WeightResolver().resolve(r for r, n in sizes.items() if n > 0)
        result = ScoreSynthesizer().synthesize_competency(
            "Innovation & Problem-Solving", evidence, weights, sizes
        )
        averages = [e.score for e in evidence.values()]
        # final is rounded to 0.01
        assert min(averages) - 0.005 <= result.score <= max(averages) + 0.005

    @given(group_evidence_st())
    @settings(max_examples=500)
    def test_deterministic(self, drawn):
        evidence, sizes = drawn
        weights = WeightResolver().resolve(r for r, n in sizes.items() if n > 0)
        synth = ScoreSynthesizer()
        first = synth.synthesize_competency("Innovation & Problem-Solving", evidence, weights, sizes)
        second = synth.synthesize_competency("Innovation & Problem-Solving", evidence, weights, sizes)
        assert first == second


# ---------------------------------------------------------------------------
# Hash properties
# ---------------------------------------------------------------------------


class TestFeedbackHashPropertyBased:

    @given(st.permutations(list(range(6))))
    @settings(max_examples=200)
    def test_hash_order_independent(self, order):
        relationships = ["senior", "peer", "junior"]
        items = [
            make_item(f"fb-{i}", relationships[i % 3], responses={"q1": i}, minutes=i)
            for i in range(6)
        ]
        shuffled = [items[i] for i in order]
        assert compute_feedback_hash(shuffled) == compute_feedback_hash(items)
