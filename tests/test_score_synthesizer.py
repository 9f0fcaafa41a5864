# tests/test_score_synthesizer.py
"""
Score Synthesizer Tests

final = Σ(w·m·avg) / Σ(w·m), clamped to [1, 5]; aggregate insight assembly.
"""

from decimal import Decimal

import pytest

from feedback_insights.models.enumerations import (
    ConfidenceLevel,
    InsightRelationship,
    RelationshipType,
)
from feedback_insights.models.feedback import group_by_relationship
from feedback_insights.models.insights import CompetencyEvidence, OracleResult
from feedback_insights.scoring.score_synthesizer import (
    ScoreSynthesizer,
    contribution,
    dedupe,
    order_competencies,
)
from feedback_insights.scoring.weight_resolver import WeightResolver

from tests.fakes import default_result, make_item

SENIOR = RelationshipType.SENIOR
PEER = RelationshipType.PEER
JUNIOR = RelationshipType.JUNIOR


def evidence(score, count, name="Execution & Accountability", quotes=None):
    return CompetencyEvidence(
        name=name,
        score=score,
        evidence_count=count,
        evidence_quotes=quotes or [],
    )


class TestContribution:

    def test_high_confidence_literal(self):
        assert contribution(Decimal("0.40"), Decimal("1.0"), Decimal("4.0")) == Decimal("1.6")

    def test_low_confidence_literal(self):
        assert contribution(Decimal("0.40"), Decimal("0.5"), Decimal("4.0")) == Decimal("0.8")


class TestSynthesizeCompetency:

    def setup_method(self):
        self.synth = ScoreSynthesizer()
        self.weights = WeightResolver().resolve([SENIOR, PEER, JUNIOR])
        self.sizes = {SENIOR: 4, PEER: 4, JUNIOR: 2}

    def test_weighted_confidence_adjusted_score(self):
        result = self.synth.synthesize_competency(
            "Execution & Accountability",
            {SENIOR: evidence(4.0, 4), PEER: evidence(3.0, 3), JUNIOR: evidence(5.0, 1)},
            self.weights,
            self.sizes,
        )
        # (1.6 + 0.7875 + 0.625) / (0.4 + 0.2625 + 0.125)
        assert result.score == pytest.approx(3.83, abs=0.005)
        assert result.evidence_count == 8
        assert result.confidence_level == ConfidenceLevel.HIGH

    def test_divergent_group_gets_note(self):
        result = self.synth.synthesize_competency(
            "Execution & Accountability",
            {SENIOR: evidence(4.0, 4), PEER: evidence(3.0, 3), JUNIOR: evidence(5.0, 1)},
            self.weights,
            self.sizes,
        )
        assert "Junior colleagues" in result.role_specific_notes
        assert "Senior colleagues" not in result.role_specific_notes

    def test_agreeing_groups_have_no_notes(self):
        result = self.synth.synthesize_competency(
            "Execution & Accountability",
            {SENIOR: evidence(4.0, 4), PEER: evidence(4.5, 4)},
            self.weights,
            self.sizes,
        )
        assert result.role_specific_notes == ""

    def test_single_group(self):
        result = self.synth.synthesize_competency(
            "Execution & Accountability",
            {PEER: evidence(2.5, 2)},
            self.weights,
            self.sizes,
        )
        assert result.score == pytest.approx(2.5)
        assert result.confidence_level == ConfidenceLevel.LOW

    def test_unreported_competency_is_omitted(self):
        assert self.synth.synthesize_competency("Growth & Development", {}, self.weights, self.sizes) is None

    def test_group_without_weight_is_ignored(self):
        weights = WeightResolver().resolve([SENIOR])
        result = self.synth.synthesize_competency(
            "Execution & Accountability",
            {SENIOR: evidence(4.0, 4), JUNIOR: evidence(1.0, 4)},
            weights,
            {SENIOR: 4, JUNIOR: 0},
        )
        assert result.score == pytest.approx(4.0)

    def test_evidence_count_capped_at_group_size(self):
        result = self.synth.synthesize_competency(
            "Execution & Accountability",
            {JUNIOR: evidence(4.0, 10)},
            self.weights,
            self.sizes,
        )
        assert result.evidence_count == 2

    def test_quotes_deduplicated(self):
        result = self.synth.synthesize_competency(
            "Execution & Accountability",
            {
                SENIOR: evidence(4.0, 4, quotes=["Delivers on time"]),
                PEER: evidence(4.0, 4, quotes=["delivers on time", "Owns outcomes"]),
            },
            self.weights,
            self.sizes,
        )
        assert result.evidence_quotes == ["Delivers on time", "Owns outcomes"]


class TestGroupInsight:

    def test_bucket_recomputed_from_capped_count(self):
        items = [make_item("a", "senior"), make_item("b", "senior")]
        result = OracleResult(competencies=[evidence(4.0, 10)])
        insight = ScoreSynthesizer().build_group_insight(SENIOR, result, items)
        assert insight.relationship == InsightRelationship.SENIOR
        assert insight.response_count == 2
        assert insight.competencies[0].evidence_count == 2
        assert insight.competencies[0].confidence_level == ConfidenceLevel.LOW

    def test_duplicate_competency_keeps_first(self):
        items = [make_item(str(i), "peer") for i in range(4)]
        result = OracleResult(
            competencies=[evidence(4.0, 4), evidence(2.0, 4, name="execution & accountability")]
        )
        insight = ScoreSynthesizer().build_group_insight(PEER, result, items)
        assert len(insight.competencies) == 1
        assert insight.competencies[0].score == 4.0


class TestAggregateInsight:

    def setup_method(self):
        self.synth = ScoreSynthesizer()

    def _aggregate(self, items):
        grouped = group_by_relationship(items)
        results = {
            r: default_result(r.value, len(group))
            for r, group in grouped.items()
            if group
        }
        return self.synth.build_aggregate_insight(results, grouped)

    def test_aggregate_from_all_groups(self, sample_items):
        insight = self._aggregate(sample_items)
        assert insight.relationship == InsightRelationship.AGGREGATE
        assert insight.response_count == 5

        names = [c.name for c in insight.competencies]
        assert names == ["Leadership & Influence", "Collaboration & Communication"]

        collaboration = insight.competencies[1]
        assert collaboration.score == pytest.approx(4.0)
        assert collaboration.evidence_count == 5
        assert collaboration.confidence_level == ConfidenceLevel.HIGH
        assert collaboration.evidence_quotes == ["senior quote", "peer quote", "junior quote"]
        assert collaboration.description == "senior view on collaboration"

        leadership = insight.competencies[0]
        assert leadership.score == pytest.approx(3.5)
        assert leadership.evidence_count == 3
        assert leadership.confidence_level == ConfidenceLevel.MEDIUM

    def test_themes_are_deduplicated_union(self, sample_items):
        insight = self._aggregate(sample_items)
        assert insight.themes == ["senior theme", "Clear communicator", "peer theme", "junior theme"]

    def test_perspectives_union(self, sample_items):
        insight = self._aggregate(sample_items)
        assert insight.unique_perspectives == [
            "Only senior raised this",
            "Only peer raised this",
            "Only junior raised this",
        ]

    def test_missing_group_is_skipped(self):
        items = [make_item("a", "senior"), make_item("b", "peer"), make_item("c", "peer")]
        insight = self._aggregate(items)
        assert insight.response_count == 3
        assert all(c.score >= 1.0 for c in insight.competencies)

    def test_no_themes_invented(self):
        items = [make_item("a", "peer")]
        grouped = group_by_relationship(items)
        insight = self.synth.build_aggregate_insight({PEER: OracleResult()}, grouped)
        assert insight.themes == []
        assert insight.competencies == []


class TestHelpers:

    def test_dedupe_is_case_insensitive_and_order_preserving(self):
        assert dedupe(["Clear communicator", "clear Communicator ", "", "Owns work"]) == [
            "Clear communicator",
            "Owns work",
        ]

    def test_unknown_competencies_after_core(self):
        ordered = order_competencies(
            ["Custom Skill", "Growth & Development", "Technical/Functional Expertise"]
        )
        assert ordered == [
            "Technical/Functional Expertise",
            "Growth & Development",
            "Custom Skill",
        ]
