# feedback_insights/scoring/score_synthesizer.py
"""
Score Synthesizer
-----------------
Combines per-group competency evidence into one calibrated score per
competency plus the aggregate insight.

Formula (per competency, over groups g that reported it):
    contribution(g) = w(g) × m(g) × avg(g)
    final = Σ contribution(g) / Σ (w(g) × m(g))      clamped to [1, 5]

where w is the renormalized relationship weight and m the confidence
multiplier (high 1.0, medium 0.75, low 0.5).

Themes, quotes and perspectives are unions of what the groups reported.
The synthesizer never invents content of its own.
"""
import structlog
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional

from feedback_insights.config import CORE_COMPETENCIES, COMPETENCY_ORDER
from feedback_insights.models.enumerations import (
    InsightRelationship,
    RelationshipType,
    RELATIONSHIP_ORDER,
)
from feedback_insights.models.feedback import RawFeedbackItem
from feedback_insights.models.insights import (
    AggregateCompetencyScore,
    CompetencyEvidence,
    OracleResult,
    RelationshipInsight,
)
from feedback_insights.scoring.confidence_calculator import (
    ConfidenceCalculator,
    bucket_for_evidence,
)
from feedback_insights.scoring.utils import clamp_score
from feedback_insights.scoring.weight_resolver import WeightResolver, WeightResult

logger = structlog.get_logger(__name__)

# Group average this far from the final score gets a role-specific note
DIVERGENCE_THRESHOLD = Decimal("1.0")

_GROUP_LABELS = {
    RelationshipType.SENIOR: "Senior colleagues",
    RelationshipType.PEER:   "Peers",
    RelationshipType.JUNIOR: "Junior colleagues",
}


def contribution(weight: Decimal, multiplier: Decimal, avg_score: Decimal) -> Decimal:
    """w × m × avg for one group."""
    return weight * multiplier * avg_score


def dedupe(values: Iterable[str]) -> List[str]:
    """Order-preserving, case-insensitive dedup; blank entries dropped."""
    seen = set()
    result = []
    for value in values:
        key = value.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(value.strip())
    return result


def competency_key(name: str) -> str:
    return " ".join(name.lower().split())


def order_competencies(names: Iterable[str]) -> List[str]:
    """Core competency order first, unknown names after in first-seen order."""
    core_index = {competency_key(n): i for i, n in enumerate(COMPETENCY_ORDER)}
    names = list(names)
    known = sorted(
        (n for n in names if competency_key(n) in core_index),
        key=lambda n: core_index[competency_key(n)],
    )
    unknown = [n for n in names if competency_key(n) not in core_index]
    return known + unknown


def _score_aliases(name: str) -> set:
    """Response keys that may carry a numeric rating for this competency."""
    aliases = {competency_key(name)}
    for code, mapping in CORE_COMPETENCIES.items():
        if competency_key(str(mapping["name"])) == competency_key(name):
            aliases.add(code.lower())
    return aliases


@dataclass
class GroupContribution:
    """One group's share of a synthesized competency score."""
    relationship: RelationshipType
    avg_score: Decimal
    weight: Decimal
    multiplier: Decimal
    contribution: Decimal


class ScoreSynthesizer:
    """Synthesize per-group evidence into calibrated aggregate scores."""

    def __init__(
        self,
        weight_resolver: Optional[WeightResolver] = None,
        confidence_calculator: Optional[ConfidenceCalculator] = None,
    ):
        self.weight_resolver = weight_resolver or WeightResolver()
        self.confidence_calculator = confidence_calculator or ConfidenceCalculator()

    # ------------------------------------------------------------------
    # Per-group insight
    # ------------------------------------------------------------------

    def build_group_insight(
        self,
        relationship: RelationshipType,
        result: OracleResult,
        items: List[RawFeedbackItem],
    ) -> RelationshipInsight:
        """
        Normalize one group's oracle result into a RelationshipInsight.

        Evidence counts are capped at the group's item count, since a
        reviewer can only count once. The bucket is recomputed from that
        count rather than trusted from the oracle.
        """
        merged = self._merge_duplicates(result.competencies)
        competencies = []
        for name in order_competencies(merged.keys()):
            evidence = merged[name]
            count = min(evidence.evidence_count, len(items))
            competencies.append(
                AggregateCompetencyScore(
                    name=evidence.name,
                    score=float(clamp_score(Decimal(str(evidence.score)))),
                    confidence_level=bucket_for_evidence(count),
                    description=evidence.description,
                    evidence_quotes=dedupe(evidence.evidence_quotes),
                    evidence_count=count,
                )
            )

        return RelationshipInsight(
            relationship=InsightRelationship(relationship.value),
            themes=dedupe(result.themes),
            competencies=competencies,
            response_count=len(items),
            unique_perspectives=dedupe(result.unique_perspectives),
        )

    # ------------------------------------------------------------------
    # Aggregate
    # ------------------------------------------------------------------

    def synthesize_competency(
        self,
        name: str,
        group_evidence: Mapping[RelationshipType, CompetencyEvidence],
        weights: WeightResult,
        group_sizes: Mapping[RelationshipType, int],
        reviewer_scores: Optional[Mapping[RelationshipType, List[float]]] = None,
    ) -> Optional[AggregateCompetencyScore]:
        """
        Args:
            name: Competency display name.
            group_evidence: Evidence per group that reported this competency.
            weights: Resolved relationship weights.
            group_sizes: Item count per relationship group.
            reviewer_scores: Individual scores per group used for consistency.

        Returns:
            AggregateCompetencyScore, or None if no weighted group reported it.
        """
        reviewer_scores = reviewer_scores or {}
        parts: List[GroupContribution] = []
        total_count = 0
        quotes: List[str] = []
        description = ""

        for relationship in RELATIONSHIP_ORDER:
            evidence = group_evidence.get(relationship)
            weight = weights.get(relationship)
            if evidence is None or weight == 0:
                continue

            count = min(evidence.evidence_count, group_sizes.get(relationship, 0))
            scores = (
                evidence.reviewer_scores
                or reviewer_scores.get(relationship)
                or [evidence.score]
            )
            confidence = self.confidence_calculator.calculate(count, scores, group_sizes)
            avg = clamp_score(Decimal(str(evidence.score)))

            parts.append(
                GroupContribution(
                    relationship=relationship,
                    avg_score=avg,
                    weight=weight,
                    multiplier=confidence.multiplier,
                    contribution=contribution(weight, confidence.multiplier, avg),
                )
            )
            total_count += count
            quotes.extend(evidence.evidence_quotes)
            if not description and evidence.description:
                description = evidence.description

        denominator = sum((p.weight * p.multiplier for p in parts), Decimal("0"))
        if not parts or denominator == 0:
            return None

        numerator = sum((p.contribution for p in parts), Decimal("0"))
        final = clamp_score(numerator / denominator).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

        notes = [
            f"{_GROUP_LABELS[p.relationship]} rated this {p.avg_score:.1f} "
            f"against an overall {final:.1f}"
            for p in parts
            if abs(p.avg_score - final) >= DIVERGENCE_THRESHOLD
        ]

        logger.info(
            "competency_synthesized",
            competency=name,
            score=float(final),
            groups=[p.relationship.value for p in parts],
            contributions={p.relationship.value: float(p.contribution) for p in parts},
            evidence_count=total_count,
        )

        return AggregateCompetencyScore(
            name=name,
            score=float(final),
            confidence_level=bucket_for_evidence(total_count),
            description=description,
            role_specific_notes="; ".join(notes),
            evidence_quotes=dedupe(quotes),
            evidence_count=total_count,
        )

    def build_aggregate_insight(
        self,
        group_results: Mapping[RelationshipType, OracleResult],
        grouped_items: Mapping[RelationshipType, List[RawFeedbackItem]],
    ) -> RelationshipInsight:
        """
        Build the aggregate insight from the per-group oracle results.

        Args:
            group_results: Oracle result per processed group.
            grouped_items: Feedback items per relationship group.
        """
        group_sizes = {r: len(grouped_items.get(r, [])) for r in RELATIONSHIP_ORDER}
        weights = self.weight_resolver.resolve(r for r, n in group_sizes.items() if n > 0)

        # competency key -> display name, first-seen order
        names: Dict[str, str] = {}
        by_group: Dict[str, Dict[RelationshipType, CompetencyEvidence]] = {}
        for relationship in RELATIONSHIP_ORDER:
            result = group_results.get(relationship)
            if result is None:
                continue
            for name, evidence in self._merge_duplicates(result.competencies).items():
                key = competency_key(name)
                names.setdefault(key, name)
                by_group.setdefault(key, {})[relationship] = evidence

        competencies = []
        for name in order_competencies(names.values()):
            key = competency_key(name)
            scores = {
                r: self._item_scores(name, grouped_items.get(r, []))
                for r in by_group[key]
            }
            synthesized = self.synthesize_competency(
                name, by_group[key], weights, group_sizes, scores
            )
            if synthesized is not None:
                competencies.append(synthesized)

        ordered_results = [group_results[r] for r in RELATIONSHIP_ORDER if r in group_results]
        insight = RelationshipInsight(
            relationship=InsightRelationship.AGGREGATE,
            themes=dedupe(t for result in ordered_results for t in result.themes),
            competencies=competencies,
            response_count=sum(group_sizes.values()),
            unique_perspectives=dedupe(
                p for result in ordered_results for p in result.unique_perspectives
            ),
        )

        logger.info(
            "aggregate_synthesized",
            competencies=len(competencies),
            themes=len(insight.themes),
            weights=weights.as_floats(),
        )
        return insight

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _merge_duplicates(evidence: List[CompetencyEvidence]) -> Dict[str, CompetencyEvidence]:
        """Keep the first entry per competency name (case-insensitive)."""
        merged: Dict[str, CompetencyEvidence] = {}
        seen = set()
        for item in evidence:
            key = competency_key(item.name)
            if key in seen:
                continue
            seen.add(key)
            merged[item.name] = item
        return merged

    @staticmethod
    def _item_scores(name: str, items: List[RawFeedbackItem]) -> List[float]:
        """Numeric ratings the group's items gave this competency directly."""
        aliases = _score_aliases(name)
        scores = []
        for item in items:
            for key, value in item.numeric_responses().items():
                if competency_key(key) in aliases:
                    scores.append(value)
        return scores
