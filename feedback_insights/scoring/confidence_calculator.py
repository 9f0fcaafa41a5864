"""
scoring/confidence_calculator.py

Computes per-competency, per-group confidence from three factors and maps
the distinct-reviewer evidence count onto a display bucket and the scoring
multiplier the synthesizer applies.

Formula:
    EQ  = f(n)                                  # evidence quantity curve
    C   = 1 − var(scores) / 4                   # consistency, clamped [0, 1]
    Cov = 0.5 × present/3 + 0.5 × met/present   # relationship coverage
    confidence = 0.4 × EQ + 0.3 × C + 0.3 × Cov

Buckets (distinct-reviewer evidence count):
    0-2 → low (×0.5)   3 → medium (×0.75)   4+ → high (×1.0)
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional, Sequence

from feedback_insights.models.enumerations import ConfidenceLevel, RelationshipType
from feedback_insights.scoring.utils import clamp, population_variance

logger = logging.getLogger(__name__)


EvidenceCurve = Callable[[int], float]

# ((5 - 1) / 2) ** 2
MAX_VARIANCE = Decimal("4")

W_EVIDENCE = Decimal("0.4")
W_CONSISTENCY = Decimal("0.3")
W_COVERAGE = Decimal("0.3")

MEDIUM_THRESHOLD = 3
HIGH_THRESHOLD = 4

CONFIDENCE_MULTIPLIERS: Dict[ConfidenceLevel, Decimal] = {
    ConfidenceLevel.HIGH:   Decimal("1.0"),
    ConfidenceLevel.MEDIUM: Decimal("0.75"),
    ConfidenceLevel.LOW:    Decimal("0.5"),
}


def log_evidence_curve(saturation: int = 15) -> EvidenceCurve:
    """log(1+n) / log(1+saturation), capped at 1.0."""
    denominator = math.log(1 + saturation)

    def curve(n: int) -> float:
        if n <= 0:
            return 0.0
        return min(1.0, math.log(1 + n) / denominator)

    return curve


def exponential_evidence_curve(saturation: int = 15) -> EvidenceCurve:
    """
    1 − exp(−k·n), rescaled so the curve reaches exactly 1.0 at `saturation`.

    k is chosen so the unscaled curve is at 95% of its asymptote at the
    saturation point.
    """
    k = 3.0 / saturation
    ceiling = 1 - math.exp(-k * saturation)

    def curve(n: int) -> float:
        if n <= 0:
            return 0.0
        return min(1.0, (1 - math.exp(-k * n)) / ceiling)

    return curve


def bucket_for_evidence(evidence_count: int) -> ConfidenceLevel:
    """Display bucket from the raw distinct-reviewer evidence count."""
    if evidence_count >= HIGH_THRESHOLD:
        return ConfidenceLevel.HIGH
    if evidence_count >= MEDIUM_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def multiplier_for_bucket(level: ConfidenceLevel) -> Decimal:
    return CONFIDENCE_MULTIPLIERS[level]


@dataclass
class ConfidenceFactors:
    """The three confidence inputs, each in [0, 1]."""
    evidence_quantity_score: Decimal
    consistency_score: Decimal
    coverage_score: Decimal


@dataclass
class ConfidenceResult:
    """Output of ConfidenceCalculator.calculate()."""
    factors: ConfidenceFactors
    confidence_value: Decimal  # weighted blend of factors, quantized to 0.0001
    level: ConfidenceLevel     # display bucket from evidence count
    multiplier: Decimal        # scoring multiplier from bucket
    evidence_count: int


class ConfidenceCalculator:
    """Calculate per-group competency confidence."""

    def __init__(
        self,
        evidence_curve: Optional[EvidenceCurve] = None,
        min_reviews_per_group: int = 2,
        saturation: int = 15,
    ):
        self.evidence_curve = evidence_curve or log_evidence_curve(saturation)
        self.min_reviews_per_group = min_reviews_per_group

    def evidence_quantity_score(self, evidence_count: int) -> Decimal:
        value = Decimal(str(self.evidence_curve(max(0, evidence_count))))
        return clamp(value)

    def consistency_score(self, scores: Sequence[float]) -> Decimal:
        """1 − population variance / 4; a single score (or none) is fully consistent."""
        if len(scores) < 2:
            return Decimal("1")
        variance = population_variance([Decimal(str(s)) for s in scores])
        return clamp(Decimal("1") - variance / MAX_VARIANCE)

    def coverage_score(self, group_sizes: Mapping[RelationshipType, int]) -> Decimal:
        """
        Share of relationship groups present, blended with the share of
        present groups that meet the per-group review threshold.
        """
        present = [size for size in group_sizes.values() if size > 0]
        if not present:
            return Decimal("0")
        presence = Decimal(len(present)) / Decimal("3")
        meeting = sum(1 for size in present if size >= self.min_reviews_per_group)
        threshold = Decimal(meeting) / Decimal(len(present))
        return clamp(Decimal("0.5") * presence + Decimal("0.5") * threshold)

    def calculate(
        self,
        evidence_count: int,
        scores: Sequence[float],
        group_sizes: Mapping[RelationshipType, int],
    ) -> ConfidenceResult:
        """
        Args:
            evidence_count: Distinct reviewers who gave evidence for the competency.
            scores: Raw scores contributed within the group.
            group_sizes: Item count per relationship group for the subject.

        Returns:
            ConfidenceResult with factors, blended value, bucket and multiplier.
        """
        if evidence_count < 0:
            raise ValueError(f"evidence_count must be >= 0, got {evidence_count}")

        factors = ConfidenceFactors(
            evidence_quantity_score=self.evidence_quantity_score(evidence_count),
            consistency_score=self.consistency_score(scores),
            coverage_score=self.coverage_score(group_sizes),
        )
        value = (
            W_EVIDENCE * factors.evidence_quantity_score
            + W_CONSISTENCY * factors.consistency_score
            + W_COVERAGE * factors.coverage_score
        ).quantize(Decimal("0.0001"))

        level = bucket_for_evidence(evidence_count)
        multiplier = multiplier_for_bucket(level)

        logger.debug(
            "confidence_calculated",
            extra={
                "evidence_count": evidence_count,
                "evidence_quantity": float(factors.evidence_quantity_score),
                "consistency": float(factors.consistency_score),
                "coverage": float(factors.coverage_score),
                "confidence_value": float(value),
                "level": level.value,
            },
        )

        return ConfidenceResult(
            factors=factors,
            confidence_value=value,
            level=level,
            multiplier=multiplier,
            evidence_count=evidence_count,
        )
