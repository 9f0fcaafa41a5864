"""
Relationship Weight Resolver
feedback_insights/scoring/weight_resolver.py

Turns the fixed relationship base weights into effective weights for the
groups that actually submitted feedback.

Formula:
    w_eff(g) = base(g) / Σ base(h)   over present groups h

Base weights (config.py, sum = 1.0):
    senior  0.40
    peer    0.35
    junior  0.25
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

from feedback_insights.models.enumerations import RelationshipType, RELATIONSHIP_ORDER

logger = logging.getLogger(__name__)


DEFAULT_BASE_WEIGHTS: Dict[RelationshipType, Decimal] = {
    RelationshipType.SENIOR: Decimal("0.40"),
    RelationshipType.PEER:   Decimal("0.35"),
    RelationshipType.JUNIOR: Decimal("0.25"),
}


@dataclass
class WeightResult:
    """Output of WeightResolver.resolve()."""
    weights: Dict[RelationshipType, Decimal] = field(default_factory=dict)
    present: list = field(default_factory=list)

    def get(self, relationship: RelationshipType) -> Decimal:
        return self.weights.get(relationship, Decimal("0"))

    def as_floats(self) -> Dict[str, float]:
        return {r.value: float(w) for r, w in self.weights.items()}


class WeightResolver:
    """Renormalize base weights over the relationship groups present."""

    def __init__(self, base_weights: Optional[Dict[str, float]] = None):
        if base_weights is None:
            self.base_weights = dict(DEFAULT_BASE_WEIGHTS)
        else:
            self.base_weights = {
                RelationshipType(k): Decimal(str(v)) for k, v in base_weights.items()
            }

    def resolve(self, present: Iterable[RelationshipType]) -> WeightResult:
        """
        Args:
            present: Relationship groups with at least one feedback item.

        Returns:
            WeightResult with one weight per present group, summing to 1.
            Absent groups get no entry. An empty input yields an empty map.
        """
        present_set = {RelationshipType(p) for p in present}
        ordered = [r for r in RELATIONSHIP_ORDER if r in present_set]

        total = sum((self.base_weights[r] for r in ordered), Decimal("0"))
        if not ordered or total == 0:
            logger.info("weights_resolved", extra={"present": [], "weights": {}})
            return WeightResult()

        weights = {r: self.base_weights[r] / total for r in ordered}

        logger.info(
            "weights_resolved",
            extra={
                "present": [r.value for r in ordered],
                "weights": {
                    r.value: float(w.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))
                    for r, w in weights.items()
                },
            },
        )
        return WeightResult(weights=weights, present=ordered)
