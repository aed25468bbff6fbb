# cocoa_contest/scoring/chocolate_calculator.py
"""
Chocolate Calculator - Cocoa Contest Evaluation Engine
-------------------------------------------------------
Weighted category score for chocolate sensory evaluations.

Each category score is the mean of its scored attributes:
    appearance  color, gloss, surface_homogeneity
    aroma       aroma_intensity, aroma_quality
    texture     smoothness, melting, body
    flavor      sweetness, bitterness, acidity, flavor_intensity
    aftertaste  persistence, aftertaste_quality, final_balance

Weighted score (sum of weights = 1.0):
    0.40 flavor + 0.25 aroma + 0.20 texture + 0.10 aftertaste + 0.05 appearance

Descriptive notes (aroma.specific_notes, flavor.flavor_notes) are carried
through but never scored.
"""
import structlog
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Tuple

from cocoa_contest.core.exceptions import MissingAttribute
from cocoa_contest.scoring.sensory_aggregator import _intensity
from cocoa_contest.scoring.utils import TWO_PLACES, ZERO, TEN, clamp, mean, round_to

logger = structlog.get_logger(__name__)

CATEGORY_WEIGHTS: Dict[str, Decimal] = {
    "flavor":     Decimal("0.40"),
    "aroma":      Decimal("0.25"),
    "texture":    Decimal("0.20"),
    "aftertaste": Decimal("0.10"),
    "appearance": Decimal("0.05"),
}

SCORED_ATTRIBUTES: Dict[str, Tuple[str, ...]] = {
    "appearance": ("color", "gloss", "surface_homogeneity"),
    "aroma":      ("aroma_intensity", "aroma_quality"),
    "texture":    ("smoothness", "melting", "body"),
    "flavor":     ("sweetness", "bitterness", "acidity", "flavor_intensity"),
    "aftertaste": ("persistence", "aftertaste_quality", "final_balance"),
}


@dataclass
class ChocolateScoreResult:
    """Output of ChocolateCalculator.calculate()."""
    category_scores: Dict[str, Decimal]   # each in [0, 10], 2 decimals
    weighted_score: Decimal               # in [0, 10], 2 decimals
    notes: Dict[str, Any] = field(default_factory=dict)
    missing: List[MissingAttribute] = field(default_factory=list)

    def to_dict(self) -> Dict[str, float]:
        scores = {name: float(value) for name, value in self.category_scores.items()}
        scores["weighted_score"] = float(self.weighted_score)
        return scores


class ChocolateCalculator:
    """Calculate the weighted chocolate score from five sensory categories."""

    def calculate(self, chocolate: Mapping[str, Any]) -> ChocolateScoreResult:
        """
        Args:
            chocolate: {category: {attribute: intensity, ...}, ...} with
                       intensities in [0, 10].

        Raises:
            ValueError: an intensity is non-numeric or out of range, or a
                        category is not a mapping.
        """
        category_scores: Dict[str, Decimal] = {}
        notes: Dict[str, Any] = {}
        missing: List[MissingAttribute] = []

        for category, attributes in SCORED_ATTRIBUTES.items():
            raw = chocolate.get(category, {})
            if not isinstance(raw, Mapping):
                raise ValueError(f"{category}: expected a mapping of attributes")
            values: List[Decimal] = []
            for attribute in attributes:
                if attribute in raw:
                    values.append(_intensity(f"{category}.{attribute}", raw[attribute]))
                else:
                    values.append(ZERO)
                    missing.append(MissingAttribute(category, attribute))
            category_scores[category] = mean(values)
            descriptive = {k: v for k, v in raw.items() if k not in attributes}
            if descriptive:
                notes[category] = descriptive

        weighted = sum(
            (category_scores[name] * weight for name, weight in CATEGORY_WEIGHTS.items()),
            ZERO,
        )

        if missing:
            logger.warning(
                "chocolate_attributes_missing",
                attributes=[f"{m.group}.{m.attribute}" for m in missing],
            )

        return ChocolateScoreResult(
            category_scores={k: round_to(v, TWO_PLACES) for k, v in category_scores.items()},
            weighted_score=round_to(clamp(weighted, ZERO, TEN), TWO_PLACES),
            notes=notes,
            missing=missing,
        )
