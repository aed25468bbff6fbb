# cocoa_contest/scoring/outlier_filter.py
"""
Outlier Filter - Cocoa Contest Evaluation Engine
-------------------------------------------------
Sigma-based damping of outlying judge scores before averaging.

    sigma      = sample standard deviation of the scores
    outlier    = |score - mean| > sigma_threshold * sigma
    weight     = 0 (exclude) or weight_reduction_factor (reduce_weight)
    filtered   = sum(score * weight) / sum(weight)

Below min_evaluations scores, the plain mean is returned unchanged.
"""
import structlog
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Literal, Optional, Sequence, Tuple

from cocoa_contest.scoring.utils import ZERO, mean, sample_std_dev, to_decimal, weighted_mean

logger = structlog.get_logger(__name__)

_ONE = Decimal("1")


@dataclass(frozen=True)
class OutlierConfig:
    sigma_threshold: float = 2.0
    min_evaluations: int = 3
    strategy: Literal["exclude", "reduce_weight"] = "reduce_weight"
    weight_reduction_factor: float = 0.5

    def __post_init__(self):
        if self.sigma_threshold <= 0:
            raise ValueError("sigma_threshold must be > 0")
        if self.min_evaluations < 1:
            raise ValueError("min_evaluations must be >= 1")
        if self.strategy not in ("exclude", "reduce_weight"):
            raise ValueError(f"unknown outlier strategy: {self.strategy}")
        if not 0 <= self.weight_reduction_factor <= 1:
            raise ValueError("weight_reduction_factor must be within [0, 1]")


@dataclass
class ScoreWeight:
    score_id: Optional[str]
    score: Decimal
    deviation: Decimal
    is_outlier: bool
    weight: Decimal


@dataclass
class FilteredAverage:
    """Output of OutlierFilter.filter()."""
    filtered_average: Decimal
    original_average: Decimal
    std_dev: Decimal
    outlier_count: int
    details: List[ScoreWeight] = field(default_factory=list)


class OutlierFilter:
    """Weight judge scores by their distance from the mean."""

    def __init__(self, config: Optional[OutlierConfig] = None):
        self.config = config or OutlierConfig()

    def filter(self, scores: Sequence[Tuple[Optional[str], float]]) -> FilteredAverage:
        """
        Args:
            scores: (score id, score) pairs; ids only label the details.

        Returns:
            FilteredAverage; an empty input yields all zeros.
        """
        values = [to_decimal(s) for _, s in scores]
        center = mean(values)
        sigma = sample_std_dev(values, center)

        if len(values) < self.config.min_evaluations:
            return FilteredAverage(
                filtered_average=center,
                original_average=center,
                std_dev=sigma,
                outlier_count=0,
                details=[
                    ScoreWeight(sid, v, v - center, False, _ONE)
                    for (sid, _), v in zip(scores, values)
                ],
            )

        threshold = to_decimal(self.config.sigma_threshold) * sigma
        reduced = ZERO if self.config.strategy == "exclude" else to_decimal(self.config.weight_reduction_factor)

        details: List[ScoreWeight] = []
        for (sid, _), v in zip(scores, values):
            is_outlier = abs(v - center) > threshold
            details.append(ScoreWeight(sid, v, v - center, is_outlier, reduced if is_outlier else _ONE))

        weights = [d.weight for d in details]
        filtered = weighted_mean(values, weights) if sum(weights, ZERO) > 0 else center
        outliers = sum(1 for d in details if d.is_outlier)

        if outliers:
            logger.info(
                "outlier_scores_damped",
                outliers=outliers,
                total=len(values),
                strategy=self.config.strategy,
                original_average=float(center),
                filtered_average=float(filtered),
            )

        return FilteredAverage(
            filtered_average=filtered,
            original_average=center,
            std_dev=sigma,
            outlier_count=outliers,
            details=details,
        )
