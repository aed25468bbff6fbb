# cocoa_contest/scoring/physical_criteria.py
"""
Physical Criteria - Cocoa Contest Evaluation Engine
----------------------------------------------------
Pre-sensory inspection rules for bean samples.

Disqualifying:
    undesirable aromas present
    humidity outside [3.5, 8.0] %
    broken grains > 10 %
    violated grains
    affected grains / insects >= 1
    well fermented + lightly fermented < 60 %   (only when both measured)
    purple beans > 15 %
    slaty, internal moldy or over-fermented beans > 0 %
Warning only:
    flat grains > 15 %
"""
import structlog
from dataclasses import dataclass, field
from typing import List, Optional

from cocoa_contest.models.enumerations import PhysicalVerdict
from cocoa_contest.models.physical import PhysicalEvaluationData, PhysicalEvaluationResult

logger = structlog.get_logger(__name__)

HUMIDITY_MIN = 3.5
HUMIDITY_MAX = 8.0
BROKEN_GRAINS_MAX = 10.0
FLAT_GRAINS_WARNING = 15.0
FERMENTED_MIN = 60.0
PURPLE_BEANS_MAX = 15.0


def _fmt(value: float) -> str:
    """5.0 -> '5', 5.25 -> '5.25'."""
    return f"{value:g}"


@dataclass
class CriteriaOutcome:
    verdict: PhysicalVerdict
    disqualification_reasons: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class PhysicalCriteriaEvaluator:
    """Apply the physical inspection thresholds to one inspection."""

    def evaluate(self, data: PhysicalEvaluationData) -> CriteriaOutcome:
        reasons: List[str] = []
        warnings: List[str] = []

        if data.has_undesirable_aromas and data.undesirable_aromas:
            reasons.append(f"Undesirable aromas detected: {', '.join(data.undesirable_aromas)}")

        humidity = data.percentage_humidity
        if humidity is not None and (humidity < HUMIDITY_MIN or humidity > HUMIDITY_MAX):
            reasons.append(
                f"Humidity ({_fmt(humidity)}%) outside acceptable range "
                f"({_fmt(HUMIDITY_MIN)}%-{HUMIDITY_MAX:.1f}%)"
            )

        if data.broken_grains is not None and data.broken_grains > BROKEN_GRAINS_MAX:
            reasons.append(f"Broken grains ({_fmt(data.broken_grains)}%) exceeds maximum (10%)")

        if data.violated_grains:
            reasons.append("Violated grains detected")

        if data.flat_grains is not None and data.flat_grains > FLAT_GRAINS_WARNING:
            warnings.append(f"Flat grains ({_fmt(data.flat_grains)}%) exceeds warning threshold (15%)")

        if data.affected_grains_insects is not None and data.affected_grains_insects >= 1:
            reasons.append(f"Affected grains/insects ({data.affected_grains_insects}) detected")

        if data.well_fermented_beans is not None and data.lightly_fermented_beans is not None:
            total_fermented = data.well_fermented_beans + data.lightly_fermented_beans
            if total_fermented < FERMENTED_MIN:
                reasons.append(
                    f"Well-fermented + Lightly fermented ({_fmt(total_fermented)}%) below minimum (60%)"
                )

        if data.purple_beans is not None and data.purple_beans > PURPLE_BEANS_MAX:
            reasons.append(f"Purple beans ({_fmt(data.purple_beans)}%) exceeds maximum (15%)")

        zero_tolerance = (
            ("Slaty beans", data.slaty_beans),
            ("Internal moldy beans", data.internal_moldy_beans),
            ("Over-fermented beans", data.over_fermented_beans),
        )
        for label, value in zero_tolerance:
            if value is not None and value > 0:
                reasons.append(f"{label} ({_fmt(value)}%) exceeds maximum (0%)")

        verdict = PhysicalVerdict.DISQUALIFIED if reasons else PhysicalVerdict.PASSED
        return CriteriaOutcome(verdict=verdict, disqualification_reasons=reasons, warnings=warnings)

    def build_result(
        self,
        data: PhysicalEvaluationData,
        evaluated_by: str,
        sample_id: Optional[str] = None,
    ) -> PhysicalEvaluationResult:
        """Evaluate and wrap the outcome in the stored result model."""
        outcome = self.evaluate(data)
        logger.info(
            "physical_evaluation_scored",
            sample_id=sample_id,
            verdict=outcome.verdict.value,
            reasons=len(outcome.disqualification_reasons),
            warnings=len(outcome.warnings),
        )
        return PhysicalEvaluationResult(
            verdict=outcome.verdict,
            disqualification_reasons=outcome.disqualification_reasons,
            warnings=outcome.warnings,
            data=data,
            evaluated_by=evaluated_by,
        )
