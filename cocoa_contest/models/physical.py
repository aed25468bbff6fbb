from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from cocoa_contest.models.common import utc_now
from cocoa_contest.models.enumerations import PhysicalVerdict


class PhysicalEvaluationData(BaseModel):
    """
    Raw pre-sensory inspection of a bean sample.

    Percentages are of the inspected lot; counts are absolute.
    """

    undesirable_aromas: List[str] = Field(default_factory=list)
    has_undesirable_aromas: bool = False
    typical_odors: List[str] = Field(default_factory=list)
    atypical_odors: List[str] = Field(default_factory=list)

    percentage_humidity: Optional[float] = Field(default=None, ge=0, le=100)
    broken_grains: Optional[float] = Field(default=None, ge=0, le=100)
    violated_grains: bool = False
    flat_grains: Optional[float] = Field(default=None, ge=0, le=100)
    affected_grains_insects: Optional[int] = Field(default=None, ge=0)
    has_affected_grains: bool = False

    well_fermented_beans: Optional[float] = Field(default=None, ge=0, le=100)
    lightly_fermented_beans: Optional[float] = Field(default=None, ge=0, le=100)
    purple_beans: Optional[float] = Field(default=None, ge=0, le=100)
    slaty_beans: Optional[float] = Field(default=None, ge=0, le=100)
    internal_moldy_beans: Optional[float] = Field(default=None, ge=0, le=100)
    over_fermented_beans: Optional[float] = Field(default=None, ge=0, le=100)

    notes: str = ""


class PhysicalEvaluationResult(BaseModel):
    """Outcome of running the physical criteria over an inspection."""

    verdict: PhysicalVerdict
    disqualification_reasons: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    data: PhysicalEvaluationData
    evaluated_by: str
    evaluated_at: datetime = Field(default_factory=utc_now)

    @property
    def passed(self) -> bool:
        return self.verdict == PhysicalVerdict.PASSED
