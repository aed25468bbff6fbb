from pydantic import BaseModel, Field
from uuid import uuid4
from datetime import datetime
from typing import Dict, List, Optional

from cocoa_contest.models.common import utc_now
from cocoa_contest.models.enumerations import ProductCategory, SampleStatus
from cocoa_contest.models.physical import PhysicalEvaluationResult


def generate_internal_code(created_at: datetime, sample_id: str) -> str:
    """Director-facing code: INT-<yy>-<first four id chars>."""
    return f"INT-{created_at:%y}-{sample_id[:4].upper()}"


def generate_tracking_code(created_at: datetime) -> str:
    """Participant-facing tracking code assigned at submission."""
    return f"CC-{created_at:%Y}-{uuid4().hex[:8].upper()}"


class SampleBase(BaseModel):
    """
    Base Pydantic model for a contest sample.
    """

    contest_id: str = Field(
        ...,
        min_length=1,
        description="Contest the sample is entered in"
    )

    category: ProductCategory = Field(
        ...,
        description="Product category (bean, liquor, chocolate)"
    )

    farm_name: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Producing farm; required before submission"
    )

    origin_country: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Country of origin; required before submission"
    )

    agreed_to_terms: bool = Field(
        default=False,
        description="Participant accepted contest terms; required before submission"
    )


class SampleCreate(SampleBase):
    """
    Model for creating a new draft sample.
    """
    pass


class SampleUpdate(BaseModel):
    """
    Model for editing a draft (all fields optional).
    """
    farm_name: Optional[str] = Field(default=None, max_length=255)
    origin_country: Optional[str] = Field(default=None, max_length=100)
    agreed_to_terms: Optional[bool] = None


class Sample(SampleBase):
    """
    Stored sample record. Exactly one status holds at a time.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    participant_id: str = Field(..., description="Owning participant")
    internal_code: str = Field(default="", description="Director-facing code")
    tracking_code: Optional[str] = Field(default=None, description="Assigned at submission")

    status: SampleStatus = Field(default=SampleStatus.DRAFT)

    assigned_judges: List[str] = Field(default_factory=list)
    physical_evaluation: Optional[PhysicalEvaluationResult] = None
    sensory_evaluations: Dict[str, str] = Field(
        default_factory=dict,
        description="judge id -> evaluation id"
    )
    final_evaluations: Dict[str, str] = Field(
        default_factory=dict,
        description="evaluator id -> evaluation id"
    )
    disqualification_reasons: List[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    evaluated_at: Optional[datetime] = None

    version: int = Field(default=0, ge=0)

    def model_post_init(self, __context) -> None:
        if not self.internal_code:
            self.internal_code = generate_internal_code(self.created_at, self.id)

    @property
    def pending_judges(self) -> List[str]:
        """Assigned judges that have not submitted yet."""
        return [j for j in self.assigned_judges if j not in self.sensory_evaluations]


class DisqualifyRequest(BaseModel):
    reasons: List[str] = Field(..., min_length=1, description="Non-empty reason list")
