from pydantic import BaseModel, Field, computed_field, model_validator
from uuid import uuid4
from typing import List, Optional

from cocoa_contest.models.enumerations import JudgeKind


class JudgeCreate(BaseModel):
    """
    Model for registering a judge or evaluator.
    """

    id: Optional[str] = Field(default=None, description="Identity-provider user id; generated if omitted")
    name: str = Field(..., min_length=1, max_length=255)
    kind: JudgeKind = Field(default=JudgeKind.JUDGE)
    specialization: Optional[str] = Field(default=None, max_length=100)
    max_assignments: Optional[int] = Field(
        default=None,
        ge=1,
        description="Capacity; defaults to the configured per-kind maximum"
    )


class Judge(BaseModel):
    """
    Capacity-tracked judge or evaluator.

    Invariant: 0 <= current_assignments <= max_assignments.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    kind: JudgeKind = JudgeKind.JUDGE
    specialization: Optional[str] = None
    current_assignments: int = Field(default=0, ge=0)
    max_assignments: int = Field(..., ge=1)
    version: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_capacity(self):
        """Ensure current_assignments never exceeds max_assignments."""
        if self.current_assignments > self.max_assignments:
            raise ValueError("current_assignments must be <= max_assignments")
        return self

    @computed_field
    @property
    def available(self) -> bool:
        return self.current_assignments < self.max_assignments

    @property
    def remaining_capacity(self) -> int:
        return self.max_assignments - self.current_assignments


class AssignmentRequest(BaseModel):
    sample_id: str = Field(..., min_length=1)
    judge_ids: List[str] = Field(..., min_length=1)


class BulkAssignmentRequest(BaseModel):
    sample_ids: List[str] = Field(..., min_length=1)
    judge_ids: List[str] = Field(..., min_length=1)
