from pydantic import BaseModel, Field, model_validator
from uuid import uuid4
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from cocoa_contest.models.common import utc_now
from cocoa_contest.models.enumerations import ContestStage, ContestStatus


class ContestBase(BaseModel):
    """
    Base Pydantic model for a contest.
    """

    name: str = Field(..., min_length=1, max_length=255)
    registration_deadline: Optional[date] = None
    submission_deadline: Optional[date] = None
    start_date: date
    end_date: date
    entry_fee: Decimal = Field(default=Decimal("0"), ge=0)
    evaluation_fee: Decimal = Field(default=Decimal("0"), ge=0, description="Per-sample final evaluation fee")

    @model_validator(mode="after")
    def validate_dates(self):
        """End may not precede start; deadlines may not fall after the end."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        for name in ("registration_deadline", "submission_deadline"):
            deadline = getattr(self, name)
            if deadline is not None and deadline > self.end_date:
                raise ValueError(f"{name} must be <= end_date")
        return self


class ContestCreate(ContestBase):
    pass


class Contest(ContestBase):
    """
    Stored contest. Status is derived from dates on every read and never
    stored; final_evaluation is an orthogonal flag.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    director_id: Optional[str] = None
    final_evaluation: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    version: int = Field(default=0, ge=0)


class ContestView(Contest):
    """Contest with its derived status and stage, as returned by the API."""

    status: ContestStatus
    stage: ContestStage
