from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from cocoa_contest.models.enumerations import AwardLabel, RankingSource


class RankingEntry(BaseModel):
    """
    One row of a computed ranking. Derived from evaluated samples; never
    persisted as ground truth.
    """

    sample_id: str
    contest_id: str
    internal_code: str
    participant_id: str
    overall_score: float = Field(..., ge=0, le=10)
    rank: int = Field(..., ge=1)
    awards: List[AwardLabel] = Field(default_factory=list)
    evaluations_count: int = Field(..., ge=1)
    evaluated_at: datetime


class RankingResponse(BaseModel):
    contest_id: str
    source: RankingSource
    entries: List[RankingEntry]
    computed_at: datetime


class ResultsStats(BaseModel):
    """Aggregate statistics for a contest or a participant."""

    scope: str = Field(..., description="'contest' or 'participant'")
    scope_id: str
    total_samples: int = Field(..., ge=0)
    evaluated_samples: int = Field(..., ge=0)
    average_score: float
    best_score: float
    total_awards: int = Field(..., ge=0)


class SampleReport(BaseModel):
    """Payload shape guaranteed to the report/export collaborator."""

    sample_id: str
    internal_code: str
    tracking_code: Optional[str]
    contest_id: str
    contest_name: str
    category: str
    participant_id: str
    ranking: Optional[RankingEntry]
    physical_evaluation: Optional[dict]
    evaluations: List[dict]
