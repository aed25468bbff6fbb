from pydantic import BaseModel, Field
from uuid import uuid4
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from cocoa_contest.models.common import utc_now
from cocoa_contest.models.enumerations import JudgeKind, ProductCategory


class EvaluationSubmit(BaseModel):
    """
    Payload a judge or evaluator submits for one sample.

    ``attributes`` is the raw sensory tree: leaves as numbers (or
    ``{"value": n}``), groups as child maps (or ``{"children": {...}}``).
    ``chocolate`` carries the chocolate-specific tree for chocolate samples.
    """

    attributes: Dict[str, Any] = Field(default_factory=dict)
    overall_quality: float = Field(..., ge=0, le=10)
    chocolate: Optional[Dict[str, Any]] = None
    positive_qualities: List[str] = Field(default_factory=list)
    flavor_comments: Optional[str] = None
    producer_recommendations: Optional[str] = None


class RadarPoint(BaseModel):
    label: str
    value: float


class EvaluationRecord(BaseModel):
    """
    Immutable stored evaluation. Totals come from the aggregator and are
    never hand-edited.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    sample_id: str
    contest_id: str
    author_id: str
    author_kind: JudgeKind
    category: ProductCategory
    attributes: Dict[str, Any]
    radar: List[RadarPoint]
    overall_quality: float = Field(..., ge=0, le=10)
    chocolate_scores: Optional[Dict[str, float]] = None
    missing_attributes: List[str] = Field(default_factory=list)
    positive_qualities: List[str] = Field(default_factory=list)
    flavor_comments: Optional[str] = None
    producer_recommendations: Optional[str] = None
    submitted_at: datetime = Field(default_factory=utc_now)
    version: int = Field(default=0, ge=0)


class EvaluationSession(BaseModel):
    """Created when an evaluator is admitted to a final-stage evaluation."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    evaluator_id: str
    sample_id: str
    contest_id: str
    started_at: datetime = Field(default_factory=utc_now)
    completed: bool = False
    version: int = Field(default=0, ge=0)


class PaymentConfirmation(BaseModel):
    """Externally verified payment fact for (evaluator, sample)."""

    amount: Decimal = Field(..., ge=0)
    idempotency_key: str = Field(..., min_length=1, max_length=128)


class PaymentRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    evaluator_id: str
    sample_id: str
    contest_id: str
    amount: Decimal
    idempotency_key: str
    confirmed_at: datetime = Field(default_factory=utc_now)
    version: int = Field(default=0, ge=0)
