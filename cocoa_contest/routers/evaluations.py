"""
Evaluation Router - Cocoa Contest Evaluation Engine
cocoa_contest/routers/evaluations.py

Judge sensory evaluations and the evaluator pay-to-evaluate final stage.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from cocoa_contest.config import settings
from cocoa_contest.core.dependencies import (
    get_actor,
    get_effect_dispatcher,
    get_evaluation_repository,
    get_final_evaluation_service,
    get_lifecycle,
    get_sample_repository,
)
from cocoa_contest.models.common import Actor
from cocoa_contest.models.enumerations import JudgeKind
from cocoa_contest.models.evaluation import (
    EvaluationRecord,
    EvaluationSession,
    EvaluationSubmit,
    PaymentConfirmation,
    PaymentRecord,
)
from cocoa_contest.models.sample import Sample
from cocoa_contest.repositories.evaluation_repository import EvaluationRepository
from cocoa_contest.repositories.sample_repository import SampleRepository
from cocoa_contest.routers.errors import COMMON_RESPONSES, RESPONSES_404
from cocoa_contest.services.final_evaluation import FinalEvaluationService
from cocoa_contest.services.lifecycle import SampleLifecycle
from cocoa_contest.services.notifications import EffectDispatcher

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/samples", tags=["Evaluations"])


#  Sensory (judges)


@router.post(
    "/{sample_id}/evaluation/start",
    response_model=Sample,
    responses=COMMON_RESPONSES,
    summary="Open a sample for evaluation",
    description="Idempotent: opening an already evaluating sample changes nothing.",
)
async def start_evaluation(
    sample_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
) -> Sample:
    return lifecycle.start_evaluation(actor, sample_id).sample


@router.post(
    "/{sample_id}/evaluations",
    response_model=EvaluationRecord,
    status_code=status.HTTP_201_CREATED,
    responses=COMMON_RESPONSES,
    summary="Submit a sensory evaluation",
)
async def submit_evaluation(
    sample_id: str,
    payload: EvaluationSubmit,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> EvaluationRecord:
    result = lifecycle.submit_evaluation(actor, sample_id, payload)
    dispatcher.dispatch(result.effects)
    return result.evaluation


@router.get(
    "/{sample_id}/evaluations",
    response_model=List[EvaluationRecord],
    responses=RESPONSES_404,
    summary="List evaluations of a sample",
)
async def list_evaluations(
    sample_id: str,
    kind: Optional[JudgeKind] = Query(default=None),
    samples: SampleRepository = Depends(get_sample_repository),
    evaluations: EvaluationRepository = Depends(get_evaluation_repository),
) -> List[EvaluationRecord]:
    samples.require(sample_id)
    return evaluations.list_for_sample(sample_id, kind)


#  Final stage (evaluators)


@router.post(
    "/{sample_id}/final/payment",
    response_model=PaymentRecord,
    responses=COMMON_RESPONSES,
    summary="Record a confirmed evaluation payment",
    description="Idempotent by idempotency_key; amount must equal the contest evaluation fee.",
)
async def confirm_payment(
    sample_id: str,
    payload: PaymentConfirmation,
    actor: Actor = Depends(get_actor),
    service: FinalEvaluationService = Depends(get_final_evaluation_service),
) -> PaymentRecord:
    return service.confirm_payment(actor, sample_id, payload)


@router.post(
    "/{sample_id}/final/start",
    response_model=EvaluationSession,
    responses=COMMON_RESPONSES,
    summary="Start a final evaluation",
)
async def start_final_evaluation(
    sample_id: str,
    actor: Actor = Depends(get_actor),
    service: FinalEvaluationService = Depends(get_final_evaluation_service),
) -> EvaluationSession:
    return service.start(actor, sample_id)


@router.post(
    "/{sample_id}/final/evaluations",
    response_model=EvaluationRecord,
    status_code=status.HTTP_201_CREATED,
    responses=COMMON_RESPONSES,
    summary="Submit a final evaluation",
)
async def submit_final_evaluation(
    sample_id: str,
    payload: EvaluationSubmit,
    actor: Actor = Depends(get_actor),
    service: FinalEvaluationService = Depends(get_final_evaluation_service),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> EvaluationRecord:
    result = service.submit(actor, sample_id, payload)
    dispatcher.dispatch(result.effects)
    return result.evaluation
