"""
Sample Router - Cocoa Contest Evaluation Engine
cocoa_contest/routers/samples.py

Sample intake lifecycle: drafts, submission, reception, physical
evaluation, approval, disqualification and withdrawal.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from cocoa_contest.config import settings
from cocoa_contest.core.dependencies import (
    get_actor,
    get_effect_dispatcher,
    get_lifecycle,
    get_results_compiler,
    get_sample_repository,
)
from cocoa_contest.models.common import Actor
from cocoa_contest.models.enumerations import SampleStatus
from cocoa_contest.models.physical import PhysicalEvaluationData
from cocoa_contest.models.ranking import SampleReport
from cocoa_contest.models.sample import DisqualifyRequest, Sample, SampleCreate, SampleUpdate
from cocoa_contest.repositories.sample_repository import SampleRepository
from cocoa_contest.routers.errors import COMMON_RESPONSES, RESPONSES_404
from cocoa_contest.services.lifecycle import SampleLifecycle, TransitionResult
from cocoa_contest.services.notifications import EffectDispatcher
from cocoa_contest.services.results import ResultsCompiler

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/samples", tags=["Samples"])


def _finish(result: TransitionResult, dispatcher: EffectDispatcher) -> Sample:
    dispatcher.dispatch(result.effects)
    return result.sample


#  Routes


@router.post(
    "",
    response_model=Sample,
    status_code=status.HTTP_201_CREATED,
    responses=COMMON_RESPONSES,
    summary="Create a draft sample",
)
async def create_sample(
    payload: SampleCreate,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
) -> Sample:
    return lifecycle.create_draft(actor, payload)


@router.get(
    "",
    response_model=List[Sample],
    summary="List samples",
    description="Filter by contest, participant and/or status.",
)
async def list_samples(
    contest_id: Optional[str] = Query(default=None),
    participant_id: Optional[str] = Query(default=None),
    sample_status: Optional[SampleStatus] = Query(default=None, alias="status"),
    repo: SampleRepository = Depends(get_sample_repository),
) -> List[Sample]:
    samples = repo.filter(
        lambda s: (contest_id is None or s.contest_id == contest_id)
        and (participant_id is None or s.participant_id == participant_id)
        and (sample_status is None or s.status == sample_status)
    )
    return sorted(samples, key=lambda s: (s.created_at, s.id))


@router.get("/{sample_id}", response_model=Sample, responses=RESPONSES_404, summary="Get a sample")
async def get_sample(
    sample_id: str,
    repo: SampleRepository = Depends(get_sample_repository),
) -> Sample:
    return repo.require(sample_id)


@router.patch("/{sample_id}", response_model=Sample, responses=COMMON_RESPONSES, summary="Edit a draft")
async def update_sample(
    sample_id: str,
    payload: SampleUpdate,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
) -> Sample:
    return lifecycle.update_draft(actor, sample_id, payload)


@router.delete(
    "/{sample_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=COMMON_RESPONSES,
    summary="Withdraw a sample",
    description="Allowed while the sample is a draft or submitted but not yet received.",
)
async def withdraw_sample(
    sample_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> None:
    _finish(lifecycle.withdraw(actor, sample_id), dispatcher)


@router.post("/{sample_id}/submit", response_model=Sample, responses=COMMON_RESPONSES, summary="Submit a draft")
async def submit_sample(
    sample_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> Sample:
    return _finish(lifecycle.submit(actor, sample_id), dispatcher)


@router.post("/{sample_id}/receive", response_model=Sample, responses=COMMON_RESPONSES, summary="Mark received")
async def receive_sample(
    sample_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> Sample:
    return _finish(lifecycle.receive(actor, sample_id), dispatcher)


@router.post(
    "/{sample_id}/physical-evaluation",
    response_model=Sample,
    responses=COMMON_RESPONSES,
    summary="Record physical evaluation",
    description="A failing inspection disqualifies the sample immediately.",
)
async def physical_evaluation(
    sample_id: str,
    payload: PhysicalEvaluationData,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> Sample:
    return _finish(lifecycle.record_physical_evaluation(actor, sample_id, payload), dispatcher)


@router.post("/{sample_id}/approve", response_model=Sample, responses=COMMON_RESPONSES, summary="Approve a sample")
async def approve_sample(
    sample_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> Sample:
    return _finish(lifecycle.approve(actor, sample_id), dispatcher)


@router.post(
    "/{sample_id}/disqualify",
    response_model=Sample,
    responses=COMMON_RESPONSES,
    summary="Disqualify a sample",
    description="Terminal. Releases the slots of judges that have not submitted.",
)
async def disqualify_sample(
    sample_id: str,
    payload: DisqualifyRequest,
    actor: Actor = Depends(get_actor),
    lifecycle: SampleLifecycle = Depends(get_lifecycle),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> Sample:
    return _finish(lifecycle.disqualify(actor, sample_id, payload.reasons), dispatcher)


@router.get("/{sample_id}/report", response_model=SampleReport, responses=RESPONSES_404, summary="Report payload")
async def sample_report(
    sample_id: str,
    results: ResultsCompiler = Depends(get_results_compiler),
) -> SampleReport:
    return results.report_payload(sample_id)
