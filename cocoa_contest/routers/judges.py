"""
Judge Router - Cocoa Contest Evaluation Engine
cocoa_contest/routers/judges.py

Judge/evaluator registration, capacity view and judge assignment.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from cocoa_contest.config import settings
from cocoa_contest.core.dependencies import (
    get_actor,
    get_assignment_manager,
    get_effect_dispatcher,
    get_judge_repository,
)
from cocoa_contest.models.common import Actor
from cocoa_contest.models.enumerations import JudgeKind
from cocoa_contest.models.judge import AssignmentRequest, BulkAssignmentRequest, Judge, JudgeCreate
from cocoa_contest.models.sample import Sample
from cocoa_contest.repositories.judge_repository import JudgeRepository
from cocoa_contest.routers.errors import COMMON_RESPONSES, RESPONSES_404
from cocoa_contest.services.assignment import AssignmentManager
from cocoa_contest.services.notifications import EffectDispatcher

router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["Judges"])


@router.post(
    "/judges",
    response_model=Judge,
    status_code=status.HTTP_201_CREATED,
    responses=COMMON_RESPONSES,
    summary="Register a judge or evaluator",
)
async def register_judge(
    payload: JudgeCreate,
    actor: Actor = Depends(get_actor),
    manager: AssignmentManager = Depends(get_assignment_manager),
) -> Judge:
    return manager.register(actor, payload)


@router.get(
    "/judges",
    response_model=List[Judge],
    summary="Capacity view",
    description="Availability is recomputed from the assignment counters on every read.",
)
async def list_judges(
    kind: JudgeKind = Query(default=JudgeKind.JUDGE),
    available_only: bool = Query(default=False),
    manager: AssignmentManager = Depends(get_assignment_manager),
) -> List[Judge]:
    return manager.availability(kind, available_only)


@router.get("/judges/{judge_id}", response_model=Judge, responses=RESPONSES_404, summary="Get a judge")
async def get_judge(
    judge_id: str,
    repo: JudgeRepository = Depends(get_judge_repository),
) -> Judge:
    return repo.require(judge_id)


@router.post(
    "/assignments",
    response_model=Sample,
    responses=COMMON_RESPONSES,
    summary="Assign judges to one sample",
    description="Replaces the sample's judge set. Fails with CAPACITY_EXCEEDED if any new judge is full.",
)
async def assign_judges(
    payload: AssignmentRequest,
    actor: Actor = Depends(get_actor),
    manager: AssignmentManager = Depends(get_assignment_manager),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> Sample:
    result = manager.assign(actor, payload.sample_id, payload.judge_ids)
    dispatcher.dispatch(result.effects)
    return result.sample


@router.post(
    "/assignments/bulk",
    response_model=List[Sample],
    responses=COMMON_RESPONSES,
    summary="Assign judges to many samples",
    description="All or nothing: if any judge would exceed capacity no sample or counter changes.",
)
async def assign_judges_bulk(
    payload: BulkAssignmentRequest,
    actor: Actor = Depends(get_actor),
    manager: AssignmentManager = Depends(get_assignment_manager),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> List[Sample]:
    results = manager.assign_bulk(actor, payload.sample_ids, payload.judge_ids)
    for result in results:
        dispatcher.dispatch(result.effects)
    return [r.sample for r in results]
