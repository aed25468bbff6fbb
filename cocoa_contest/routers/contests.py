"""
Contest Router - Cocoa Contest Evaluation Engine
cocoa_contest/routers/contests.py

Contests, their derived status/stage, and results: rankings, statistics and
final ranking publication.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from cocoa_contest.config import settings
from cocoa_contest.core.dependencies import (
    get_actor,
    get_contest_repository,
    get_effect_dispatcher,
    get_results_compiler,
    get_stage_controller,
)
from cocoa_contest.models.common import Actor
from cocoa_contest.models.contest import ContestCreate, ContestView
from cocoa_contest.models.enumerations import RankingSource
from cocoa_contest.models.ranking import RankingResponse, ResultsStats
from cocoa_contest.repositories.contest_repository import ContestRepository
from cocoa_contest.routers.errors import COMMON_RESPONSES, RESPONSES_404
from cocoa_contest.services.contest_stage import ContestStageController
from cocoa_contest.services.notifications import EffectDispatcher
from cocoa_contest.services.results import ResultsCompiler

router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["Contests"])


@router.post(
    "/contests",
    response_model=ContestView,
    status_code=status.HTTP_201_CREATED,
    responses=COMMON_RESPONSES,
    summary="Create a contest",
)
async def create_contest(
    payload: ContestCreate,
    actor: Actor = Depends(get_actor),
    controller: ContestStageController = Depends(get_stage_controller),
) -> ContestView:
    return controller.view(controller.create_contest(actor, payload))


@router.get("/contests", response_model=List[ContestView], summary="List contests")
async def list_contests(
    repo: ContestRepository = Depends(get_contest_repository),
    controller: ContestStageController = Depends(get_stage_controller),
) -> List[ContestView]:
    return [controller.view(c) for c in repo.list_ordered()]


@router.get(
    "/contests/{contest_id}",
    response_model=ContestView,
    responses=RESPONSES_404,
    summary="Get a contest",
    description="Status and stage are derived from today's date on every read.",
)
async def get_contest(
    contest_id: str,
    repo: ContestRepository = Depends(get_contest_repository),
    controller: ContestStageController = Depends(get_stage_controller),
) -> ContestView:
    return controller.view(repo.require(contest_id))


@router.post(
    "/contests/{contest_id}/final-stage",
    response_model=ContestView,
    responses=COMMON_RESPONSES,
    summary="Open the final evaluation stage",
)
async def start_final_stage(
    contest_id: str,
    actor: Actor = Depends(get_actor),
    controller: ContestStageController = Depends(get_stage_controller),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> ContestView:
    contest, effects = controller.start_final_evaluation(actor, contest_id)
    dispatcher.dispatch(effects)
    return controller.view(contest)


#  Results


@router.get(
    "/contests/{contest_id}/rankings",
    response_model=RankingResponse,
    responses=RESPONSES_404,
    summary="Contest ranking",
)
async def contest_rankings(
    contest_id: str,
    source: RankingSource = Query(default=RankingSource.SENSORY),
    results: ResultsCompiler = Depends(get_results_compiler),
) -> RankingResponse:
    return results.compute_rankings(contest_id, source)


@router.get(
    "/contests/{contest_id}/stats",
    response_model=ResultsStats,
    responses=RESPONSES_404,
    summary="Contest statistics",
)
async def contest_stats(
    contest_id: str,
    repo: ContestRepository = Depends(get_contest_repository),
    results: ResultsCompiler = Depends(get_results_compiler),
) -> ResultsStats:
    repo.require(contest_id)
    return results.contest_stats(contest_id)


@router.post(
    "/contests/{contest_id}/final-ranking",
    response_model=RankingResponse,
    responses=COMMON_RESPONSES,
    summary="Publish the final ranking",
    description="Notifies the owners of the top three samples.",
)
async def publish_final_ranking(
    contest_id: str,
    actor: Actor = Depends(get_actor),
    results: ResultsCompiler = Depends(get_results_compiler),
    dispatcher: EffectDispatcher = Depends(get_effect_dispatcher),
) -> RankingResponse:
    ranking, effects = results.publish_final_ranking(actor, contest_id)
    dispatcher.dispatch(effects)
    return ranking


@router.get(
    "/participants/{participant_id}/stats",
    response_model=ResultsStats,
    summary="Participant statistics",
)
async def participant_stats(
    participant_id: str,
    results: ResultsCompiler = Depends(get_results_compiler),
) -> ResultsStats:
    return results.participant_stats(participant_id)
