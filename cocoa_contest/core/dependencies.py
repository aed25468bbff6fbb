"""
Dependencies - Cocoa Contest Evaluation Engine
cocoa_contest/core/dependencies.py

FastAPI dependency injection for the store, repositories and services.
"""

from functools import lru_cache

from fastapi import Header

from cocoa_contest.config import get_settings
from cocoa_contest.models.common import Actor
from cocoa_contest.models.enumerations import Role
from cocoa_contest.repositories.base import VersionedStore
from cocoa_contest.repositories.contest_repository import ContestRepository
from cocoa_contest.repositories.evaluation_repository import (
    EvaluationRepository,
    EvaluationSessionRepository,
    PaymentRepository,
)
from cocoa_contest.repositories.judge_repository import JudgeRepository
from cocoa_contest.repositories.notification_repository import NotificationRepository
from cocoa_contest.repositories.sample_repository import SampleRepository
from cocoa_contest.services.assignment import AssignmentManager
from cocoa_contest.services.contest_stage import ContestStageController
from cocoa_contest.services.final_evaluation import FinalEvaluationService
from cocoa_contest.services.lifecycle import SampleLifecycle
from cocoa_contest.services.notifications import EffectDispatcher, RepositoryNotificationSink
from cocoa_contest.services.results import ResultsCompiler


def get_actor(
    x_user_id: str = Header(..., min_length=1, description="Acting user id"),
    x_user_role: Role = Header(..., description="Acting user role"),
) -> Actor:
    """Caller identity as forwarded by the identity provider."""
    return Actor(user_id=x_user_id, role=x_user_role)


@lru_cache()
def get_store() -> VersionedStore:
    """Get the process-wide versioned store."""
    return VersionedStore()


@lru_cache()
def get_sample_repository() -> SampleRepository:
    """Get cached SampleRepository instance."""
    return SampleRepository(get_store())


@lru_cache()
def get_judge_repository() -> JudgeRepository:
    """Get cached JudgeRepository instance."""
    return JudgeRepository(get_store())


@lru_cache()
def get_contest_repository() -> ContestRepository:
    """Get cached ContestRepository instance."""
    return ContestRepository(get_store())


@lru_cache()
def get_evaluation_repository() -> EvaluationRepository:
    """Get cached EvaluationRepository instance."""
    return EvaluationRepository(get_store())


@lru_cache()
def get_session_repository() -> EvaluationSessionRepository:
    """Get cached EvaluationSessionRepository instance."""
    return EvaluationSessionRepository(get_store())


@lru_cache()
def get_payment_repository() -> PaymentRepository:
    """Get cached PaymentRepository instance."""
    return PaymentRepository(get_store())


@lru_cache()
def get_notification_repository() -> NotificationRepository:
    """Get cached NotificationRepository instance."""
    return NotificationRepository(get_store())


@lru_cache()
def get_results_compiler() -> ResultsCompiler:
    return ResultsCompiler(
        get_sample_repository(),
        get_evaluation_repository(),
        get_contest_repository(),
        get_settings(),
    )


@lru_cache()
def get_stage_controller() -> ContestStageController:
    return ContestStageController(
        get_contest_repository(),
        get_evaluation_repository(),
        get_judge_repository(),
        get_results_compiler(),
        get_settings(),
    )


@lru_cache()
def get_lifecycle() -> SampleLifecycle:
    return SampleLifecycle(
        get_sample_repository(),
        get_judge_repository(),
        get_contest_repository(),
        get_evaluation_repository(),
    )


@lru_cache()
def get_assignment_manager() -> AssignmentManager:
    return AssignmentManager(get_sample_repository(), get_judge_repository(), get_settings())


@lru_cache()
def get_final_evaluation_service() -> FinalEvaluationService:
    return FinalEvaluationService(
        get_sample_repository(),
        get_judge_repository(),
        get_contest_repository(),
        get_evaluation_repository(),
        get_session_repository(),
        get_payment_repository(),
        get_stage_controller(),
        get_lifecycle(),
    )


@lru_cache()
def get_effect_dispatcher() -> EffectDispatcher:
    return EffectDispatcher(
        RepositoryNotificationSink(get_notification_repository()),
        invalidate_rankings=get_results_compiler().invalidate,
    )


_PROVIDERS = (
    get_store,
    get_sample_repository,
    get_judge_repository,
    get_contest_repository,
    get_evaluation_repository,
    get_session_repository,
    get_payment_repository,
    get_notification_repository,
    get_results_compiler,
    get_stage_controller,
    get_lifecycle,
    get_assignment_manager,
    get_final_evaluation_service,
    get_effect_dispatcher,
)


def reset_dependencies() -> None:
    """Drop every cached instance, starting over with an empty store."""
    for provider in _PROVIDERS:
        provider.cache_clear()
