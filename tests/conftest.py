# tests/conftest.py

"""
Pytest Fixtures - Shared test configurations and data for the engine and API

Services are wired by hand over a fresh VersionedStore per test, with the
ranking cache disabled. API tests go through the real dependency getters,
which are reset around every test.
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4
from fastapi.testclient import TestClient

from cocoa_contest.config import get_settings
from cocoa_contest.core.dependencies import reset_dependencies
from cocoa_contest.main import app
from cocoa_contest.models.common import Actor
from cocoa_contest.models.contest import ContestCreate
from cocoa_contest.models.enumerations import JudgeKind, ProductCategory, Role
from cocoa_contest.models.evaluation import EvaluationSubmit
from cocoa_contest.models.judge import JudgeCreate
from cocoa_contest.models.physical import PhysicalEvaluationData
from cocoa_contest.models.sample import SampleCreate
from cocoa_contest.repositories import (
    ContestRepository,
    EvaluationRepository,
    EvaluationSessionRepository,
    JudgeRepository,
    NotificationRepository,
    PaymentRepository,
    SampleRepository,
    VersionedStore,
)
from cocoa_contest.services.assignment import AssignmentManager
from cocoa_contest.services.cache import reset_cache
from cocoa_contest.services.contest_stage import ContestStageController, today_utc
from cocoa_contest.services.final_evaluation import FinalEvaluationService
from cocoa_contest.services.lifecycle import SampleLifecycle
from cocoa_contest.services.notifications import EffectDispatcher, RepositoryNotificationSink
from cocoa_contest.services.results import ResultsCompiler


EVALUATION_FEE = Decimal("25.00")


def full_attributes(level: float = 2.0) -> dict:
    """A complete sensory attribute tree with every intensity set to level."""
    return {
        "cacao": level,
        "caramel_panela": level,
        "bitterness": level,
        "astringency": level,
        "acidity": {"frutal": level, "acetic": level, "lactic": level, "mineral_butyric": level},
        "fresh_fruit": {"berries": level, "citrus": level, "yellow_pulp": level, "dark": level, "tropical": level},
        "brown_fruit": {"dry": level, "brown": level, "overripe": level},
        "vegetal": {"grass_herb": level, "earthy": level},
        "floral": {"orange_blossom": level, "flowers": level},
        "wood": {"light": level, "dark": level, "resin": level},
        "spice": {"spices": level, "tobacco": level, "umami": level},
        "nut": {"kernel": level, "skin": level},
        "roast_degree": {"lactic": level, "mineral_butyric": level},
        "defects": {
            "dirty": 0, "animal": 0, "rotten": 0, "smoke": 0,
            "humid": 0, "moldy": 0, "overfermented": 0, "other": 0,
        },
    }


def passing_physical(**overrides) -> PhysicalEvaluationData:
    data = {
        "percentage_humidity": 6.5,
        "broken_grains": 2.0,
        "flat_grains": 5.0,
        "affected_grains_insects": 0,
        "well_fermented_beans": 70.0,
        "lightly_fermented_beans": 10.0,
        "purple_beans": 5.0,
        "slaty_beans": 0.0,
        "internal_moldy_beans": 0.0,
        "over_fermented_beans": 0.0,
    }
    data.update(overrides)
    return PhysicalEvaluationData(**data)


# =============================================================================
# STATE RESET
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_dependencies():
    """Every test starts with an empty store and no cache connection."""
    reset_dependencies()
    reset_cache()
    yield
    reset_dependencies()
    reset_cache()


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture(scope="module")
def client():
    """Create a TestClient for FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# STORE / REPOSITORY / SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def store():
    return VersionedStore()


@pytest.fixture
def samples(store):
    return SampleRepository(store)


@pytest.fixture
def judges(store):
    return JudgeRepository(store)


@pytest.fixture
def contests(store):
    return ContestRepository(store)


@pytest.fixture
def evaluations(store):
    return EvaluationRepository(store)


@pytest.fixture
def sessions(store):
    return EvaluationSessionRepository(store)


@pytest.fixture
def payments(store):
    return PaymentRepository(store)


@pytest.fixture
def notifications_repo(store):
    return NotificationRepository(store)


@pytest.fixture
def results(samples, evaluations, contests, settings):
    return ResultsCompiler(samples, evaluations, contests, settings, cache_getter=lambda: None)


@pytest.fixture
def stage(contests, evaluations, judges, results, settings):
    return ContestStageController(contests, evaluations, judges, results, settings)


@pytest.fixture
def lifecycle(samples, judges, contests, evaluations):
    return SampleLifecycle(samples, judges, contests, evaluations)


@pytest.fixture
def assignment(samples, judges, settings):
    return AssignmentManager(samples, judges, settings)


@pytest.fixture
def final(samples, judges, contests, evaluations, sessions, payments, stage, lifecycle):
    return FinalEvaluationService(samples, judges, contests, evaluations, sessions, payments, stage, lifecycle)


@pytest.fixture
def dispatcher(notifications_repo, results):
    return EffectDispatcher(RepositoryNotificationSink(notifications_repo), invalidate_rankings=results.invalidate)


# =============================================================================
# ACTORS
# =============================================================================

@pytest.fixture
def director():
    return Actor(user_id="director-1", role=Role.DIRECTOR)


@pytest.fixture
def admin():
    return Actor(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def participant():
    return Actor(user_id="participant-1", role=Role.PARTICIPANT)


def judge_actor(judge) -> Actor:
    return Actor(user_id=judge.id, role=Role.JUDGE)


def evaluator_actor(evaluator) -> Actor:
    return Actor(user_id=evaluator.id, role=Role.EVALUATOR)


# =============================================================================
# DOMAIN BUILDERS
# =============================================================================

@pytest.fixture
def today():
    return today_utc()


@pytest.fixture
def contest(stage, director, today):
    """An active contest directed by `director`."""
    return stage.create_contest(director, ContestCreate(
        name="Cacao de Oro 2026",
        start_date=today - timedelta(days=1),
        end_date=today + timedelta(days=30),
        evaluation_fee=EVALUATION_FEE,
    ))


@pytest.fixture
def make_judge(assignment, director):
    def _make(name="Judge", kind=JudgeKind.JUDGE, max_assignments=None):
        return assignment.register(director, JudgeCreate(
            id=f"{kind.value}-{uuid4().hex[:8]}",
            name=name,
            kind=kind,
            max_assignments=max_assignments,
        ))
    return _make


@pytest.fixture
def draft_sample(lifecycle, participant, contest):
    def _make(category=ProductCategory.BEAN, owner=None):
        return lifecycle.create_draft(owner or participant, SampleCreate(
            contest_id=contest.id,
            category=category,
            farm_name="Finca La Esperanza",
            origin_country="Colombia",
            agreed_to_terms=True,
        ))
    return _make


@pytest.fixture
def approved_sample(lifecycle, participant, director, draft_sample):
    def _make(category=ProductCategory.BEAN, owner=None):
        owner = owner or participant
        sample = draft_sample(category, owner)
        lifecycle.submit(owner, sample.id)
        lifecycle.receive(director, sample.id)
        lifecycle.record_physical_evaluation(director, sample.id, passing_physical())
        return lifecycle.approve(director, sample.id).sample
    return _make


@pytest.fixture
def evaluated_sample(approved_sample, assignment, lifecycle, director, make_judge):
    """Approved sample judged by one judge per score given."""
    def _make(scores, owner=None, judges_=None):
        sample = approved_sample(owner=owner)
        panel = judges_ or [make_judge(f"Judge {i}") for i in range(len(scores))]
        assignment.assign(director, sample.id, [j.id for j in panel])
        for judge, score in zip(panel, scores):
            actor = judge_actor(judge)
            lifecycle.start_evaluation(actor, sample.id)
            result = lifecycle.submit_evaluation(
                actor, sample.id, EvaluationSubmit(attributes=full_attributes(), overall_quality=score)
            )
        return result.sample
    return _make


# =============================================================================
# HELPER FIXTURES
# =============================================================================

@pytest.fixture
def as_judge():
    return judge_actor


@pytest.fixture
def as_evaluator():
    return evaluator_actor


@pytest.fixture
def sensory_attributes():
    return full_attributes


@pytest.fixture
def physical_data():
    return passing_physical
