"""
Contest Stage Controller - Cocoa Contest Evaluation Engine
cocoa_contest/services/contest_stage.py

Date-derived contest status, the final-evaluation stage flag, and the gate
that decides when an evaluator may pay for and evaluate a sample.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

import structlog

from cocoa_contest.config import Settings, get_settings
from cocoa_contest.core.exceptions import GateDenied, InvalidTransition, RoleNotPermitted
from cocoa_contest.models.common import Actor, utc_now
from cocoa_contest.models.contest import Contest, ContestCreate, ContestView
from cocoa_contest.models.enumerations import ContestStage, ContestStatus, JudgeKind
from cocoa_contest.repositories.contest_repository import ContestRepository
from cocoa_contest.repositories.evaluation_repository import EvaluationRepository
from cocoa_contest.repositories.judge_repository import JudgeRepository
from cocoa_contest.services import notifications
from cocoa_contest.services.notifications import Effect, UnlockPayment
from cocoa_contest.services.results import ResultsCompiler

logger = structlog.get_logger(__name__)

# Gate denial reasons
REASON_NOT_ACTIVE = "contest_not_active"
REASON_NOT_FINAL_STAGE = "final_stage_not_open"
REASON_NOT_IN_TOP_N = "sample_not_in_top_n"
REASON_ALREADY_EVALUATED = "already_evaluated"


def today_utc() -> date:
    return utc_now().date()


def derive_status(contest: Contest, today: date) -> ContestStatus:
    """
    upcoming before start_date, active from start_date through the whole of
    end_date, completed afterwards.
    """
    if today < contest.start_date:
        return ContestStatus.UPCOMING
    if today <= contest.end_date:
        return ContestStatus.ACTIVE
    return ContestStatus.COMPLETED


def derive_stage(contest: Contest, today: date) -> ContestStage:
    status = derive_status(contest, today)
    if status == ContestStatus.UPCOMING:
        return ContestStage.OPEN
    if status == ContestStatus.COMPLETED:
        return ContestStage.COMPLETED
    return ContestStage.FINAL_EVALUATION if contest.final_evaluation else ContestStage.ACTIVE


def accepts_submissions(contest: Contest, today: date) -> bool:
    """Samples may be submitted until completion or the submission deadline."""
    if derive_status(contest, today) == ContestStatus.COMPLETED:
        return False
    return contest.submission_deadline is None or today <= contest.submission_deadline


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[str] = None


class ContestStageController:
    """Tracks contest stage and gates payment-backed final evaluation."""

    def __init__(
        self,
        contests: ContestRepository,
        evaluations: EvaluationRepository,
        judges: JudgeRepository,
        results: ResultsCompiler,
        settings: Optional[Settings] = None,
    ):
        self.contests = contests
        self.evaluations = evaluations
        self.judges = judges
        self.results = results
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Contests
    # ------------------------------------------------------------------

    def create_contest(self, actor: Actor, data: ContestCreate) -> Contest:
        if not actor.is_staff:
            raise RoleNotPermitted(actor.role.value, "create_contest")
        contest = self.contests.create(Contest(**data.model_dump(), director_id=actor.user_id))
        logger.info("contest_created", contest_id=contest.id, name=contest.name)
        return contest

    def view(self, contest: Contest, today: Optional[date] = None) -> ContestView:
        today = today or today_utc()
        return ContestView(
            **contest.model_dump(),
            status=derive_status(contest, today),
            stage=derive_stage(contest, today),
        )

    def stage(self, contest_id: str, today: Optional[date] = None) -> ContestStage:
        return derive_stage(self.contests.require(contest_id), today or today_utc())

    # ------------------------------------------------------------------
    # Final stage
    # ------------------------------------------------------------------

    def start_final_evaluation(
        self,
        actor: Actor,
        contest_id: str,
        today: Optional[date] = None,
    ) -> Tuple[Contest, List[Effect]]:
        """
        Open the final evaluation stage of an active contest.

        Repeating the call once the flag is set returns the contest with no
        effects.
        """
        if not actor.is_staff:
            raise RoleNotPermitted(actor.role.value, "start_final_evaluation")
        today = today or today_utc()
        contest = self.contests.require(contest_id)
        if contest.final_evaluation:
            return contest, []

        status = derive_status(contest, today)
        if status != ContestStatus.ACTIVE:
            raise InvalidTransition("start_final_evaluation", status.value, "contest must be active")

        contest = self.contests.update(contest.model_copy(update={"final_evaluation": True}))

        effects: List[Effect] = [
            notifications.contest_final_stage(evaluator.id, contest.id, contest.name)
            for evaluator in self.judges.list_by_kind(JudgeKind.EVALUATOR)
        ]
        effects.extend(
            UnlockPayment(contest_id=contest.id, sample_id=sample_id)
            for sample_id in self.results.top_n(contest.id, self.settings.FINAL_STAGE_TOP_N)
        )

        logger.info("final_stage_started", contest_id=contest.id, effects=len(effects))
        return contest, effects

    def can_pay_and_evaluate(
        self,
        contest: Contest,
        sample_id: str,
        evaluator_id: str,
        today: Optional[date] = None,
    ) -> GateDecision:
        """
        Allowed iff the contest is active, in its final stage, the sample is in
        the top N of the sensory ranking and the evaluator has not already
        evaluated it.
        """
        today = today or today_utc()
        if derive_status(contest, today) != ContestStatus.ACTIVE:
            return GateDecision(False, REASON_NOT_ACTIVE)
        if not contest.final_evaluation:
            return GateDecision(False, REASON_NOT_FINAL_STAGE)
        if sample_id not in self.results.top_n(contest.id, self.settings.FINAL_STAGE_TOP_N):
            return GateDecision(False, REASON_NOT_IN_TOP_N)
        if self.evaluations.find(evaluator_id, sample_id, JudgeKind.EVALUATOR) is not None:
            return GateDecision(False, REASON_ALREADY_EVALUATED)
        return GateDecision(True)

    def require_gate(
        self,
        contest: Contest,
        sample_id: str,
        evaluator_id: str,
        today: Optional[date] = None,
    ) -> None:
        decision = self.can_pay_and_evaluate(contest, sample_id, evaluator_id, today)
        if not decision.allowed:
            logger.info(
                "final_gate_denied",
                contest_id=contest.id,
                sample_id=sample_id,
                evaluator_id=evaluator_id,
                reason=decision.reason,
            )
            raise GateDenied(
                decision.reason,
                contest_id=contest.id,
                sample_id=sample_id,
                evaluator_id=evaluator_id,
            )
