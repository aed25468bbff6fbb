"""
Final Evaluation Service - Cocoa Contest Evaluation Engine
cocoa_contest/services/final_evaluation.py

Evaluator pay-to-evaluate handshake for the final stage:

    confirm_payment -> start -> submit

The stage gate is re-checked at each step, so a contest that closes (or a
sample that drops out of the top N) between payment and submission is
refused at the next step.
"""

from datetime import date
from typing import List, Optional

import structlog

from cocoa_contest.core.exceptions import (
    CapacityExceeded,
    DuplicateEntityException,
    DuplicateEvaluation,
    GateDenied,
    RoleNotPermitted,
)
from cocoa_contest.models.common import Actor
from cocoa_contest.models.enumerations import JudgeKind, NotificationType, Role
from cocoa_contest.models.evaluation import (
    EvaluationSession,
    EvaluationSubmit,
    PaymentConfirmation,
    PaymentRecord,
)
from cocoa_contest.models.judge import Judge
from cocoa_contest.repositories.contest_repository import ContestRepository
from cocoa_contest.repositories.evaluation_repository import (
    EvaluationRepository,
    EvaluationSessionRepository,
    PaymentRepository,
)
from cocoa_contest.repositories.judge_repository import JudgeRepository
from cocoa_contest.repositories.sample_repository import SampleRepository
from cocoa_contest.services import notifications
from cocoa_contest.services.contest_stage import ContestStageController
from cocoa_contest.services.lifecycle import SampleLifecycle, TransitionResult
from cocoa_contest.services.notifications import Effect, InvalidateRankings

logger = structlog.get_logger(__name__)

REASON_NOT_EVALUATOR = "not_a_registered_evaluator"
REASON_AMOUNT_MISMATCH = "payment_amount_mismatch"
REASON_NOT_PAID = "payment_not_confirmed"
REASON_NOT_STARTED = "evaluation_not_started"


class FinalEvaluationService:
    """Payment-gated final evaluation by evaluators."""

    def __init__(
        self,
        samples: SampleRepository,
        judges: JudgeRepository,
        contests: ContestRepository,
        evaluations: EvaluationRepository,
        sessions: EvaluationSessionRepository,
        payments: PaymentRepository,
        stage: ContestStageController,
        lifecycle: SampleLifecycle,
    ):
        self.samples = samples
        self.judges = judges
        self.contests = contests
        self.evaluations = evaluations
        self.sessions = sessions
        self.payments = payments
        self.stage = stage
        self.lifecycle = lifecycle

    def _evaluator(self, actor: Actor, operation: str) -> Judge:
        if actor.role != Role.EVALUATOR:
            raise RoleNotPermitted(actor.role.value, operation)
        evaluator = self.judges.get_evaluator(actor.user_id)
        if evaluator is None:
            raise GateDenied(REASON_NOT_EVALUATOR, evaluator_id=actor.user_id)
        return evaluator

    def confirm_payment(
        self,
        actor: Actor,
        sample_id: str,
        confirmation: PaymentConfirmation,
        today: Optional[date] = None,
    ) -> PaymentRecord:
        """
        Record an externally verified payment for (evaluator, sample).

        Idempotent by key: replaying a key returns the original record. A
        second payment for an already paid pair also returns the first one.
        """
        existing = self.payments.get_by_idempotency_key(confirmation.idempotency_key)
        if existing is not None:
            if existing.evaluator_id != actor.user_id or existing.sample_id != sample_id:
                raise DuplicateEntityException(
                    f"Idempotency key {confirmation.idempotency_key} already used for another payment"
                )
            return existing

        self._evaluator(actor, "confirm_payment")
        sample = self.samples.require(sample_id)
        contest = self.contests.require(sample.contest_id)
        self.stage.require_gate(contest, sample.id, actor.user_id, today)

        if confirmation.amount != contest.evaluation_fee:
            raise GateDenied(
                REASON_AMOUNT_MISMATCH,
                expected=str(contest.evaluation_fee),
                received=str(confirmation.amount),
            )

        paid = self.payments.find_confirmed(actor.user_id, sample.id)
        if paid is not None:
            return paid

        record = self.payments.create(PaymentRecord(
            evaluator_id=actor.user_id,
            sample_id=sample.id,
            contest_id=contest.id,
            amount=confirmation.amount,
            idempotency_key=confirmation.idempotency_key,
        ))
        logger.info("payment_confirmed", payment_id=record.id, evaluator_id=actor.user_id,
                    sample_id=sample.id, amount=str(record.amount))
        return record

    def start(self, actor: Actor, sample_id: str, today: Optional[date] = None) -> EvaluationSession:
        """
        Admit the evaluator to evaluate the sample. Requires a confirmed
        payment and spare evaluator capacity. The gate is checked on every
        call; an open session is returned as is only while it still passes.
        """
        evaluator = self._evaluator(actor, "start_final_evaluation")
        sample = self.samples.require(sample_id)
        contest = self.contests.require(sample.contest_id)

        self.stage.require_gate(contest, sample.id, evaluator.id, today)
        session = self.sessions.find_open(evaluator.id, sample.id)
        if session is not None:
            return session

        if self.payments.find_confirmed(evaluator.id, sample.id) is None:
            raise GateDenied(REASON_NOT_PAID, sample_id=sample.id, evaluator_id=evaluator.id)
        if not evaluator.available:
            raise CapacityExceeded([evaluator.id])

        session = EvaluationSession(evaluator_id=evaluator.id, sample_id=sample.id, contest_id=contest.id)
        stored, _ = self.sessions.store.commit([
            self.sessions.insert_change(session),
            self.judges.update_change(
                evaluator.model_copy(update={"current_assignments": evaluator.current_assignments + 1})
            ),
        ])
        logger.info("final_evaluation_started", session_id=stored.id, evaluator_id=evaluator.id,
                    sample_id=sample.id)
        return stored

    def submit(
        self,
        actor: Actor,
        sample_id: str,
        payload: EvaluationSubmit,
        today: Optional[date] = None,
    ) -> TransitionResult:
        """
        Store the evaluator's final evaluation, close the session and free
        the evaluator's slot. First writer wins per (evaluator, sample).
        """
        evaluator = self._evaluator(actor, "submit_final_evaluation")
        sample = self.samples.require(sample_id)
        contest = self.contests.require(sample.contest_id)

        if evaluator.id in sample.final_evaluations:
            raise DuplicateEvaluation(evaluator.id, sample.id)
        self.stage.require_gate(contest, sample.id, evaluator.id, today)
        session = self.sessions.find_open(evaluator.id, sample.id)
        if session is None:
            raise GateDenied(REASON_NOT_STARTED, sample_id=sample.id, evaluator_id=evaluator.id)

        record = self.lifecycle.build_record(sample, evaluator.id, JudgeKind.EVALUATOR, payload)
        updated = sample.model_copy(update={
            "final_evaluations": {**sample.final_evaluations, evaluator.id: record.id},
        })
        stored_record, updated, _, _ = self.samples.store.commit([
            self.evaluations.insert_change(record),
            self.samples.update_change(updated),
            self.sessions.update_change(session.model_copy(update={"completed": True})),
            self.judges.update_change(evaluator.model_copy(update={
                "current_assignments": max(0, evaluator.current_assignments - 1),
            })),
        ])

        effects: List[Effect] = []
        if contest.director_id:
            effects.append(notifications.evaluated_by(
                NotificationType.EVALUATOR_EVALUATED_SAMPLE, contest.director_id, evaluator.name,
                updated.internal_code, updated.id, updated.contest_id,
            ))
        effects.append(notifications.evaluated_by(
            NotificationType.EVALUATOR_EVALUATED_SAMPLE, updated.participant_id, evaluator.name,
            updated.internal_code, updated.id, updated.contest_id, to_participant=True,
        ))
        effects.append(InvalidateRankings(updated.contest_id))

        logger.info("final_evaluation_submitted", evaluation_id=stored_record.id,
                    evaluator_id=evaluator.id, sample_id=sample.id,
                    overall_quality=stored_record.overall_quality)
        return TransitionResult(updated, sample.status, effects, evaluation=stored_record)
