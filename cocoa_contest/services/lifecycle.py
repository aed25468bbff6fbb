"""
Sample Lifecycle - Cocoa Contest Evaluation Engine
cocoa_contest/services/lifecycle.py

Authoritative status model for a sample:

    draft -> submitted -> received -> physical_evaluation -> approved
          -> assigned -> evaluating -> evaluated
    (any state after draft and before evaluated) -> disqualified

Every transition reads a snapshot, checks its guard, and commits through a
conditional write; the effects it returns are applied by the caller once the
commit has succeeded.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

import structlog

from cocoa_contest.core.exceptions import (
    DuplicateEvaluation,
    InvalidTransition,
    RoleNotPermitted,
    StaleWrite,
)
from cocoa_contest.models.common import Actor, utc_now
from cocoa_contest.models.enumerations import (
    JudgeKind,
    NotificationType,
    ProductCategory,
    Role,
    SampleStatus,
)
from cocoa_contest.models.evaluation import EvaluationRecord, EvaluationSubmit, RadarPoint
from cocoa_contest.models.physical import PhysicalEvaluationData
from cocoa_contest.models.sample import Sample, SampleCreate, SampleUpdate, generate_tracking_code
from cocoa_contest.repositories.contest_repository import ContestRepository
from cocoa_contest.repositories.evaluation_repository import EvaluationRepository
from cocoa_contest.repositories.judge_repository import JudgeRepository
from cocoa_contest.repositories.sample_repository import SampleRepository
from cocoa_contest.scoring.chocolate_calculator import ChocolateCalculator
from cocoa_contest.scoring.physical_criteria import PhysicalCriteriaEvaluator
from cocoa_contest.scoring.sensory_aggregator import SensoryAggregator
from cocoa_contest.services import notifications
from cocoa_contest.services.contest_stage import accepts_submissions, today_utc
from cocoa_contest.services.notifications import Effect, InvalidateRankings

logger = structlog.get_logger(__name__)

DISQUALIFIABLE = frozenset({
    SampleStatus.SUBMITTED,
    SampleStatus.RECEIVED,
    SampleStatus.PHYSICAL_EVALUATION,
    SampleStatus.APPROVED,
    SampleStatus.ASSIGNED,
    SampleStatus.EVALUATING,
})

WITHDRAWABLE = frozenset({SampleStatus.DRAFT, SampleStatus.SUBMITTED})

_PRE_APPROVAL = frozenset({
    SampleStatus.DRAFT,
    SampleStatus.SUBMITTED,
    SampleStatus.RECEIVED,
    SampleStatus.PHYSICAL_EVALUATION,
})


def derive_status(
    stored: SampleStatus,
    has_assignments: bool,
    has_in_progress: bool,
    all_submitted: bool,
) -> SampleStatus:
    """
    Effective status of a sample from its stored status and evaluation state.

    Precedence after approval: evaluated > evaluating > assigned > approved.
    Disqualified and the pre-approval states are returned unchanged.
    """
    if stored == SampleStatus.DISQUALIFIED or stored in _PRE_APPROVAL:
        return stored
    if has_assignments and all_submitted:
        return SampleStatus.EVALUATED
    if has_in_progress:
        return SampleStatus.EVALUATING
    if has_assignments:
        return SampleStatus.ASSIGNED
    return SampleStatus.APPROVED


def derive_sample_status(sample: Sample) -> SampleStatus:
    has_assignments = bool(sample.assigned_judges)
    return derive_status(
        sample.status,
        has_assignments=has_assignments,
        has_in_progress=sample.status == SampleStatus.EVALUATING or bool(sample.sensory_evaluations),
        all_submitted=has_assignments and not sample.pending_judges,
    )


@dataclass
class TransitionResult:
    """New sample snapshot plus the effects the caller must dispatch."""
    sample: Sample
    previous_status: SampleStatus
    effects: List[Effect] = field(default_factory=list)
    evaluation: Optional[EvaluationRecord] = None

    @property
    def changed(self) -> bool:
        return self.sample.status != self.previous_status


def require_staff(actor: Actor, operation: str) -> None:
    if not actor.is_staff:
        raise RoleNotPermitted(actor.role.value, operation)


def require_role(actor: Actor, role: Role, operation: str) -> None:
    if actor.role != role:
        raise RoleNotPermitted(actor.role.value, operation)


class SampleLifecycle:
    """Sample state machine over the versioned repositories."""

    def __init__(
        self,
        samples: SampleRepository,
        judges: JudgeRepository,
        contests: ContestRepository,
        evaluations: EvaluationRepository,
        aggregator: Optional[SensoryAggregator] = None,
        chocolate: Optional[ChocolateCalculator] = None,
        physical: Optional[PhysicalCriteriaEvaluator] = None,
    ):
        self.samples = samples
        self.judges = judges
        self.contests = contests
        self.evaluations = evaluations
        self.aggregator = aggregator or SensoryAggregator()
        self.chocolate = chocolate or ChocolateCalculator()
        self.physical = physical or PhysicalCriteriaEvaluator()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _touch(sample: Sample, **changes) -> Sample:
        changes["updated_at"] = utc_now()
        return sample.model_copy(update=changes)

    @staticmethod
    def _require_owner(actor: Actor, sample: Sample, operation: str) -> None:
        if actor.role != Role.PARTICIPANT or sample.participant_id != actor.user_id:
            raise RoleNotPermitted(actor.role.value, operation)

    @staticmethod
    def _log(event: str, sample: Sample, previous: SampleStatus, actor: Actor, **extra) -> None:
        logger.info(
            "sample_transitioned",
            transition=event,
            sample_id=sample.id,
            previous_status=previous.value,
            status=sample.status.value,
            actor_id=actor.user_id,
            **extra,
        )

    def _director_of(self, contest_id: str) -> Optional[str]:
        contest = self.contests.get_by_id(contest_id)
        return contest.director_id if contest is not None else None

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def create_draft(self, actor: Actor, data: SampleCreate) -> Sample:
        require_role(actor, Role.PARTICIPANT, "create_sample")
        self.contests.require(data.contest_id)
        sample = self.samples.create(Sample(**data.model_dump(), participant_id=actor.user_id))
        logger.info("sample_created", sample_id=sample.id, contest_id=sample.contest_id,
                    internal_code=sample.internal_code)
        return sample

    def update_draft(self, actor: Actor, sample_id: str, data: SampleUpdate) -> Sample:
        sample = self.samples.require(sample_id)
        self._require_owner(actor, sample, "update_sample")
        if sample.status != SampleStatus.DRAFT:
            raise InvalidTransition("update", sample.status.value, "only drafts can be edited")
        return self.samples.update(self._touch(sample, **data.model_dump(exclude_unset=True)))

    def withdraw(self, actor: Actor, sample_id: str) -> TransitionResult:
        """Participant deletes their own sample before it is received."""
        sample = self.samples.require(sample_id)
        self._require_owner(actor, sample, "withdraw")
        if sample.status not in WITHDRAWABLE:
            raise InvalidTransition("withdraw", sample.status.value, "sample has already been received")
        self.samples.delete(sample)
        logger.info("sample_withdrawn", sample_id=sample.id, status=sample.status.value)
        return TransitionResult(sample=sample, previous_status=sample.status)

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def submit(self, actor: Actor, sample_id: str, today: Optional[date] = None) -> TransitionResult:
        sample = self.samples.require(sample_id)
        self._require_owner(actor, sample, "submit")
        if sample.status != SampleStatus.DRAFT:
            raise InvalidTransition("submit", sample.status.value)
        if not (sample.farm_name and sample.origin_country and sample.agreed_to_terms):
            raise InvalidTransition(
                "submit", sample.status.value,
                "farm_name, origin_country and agreed_to_terms are required",
            )
        contest = self.contests.require(sample.contest_id)
        if not accepts_submissions(contest, today or today_utc()):
            raise InvalidTransition("submit", sample.status.value, "contest is not accepting submissions")

        now = utc_now()
        updated = self.samples.update(self._touch(
            sample,
            status=SampleStatus.SUBMITTED,
            tracking_code=generate_tracking_code(now),
        ))
        effects: List[Effect] = []
        if contest.director_id:
            effects.append(notifications.sample_added(
                contest.director_id, updated.id, updated.contest_id,
                updated.tracking_code, updated.participant_id,
            ))
        self._log("submit", updated, sample.status, actor)
        return TransitionResult(updated, sample.status, effects)

    def receive(self, actor: Actor, sample_id: str) -> TransitionResult:
        require_staff(actor, "receive")
        sample = self.samples.require(sample_id)
        if sample.status != SampleStatus.SUBMITTED:
            raise InvalidTransition("receive", sample.status.value)
        updated = self.samples.update(self._touch(sample, status=SampleStatus.RECEIVED))
        self._log("receive", updated, sample.status, actor)
        return TransitionResult(updated, sample.status, [
            notifications.sample_received(
                updated.participant_id, updated.id, updated.contest_id, updated.tracking_code
            )
        ])

    def record_physical_evaluation(
        self,
        actor: Actor,
        sample_id: str,
        data: PhysicalEvaluationData,
    ) -> TransitionResult:
        """
        Store the physical inspection. A failing inspection disqualifies the
        sample in the same write; re-inspection is allowed until approval.
        """
        require_staff(actor, "physically_evaluate")
        sample = self.samples.require(sample_id)
        if sample.status not in (SampleStatus.RECEIVED, SampleStatus.PHYSICAL_EVALUATION):
            raise InvalidTransition("physically_evaluate", sample.status.value)

        result = self.physical.build_result(data, actor.user_id, sample.id)
        effects: List[Effect] = []
        if result.passed:
            updated = self.samples.update(self._touch(
                sample,
                status=SampleStatus.PHYSICAL_EVALUATION,
                physical_evaluation=result,
            ))
        else:
            updated = self.samples.update(self._touch(
                sample,
                status=SampleStatus.DISQUALIFIED,
                physical_evaluation=result,
                disqualification_reasons=list(result.disqualification_reasons),
            ))
            effects.append(notifications.sample_disqualified(
                updated.participant_id, updated.id, updated.contest_id,
                updated.tracking_code, updated.disqualification_reasons, data.notes,
            ))
            effects.append(InvalidateRankings(updated.contest_id))
        self._log("physically_evaluate", updated, sample.status, actor, verdict=result.verdict.value)
        return TransitionResult(updated, sample.status, effects)

    def approve(self, actor: Actor, sample_id: str) -> TransitionResult:
        require_staff(actor, "approve")
        sample = self.samples.require(sample_id)
        if sample.status != SampleStatus.PHYSICAL_EVALUATION:
            raise InvalidTransition("approve", sample.status.value)
        if sample.physical_evaluation is None or not sample.physical_evaluation.passed:
            raise InvalidTransition("approve", sample.status.value, "physical evaluation has not passed")
        # Conditional write: a concurrent disqualification bumps the version first
        updated = self.samples.update(self._touch(sample, status=SampleStatus.APPROVED))
        self._log("approve", updated, sample.status, actor)
        return TransitionResult(updated, sample.status, [
            notifications.sample_approved(
                updated.participant_id, updated.id, updated.contest_id, updated.tracking_code
            )
        ])

    def disqualify(self, actor: Actor, sample_id: str, reasons: List[str]) -> TransitionResult:
        """Terminal. Judges that have not yet submitted get their slot back."""
        require_staff(actor, "disqualify")
        reasons = [r.strip() for r in reasons if r and r.strip()]
        sample = self.samples.require(sample_id)
        if not reasons:
            raise InvalidTransition("disqualify", sample.status.value,
                                    "at least one disqualification reason is required")
        if sample.status not in DISQUALIFIABLE:
            raise InvalidTransition("disqualify", sample.status.value)

        updated = self._touch(
            sample,
            status=SampleStatus.DISQUALIFIED,
            disqualification_reasons=reasons,
        )
        changes = [self.samples.update_change(updated)]
        for judge_id in sample.pending_judges:
            judge = self.judges.get_by_id(judge_id)
            if judge is not None and judge.current_assignments > 0:
                changes.append(self.judges.update_change(
                    judge.model_copy(update={"current_assignments": judge.current_assignments - 1})
                ))
        updated = self.samples.store.commit(changes)[0]

        self._log("disqualify", updated, sample.status, actor, released=len(changes) - 1)
        return TransitionResult(updated, sample.status, [
            notifications.sample_disqualified(
                updated.participant_id, updated.id, updated.contest_id,
                updated.tracking_code, reasons,
            ),
            InvalidateRankings(updated.contest_id),
        ])

    # ------------------------------------------------------------------
    # Sensory evaluation
    # ------------------------------------------------------------------

    def start_evaluation(self, actor: Actor, sample_id: str) -> TransitionResult:
        """Open the sample for evaluation. Repeated opens are no-ops."""
        require_role(actor, Role.JUDGE, "start_evaluation")
        sample = self.samples.require(sample_id)
        if actor.user_id not in sample.assigned_judges:
            raise InvalidTransition("start_evaluation", sample.status.value, "judge is not assigned to this sample")
        if sample.status == SampleStatus.EVALUATING:
            return TransitionResult(sample, sample.status)
        if sample.status not in (SampleStatus.APPROVED, SampleStatus.ASSIGNED):
            raise InvalidTransition("start_evaluation", sample.status.value)

        try:
            updated = self.samples.update(self._touch(sample, status=SampleStatus.EVALUATING))
        except StaleWrite:
            current = self.samples.require(sample_id)
            if current.status == SampleStatus.EVALUATING:
                return TransitionResult(current, current.status)
            raise
        self._log("start_evaluation", updated, sample.status, actor)
        return TransitionResult(updated, sample.status)

    def submit_evaluation(self, actor: Actor, sample_id: str, payload: EvaluationSubmit) -> TransitionResult:
        """
        Persist one judge's evaluation and release that judge's slot. The
        sample becomes evaluated once every assigned judge has submitted.

        Raises:
            InvalidTransition: sample already evaluated, not started, or the
                judge is not assigned
            DuplicateEvaluation: this judge already submitted
            ValueError: attribute intensities out of range
        """
        require_role(actor, Role.JUDGE, "submit_evaluation")
        sample = self.samples.require(sample_id)
        if sample.status == SampleStatus.EVALUATED:
            raise InvalidTransition("submit_evaluation", sample.status.value, "sample is already fully evaluated")
        if actor.user_id in sample.sensory_evaluations:
            raise DuplicateEvaluation(actor.user_id, sample.id)
        if actor.user_id not in sample.assigned_judges:
            raise InvalidTransition("submit_evaluation", sample.status.value, "judge is not assigned to this sample")
        if sample.status != SampleStatus.EVALUATING:
            raise InvalidTransition("submit_evaluation", sample.status.value, "evaluation has not been started")
        judge = self.judges.require(actor.user_id)

        record = self.build_record(sample, actor.user_id, JudgeKind.JUDGE, payload)

        now = utc_now()
        updated = self._touch(sample, sensory_evaluations={**sample.sensory_evaluations, actor.user_id: record.id})
        status = derive_sample_status(updated)
        updated = updated.model_copy(update={
            "status": status,
            "evaluated_at": now if status == SampleStatus.EVALUATED else None,
        })
        released = judge.model_copy(update={"current_assignments": max(0, judge.current_assignments - 1)})

        stored_record, updated, _ = self.samples.store.commit([
            self.evaluations.insert_change(record),
            self.samples.update_change(updated),
            self.judges.update_change(released),
        ])

        effects: List[Effect] = []
        director_id = self._director_of(updated.contest_id)
        if director_id:
            effects.append(notifications.evaluated_by(
                NotificationType.JUDGE_EVALUATED_SAMPLE, director_id, judge.name,
                updated.internal_code, updated.id, updated.contest_id,
            ))
        effects.append(notifications.evaluated_by(
            NotificationType.JUDGE_EVALUATED_SAMPLE, updated.participant_id, judge.name,
            updated.internal_code, updated.id, updated.contest_id, to_participant=True,
        ))
        effects.append(InvalidateRankings(updated.contest_id))

        self._log("submit_evaluation", updated, sample.status, actor,
                  evaluation_id=stored_record.id, pending=len(updated.pending_judges))
        return TransitionResult(updated, sample.status, effects, evaluation=stored_record)

    def build_record(
        self,
        sample: Sample,
        author_id: str,
        author_kind: JudgeKind,
        payload: EvaluationSubmit,
    ) -> EvaluationRecord:
        """Aggregate a submission into an immutable evaluation record."""
        aggregated = self.aggregator.aggregate(payload.attributes, payload.overall_quality)
        missing = aggregated.missing_paths

        chocolate_scores = None
        if sample.category == ProductCategory.CHOCOLATE and payload.chocolate is not None:
            chocolate = self.chocolate.calculate(payload.chocolate)
            chocolate_scores = chocolate.to_dict()
            missing.extend(f"{m.group}.{m.attribute}" for m in chocolate.missing)

        return EvaluationRecord(
            sample_id=sample.id,
            contest_id=sample.contest_id,
            author_id=author_id,
            author_kind=author_kind,
            category=sample.category,
            attributes=aggregated.to_attributes(),
            radar=[RadarPoint(label=label, value=float(value)) for label, value in aggregated.radar],
            overall_quality=float(aggregated.overall_quality),
            chocolate_scores=chocolate_scores,
            missing_attributes=missing,
            positive_qualities=payload.positive_qualities,
            flavor_comments=payload.flavor_comments,
            producer_recommendations=payload.producer_recommendations,
        )
