"""
Assignment Manager - Cocoa Contest Evaluation Engine
cocoa_contest/services/assignment.py

Judge capacity tracking and assignment of judges to samples, for one sample
at a time or many samples in a single all-or-nothing write.
"""

from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from cocoa_contest.config import Settings, get_settings
from cocoa_contest.core.exceptions import CapacityExceeded, InvalidTransition, RoleNotPermitted
from cocoa_contest.models.common import Actor, utc_now
from cocoa_contest.models.enumerations import JudgeKind, SampleStatus
from cocoa_contest.models.judge import Judge, JudgeCreate
from cocoa_contest.models.sample import Sample
from cocoa_contest.repositories.base import Change
from cocoa_contest.repositories.judge_repository import JudgeRepository
from cocoa_contest.repositories.sample_repository import SampleRepository
from cocoa_contest.services import notifications
from cocoa_contest.services.lifecycle import TransitionResult, require_staff
from cocoa_contest.services.notifications import Effect

logger = structlog.get_logger(__name__)

ASSIGNABLE = frozenset({SampleStatus.APPROVED, SampleStatus.ASSIGNED})


def _unique(ids: Iterable[str]) -> List[str]:
    """Drop duplicates, keep first-seen order."""
    return list(dict.fromkeys(ids))


def plan_capacity(
    judges: Mapping[str, Judge],
    current_sets: Mapping[str, Sequence[str]],
    requested_sets: Mapping[str, Sequence[str]],
) -> Dict[str, int]:
    """
    Net counter change per judge for replacing each sample's judge set.

    A judge already on a sample keeps that slot; one newly added costs +1,
    one removed gives back 1. Raises CapacityExceeded naming every judge the
    plan would push past max_assignments; nothing is written either way.
    """
    delta: Counter = Counter()
    for sample_id, requested in requested_sets.items():
        current = set(current_sets.get(sample_id, ()))
        wanted = set(requested)
        for judge_id in wanted - current:
            delta[judge_id] += 1
        for judge_id in current - wanted:
            delta[judge_id] -= 1

    over = [
        judge_id for judge_id, change in delta.items()
        if change > 0 and judges[judge_id].current_assignments + change > judges[judge_id].max_assignments
    ]
    if over:
        raise CapacityExceeded(over)
    return {judge_id: change for judge_id, change in delta.items() if change}


class AssignmentManager:
    """Capacity-aware judge assignment."""

    def __init__(
        self,
        samples: SampleRepository,
        judges: JudgeRepository,
        settings: Optional[Settings] = None,
    ):
        self.samples = samples
        self.judges = judges
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Judges
    # ------------------------------------------------------------------

    def register(self, actor: Actor, data: JudgeCreate) -> Judge:
        require_staff(actor, "register_judge")
        default_max = (
            self.settings.MAX_ASSIGNMENTS_PER_EVALUATOR
            if data.kind == JudgeKind.EVALUATOR
            else self.settings.MAX_ASSIGNMENTS_PER_JUDGE
        )
        fields = data.model_dump(exclude_none=True)
        fields.setdefault("max_assignments", default_max)
        judge = self.judges.create(Judge(**fields))
        logger.info("judge_registered", judge_id=judge.id, kind=judge.kind.value,
                    max_assignments=judge.max_assignments)
        return judge

    def availability(self, kind: JudgeKind = JudgeKind.JUDGE, available_only: bool = False) -> List[Judge]:
        """Capacity view, recomputed from the stored counters."""
        return sorted(self.judges.list_by_kind(kind, available_only), key=lambda j: (j.name, j.id))

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def _load_judges(self, judge_ids: Iterable[str], samples: Iterable[Sample]) -> Dict[str, Judge]:
        """Requested judges plus any currently assigned ones that may be released."""
        requested = _unique(judge_ids)
        judges = self.judges.get_many(requested)
        for judge in judges.values():
            if judge.kind != JudgeKind.JUDGE:
                raise RoleNotPermitted(judge.kind.value, "sensory_evaluation")
        for sample in samples:
            for judge_id in sample.assigned_judges:
                if judge_id not in judges:
                    judges.update(self.judges.get_many([judge_id]))
        return judges

    def _apply(
        self,
        actor: Actor,
        samples: List[Sample],
        judge_ids: List[str],
        operation: str,
    ) -> List[TransitionResult]:
        for sample in samples:
            if sample.status not in ASSIGNABLE:
                raise InvalidTransition(operation, sample.status.value,
                                        f"sample {sample.id} is not approved")

        judges = self._load_judges(judge_ids, samples)
        delta = plan_capacity(
            judges,
            {s.id: s.assigned_judges for s in samples},
            {s.id: judge_ids for s in samples},
        )

        now = utc_now()
        changes: List[Change] = []
        for sample in samples:
            changes.append(self.samples.update_change(sample.model_copy(update={
                "assigned_judges": list(judge_ids),
                "status": SampleStatus.ASSIGNED,
                "updated_at": now,
            })))
        for judge_id, change in sorted(delta.items()):
            judge = judges[judge_id]
            changes.append(self.judges.update_change(judge.model_copy(update={
                "current_assignments": max(0, judge.current_assignments + change),
            })))

        written = self.samples.store.commit(changes)

        results: List[TransitionResult] = []
        for previous, updated in zip(samples, written[:len(samples)]):
            added = [j for j in judge_ids if j not in previous.assigned_judges]
            effects: List[Effect] = []
            for judge_id in added:
                effects.append(notifications.assigned_to_judge(
                    judge_id, updated.id, updated.contest_id, updated.tracking_code
                ))
                effects.append(notifications.participant_sample_assigned(
                    updated.participant_id, judges[judge_id].name,
                    updated.id, updated.contest_id, updated.tracking_code,
                ))
            results.append(TransitionResult(updated, previous.status, effects))

        logger.info(
            "judges_assigned",
            operation=operation,
            samples=[s.id for s in samples],
            judges=judge_ids,
            capacity_delta=delta,
            actor_id=actor.user_id,
        )
        return results

    def assign(self, actor: Actor, sample_id: str, judge_ids: Sequence[str]) -> TransitionResult:
        """
        Replace the sample's judge set.

        Raises:
            CapacityExceeded: any newly added judge is full; nothing changes
            InvalidTransition: sample not approved/assigned
            RoleNotPermitted: an evaluator id was given as a judge
            EntityNotFoundException: unknown sample or judge
        """
        require_staff(actor, "assign_judges")
        judge_ids = _unique(judge_ids)
        sample = self.samples.require(sample_id)
        if not judge_ids:
            raise InvalidTransition("assign_judges", sample.status.value, "at least one judge is required")
        return self._apply(actor, [sample], judge_ids, "assign_judges")[0]

    def assign_bulk(
        self,
        actor: Actor,
        sample_ids: Sequence[str],
        judge_ids: Sequence[str],
    ) -> List[TransitionResult]:
        """
        Assign the same judges to many samples in one atomic write. If the
        cumulative load would exceed any judge's capacity, no sample and no
        counter changes. An empty sample list is a no-op.
        """
        require_staff(actor, "assign_judges_bulk")
        judge_ids = _unique(judge_ids)
        sample_ids = _unique(sample_ids)
        samples = [self.samples.require(sid) for sid in sample_ids]
        if not samples:
            return []
        if not judge_ids:
            raise InvalidTransition("assign_judges_bulk", samples[0].status.value,
                                    "at least one judge is required")
        return self._apply(actor, samples, judge_ids, "assign_judges_bulk")
