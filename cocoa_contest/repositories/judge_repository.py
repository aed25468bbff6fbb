"""
Judge Repository - Cocoa Contest Evaluation Engine
cocoa_contest/repositories/judge_repository.py

Judges and evaluators share one capacity-tracked collection.
"""

from typing import Dict, Iterable, List, Optional

from cocoa_contest.core.exceptions import EntityNotFoundException
from cocoa_contest.models.enumerations import JudgeKind
from cocoa_contest.models.judge import Judge
from cocoa_contest.repositories.base import BaseRepository


class JudgeRepository(BaseRepository[Judge]):

    COLLECTION = "judges"
    ENTITY_TYPE = "Judge"
    MODEL = Judge

    def list_by_kind(self, kind: JudgeKind, available_only: bool = False) -> List[Judge]:
        return self.filter(
            lambda j: j.kind == kind and (not available_only or j.available)
        )

    def get_many(self, judge_ids: Iterable[str]) -> Dict[str, Judge]:
        """
        Snapshot several judges at once.

        Raises:
            EntityNotFoundException: for the first unknown id
        """
        found: Dict[str, Judge] = {}
        for judge_id in judge_ids:
            judge = self.get_by_id(judge_id)
            if judge is None:
                raise EntityNotFoundException(self.ENTITY_TYPE, judge_id)
            found[judge_id] = judge
        return found

    def get_evaluator(self, evaluator_id: str) -> Optional[Judge]:
        judge = self.get_by_id(evaluator_id)
        if judge is None or judge.kind != JudgeKind.EVALUATOR:
            return None
        return judge
