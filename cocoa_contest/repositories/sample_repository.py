"""
Sample Repository - Cocoa Contest Evaluation Engine
cocoa_contest/repositories/sample_repository.py
"""

from typing import Iterable, List, Optional

from cocoa_contest.models.enumerations import SampleStatus
from cocoa_contest.models.sample import Sample
from cocoa_contest.repositories.base import BaseRepository


class SampleRepository(BaseRepository[Sample]):
    """
    Repository for contest samples.
    """

    COLLECTION = "samples"
    ENTITY_TYPE = "Sample"
    MODEL = Sample

    def list_by_contest(
        self,
        contest_id: str,
        statuses: Optional[Iterable[SampleStatus]] = None,
    ) -> List[Sample]:
        wanted = set(statuses) if statuses is not None else None
        return self.filter(
            lambda s: s.contest_id == contest_id and (wanted is None or s.status in wanted)
        )

    def list_by_participant(self, participant_id: str) -> List[Sample]:
        return self.filter(lambda s: s.participant_id == participant_id)

    def list_by_status(self, status: SampleStatus) -> List[Sample]:
        return self.filter(lambda s: s.status == status)

    def list_assigned_to(self, judge_id: str) -> List[Sample]:
        """Samples on which the judge currently holds a slot."""
        return self.filter(lambda s: judge_id in s.assigned_judges)
