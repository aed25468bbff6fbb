"""
Contest Repository - Cocoa Contest Evaluation Engine
cocoa_contest/repositories/contest_repository.py
"""

from typing import List

from cocoa_contest.models.contest import Contest
from cocoa_contest.repositories.base import BaseRepository


class ContestRepository(BaseRepository[Contest]):

    COLLECTION = "contests"
    ENTITY_TYPE = "Contest"
    MODEL = Contest

    def list_by_director(self, director_id: str) -> List[Contest]:
        return self.filter(lambda c: c.director_id == director_id)

    def list_ordered(self) -> List[Contest]:
        """All contests, most recent start first."""
        return sorted(self.get_all(), key=lambda c: (c.start_date, c.id), reverse=True)
