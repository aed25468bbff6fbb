"""
Evaluation Repository - Cocoa Contest Evaluation Engine
cocoa_contest/repositories/evaluation_repository.py

Stored evaluations (judge and evaluator), final-stage sessions and payment
confirmations.
"""

from typing import List, Optional

from cocoa_contest.models.enumerations import JudgeKind
from cocoa_contest.models.evaluation import EvaluationRecord, EvaluationSession, PaymentRecord
from cocoa_contest.repositories.base import BaseRepository


class EvaluationRepository(BaseRepository[EvaluationRecord]):

    COLLECTION = "evaluations"
    ENTITY_TYPE = "Evaluation"
    MODEL = EvaluationRecord

    def list_for_sample(
        self,
        sample_id: str,
        kind: Optional[JudgeKind] = None,
    ) -> List[EvaluationRecord]:
        records = self.filter(
            lambda e: e.sample_id == sample_id and (kind is None or e.author_kind == kind)
        )
        return sorted(records, key=lambda e: (e.submitted_at, e.id))

    def list_for_contest(
        self,
        contest_id: str,
        kind: Optional[JudgeKind] = None,
    ) -> List[EvaluationRecord]:
        records = self.filter(
            lambda e: e.contest_id == contest_id and (kind is None or e.author_kind == kind)
        )
        return sorted(records, key=lambda e: (e.submitted_at, e.id))

    def find(self, author_id: str, sample_id: str, kind: JudgeKind) -> Optional[EvaluationRecord]:
        matches = self.filter(
            lambda e: e.author_id == author_id and e.sample_id == sample_id and e.author_kind == kind
        )
        return matches[0] if matches else None


class EvaluationSessionRepository(BaseRepository[EvaluationSession]):

    COLLECTION = "evaluation_sessions"
    ENTITY_TYPE = "EvaluationSession"
    MODEL = EvaluationSession

    def find_open(self, evaluator_id: str, sample_id: str) -> Optional[EvaluationSession]:
        matches = self.filter(
            lambda s: s.evaluator_id == evaluator_id and s.sample_id == sample_id and not s.completed
        )
        return matches[0] if matches else None

    def list_for_evaluator(self, evaluator_id: str) -> List[EvaluationSession]:
        return self.filter(lambda s: s.evaluator_id == evaluator_id)


class PaymentRepository(BaseRepository[PaymentRecord]):

    COLLECTION = "payments"
    ENTITY_TYPE = "Payment"
    MODEL = PaymentRecord

    def get_by_idempotency_key(self, key: str) -> Optional[PaymentRecord]:
        matches = self.filter(lambda p: p.idempotency_key == key)
        return matches[0] if matches else None

    def find_confirmed(self, evaluator_id: str, sample_id: str) -> Optional[PaymentRecord]:
        matches = self.filter(
            lambda p: p.evaluator_id == evaluator_id and p.sample_id == sample_id
        )
        return matches[0] if matches else None
