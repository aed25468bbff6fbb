"""
Repositories Package - Cocoa Contest Evaluation Engine
cocoa_contest/repositories/__init__.py

Data access layer over the versioned in-memory store.
"""

from cocoa_contest.repositories.base import BaseRepository, Change, VersionedStore
from cocoa_contest.repositories.contest_repository import ContestRepository
from cocoa_contest.repositories.evaluation_repository import (
    EvaluationRepository,
    EvaluationSessionRepository,
    PaymentRepository,
)
from cocoa_contest.repositories.judge_repository import JudgeRepository
from cocoa_contest.repositories.notification_repository import NotificationRepository
from cocoa_contest.repositories.sample_repository import SampleRepository

__all__ = [
    "BaseRepository",
    "Change",
    "VersionedStore",
    "ContestRepository",
    "EvaluationRepository",
    "EvaluationSessionRepository",
    "JudgeRepository",
    "NotificationRepository",
    "PaymentRepository",
    "SampleRepository",
]
