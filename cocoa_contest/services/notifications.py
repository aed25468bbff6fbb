"""
Notification Service - Cocoa Contest Evaluation Engine
cocoa_contest/services/notifications.py

Side-effect instructions emitted by core transitions, the notification sink
they are delivered to, and the dispatcher that applies them after a
successful commit.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol, Union

import structlog

from cocoa_contest.models.enumerations import NotificationPriority, NotificationType
from cocoa_contest.models.notification import Notification
from cocoa_contest.repositories.notification_repository import NotificationRepository

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Notify:
    type: NotificationType
    recipient_id: str
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    details: Optional[str] = None
    sample_id: Optional[str] = None
    contest_id: Optional[str] = None
    action_required: bool = False

    def to_notification(self) -> Notification:
        return Notification(
            type=self.type,
            priority=self.priority,
            recipient_id=self.recipient_id,
            title=self.title,
            message=self.message,
            details=self.details,
            related_sample_id=self.sample_id,
            related_contest_id=self.contest_id,
            action_required=self.action_required,
        )


@dataclass(frozen=True)
class UnlockPayment:
    """Sample became payable for final-stage evaluators."""
    contest_id: str
    sample_id: str


@dataclass(frozen=True)
class InvalidateRankings:
    contest_id: str


Effect = Union[Notify, UnlockPayment, InvalidateRankings]


# ---------------------------------------------------------------------------
# Message builders
# ---------------------------------------------------------------------------


def _code(tracking_code: Optional[str]) -> str:
    return tracking_code or ""


def sample_added(recipient_id: str, sample_id: str, contest_id: str,
                 tracking_code: Optional[str], participant_id: str) -> Notify:
    return Notify(
        type=NotificationType.SAMPLE_ADDED,
        priority=NotificationPriority.HIGH,
        recipient_id=recipient_id,
        title="New sample added",
        message=f"Sample {_code(tracking_code)} was submitted by {participant_id}",
        sample_id=sample_id,
        contest_id=contest_id,
    )


def sample_received(recipient_id: str, sample_id: str, contest_id: str,
                    tracking_code: Optional[str]) -> Notify:
    return Notify(
        type=NotificationType.SAMPLE_RECEIVED,
        recipient_id=recipient_id,
        title="Sample received",
        message=f"Your sample {_code(tracking_code)} has been received at the facility.",
        sample_id=sample_id,
        contest_id=contest_id,
    )


def sample_approved(recipient_id: str, sample_id: str, contest_id: str,
                    tracking_code: Optional[str]) -> Notify:
    return Notify(
        type=NotificationType.SAMPLE_APPROVED,
        recipient_id=recipient_id,
        title="Sample approved",
        message=f"Your sample {_code(tracking_code)} passed physical evaluation and is approved.",
        sample_id=sample_id,
        contest_id=contest_id,
    )


def sample_disqualified(recipient_id: str, sample_id: str, contest_id: str,
                        tracking_code: Optional[str], reasons: List[str],
                        notes: Optional[str] = None) -> Notify:
    suffix = f": {'; '.join(reasons)}" if reasons else "."
    return Notify(
        type=NotificationType.SAMPLE_DISQUALIFIED,
        priority=NotificationPriority.HIGH,
        recipient_id=recipient_id,
        title="Sample disqualified",
        message=f"Your sample {_code(tracking_code)} was disqualified{suffix}",
        details=notes or None,
        sample_id=sample_id,
        contest_id=contest_id,
        action_required=True,
    )


def assigned_to_judge(judge_id: str, sample_id: str, contest_id: str,
                      tracking_code: Optional[str]) -> Notify:
    return Notify(
        type=NotificationType.SAMPLE_ASSIGNED_TO_JUDGE,
        priority=NotificationPriority.HIGH,
        recipient_id=judge_id,
        title="New sample assignment",
        message=f"You have been assigned sample {_code(tracking_code)} for evaluation.",
        sample_id=sample_id,
        contest_id=contest_id,
        action_required=True,
    )


def participant_sample_assigned(participant_id: str, judge_name: str, sample_id: str,
                                contest_id: str, tracking_code: Optional[str]) -> Notify:
    return Notify(
        type=NotificationType.SAMPLE_ASSIGNED_TO_JUDGE,
        recipient_id=participant_id,
        title="Sample assigned to a judge",
        message=f"Your sample {_code(tracking_code)} has been assigned to judge {judge_name}",
        sample_id=sample_id,
        contest_id=contest_id,
    )


def evaluated_by(kind: NotificationType, recipient_id: str, author_name: str,
                 internal_code: str, sample_id: str, contest_id: str,
                 to_participant: bool = False) -> Notify:
    """judge_evaluated_sample / evaluator_evaluated_sample for staff or the owner."""
    role = "Judge" if kind == NotificationType.JUDGE_EVALUATED_SAMPLE else "Evaluator"
    if to_participant:
        title = f"Your sample was evaluated by {'a judge' if role == 'Judge' else 'an evaluator'}"
        message = f"{role} {author_name} completed evaluation for your sample {internal_code}."
    else:
        title = f"{role} submitted an evaluation"
        message = f"{role} {author_name} evaluated sample {internal_code}."
    return Notify(
        type=kind,
        recipient_id=recipient_id,
        title=title,
        message=message,
        sample_id=sample_id,
        contest_id=contest_id,
    )


def contest_final_stage(evaluator_id: str, contest_id: str, contest_name: str) -> Notify:
    return Notify(
        type=NotificationType.CONTEST_FINAL_STAGE,
        priority=NotificationPriority.HIGH,
        recipient_id=evaluator_id,
        title="Contest entered final evaluation stage",
        message=f"Contest {contest_name} is now in final evaluation. Please proceed as instructed.",
        contest_id=contest_id,
        action_required=True,
    )


def final_ranking_top3(participant_id: str, sample_id: str, contest_id: str,
                       rank: int, score: float) -> Notify:
    return Notify(
        type=NotificationType.FINAL_RANKING_TOP3,
        priority=NotificationPriority.HIGH,
        recipient_id=participant_id,
        title=f"Congratulations! Your sample ranked {rank}",
        message=f"Your sample achieved rank {rank} with average score {score}.",
        sample_id=sample_id,
        contest_id=contest_id,
    )


# ---------------------------------------------------------------------------
# Sink + dispatcher
# ---------------------------------------------------------------------------


class NotificationSink(Protocol):
    def deliver(self, notification: Notification) -> None:
        ...


class RepositoryNotificationSink:
    """Stores notifications for in-app retrieval."""

    def __init__(self, repository: NotificationRepository):
        self.repository = repository

    def deliver(self, notification: Notification) -> None:
        self.repository.create(notification)


class EffectDispatcher:
    """
    Apply effects after the transition that produced them has committed.

    Delivery is best effort: a failing sink or invalidator is logged and the
    remaining effects still run, since the state change already happened.
    """

    def __init__(
        self,
        sink: NotificationSink,
        invalidate_rankings: Optional[Callable[[str], None]] = None,
        unlock_payment: Optional[Callable[[UnlockPayment], None]] = None,
    ):
        self.sink = sink
        self.invalidate_rankings = invalidate_rankings
        self.unlock_payment = unlock_payment

    def dispatch(self, effects: Iterable[Effect]) -> int:
        """Returns the number of effects applied without error."""
        applied = 0
        for effect in effects:
            try:
                self._apply(effect)
                applied += 1
            except Exception:
                logger.exception("effect_dispatch_failed", effect=type(effect).__name__, payload=repr(effect))
        return applied

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, Notify):
            self.sink.deliver(effect.to_notification())
            logger.debug("notification_delivered", type=effect.type.value, recipient_id=effect.recipient_id)
        elif isinstance(effect, InvalidateRankings):
            if self.invalidate_rankings is not None:
                self.invalidate_rankings(effect.contest_id)
        elif isinstance(effect, UnlockPayment):
            logger.info("payment_unlocked", contest_id=effect.contest_id, sample_id=effect.sample_id)
            if self.unlock_payment is not None:
                self.unlock_payment(effect)
        else:
            raise TypeError(f"Unknown effect: {effect!r}")
