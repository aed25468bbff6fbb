"""
Notification Router - Cocoa Contest Evaluation Engine
cocoa_contest/routers/notifications.py
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from cocoa_contest.config import settings
from cocoa_contest.core.dependencies import get_actor, get_notification_repository
from cocoa_contest.core.exceptions import EntityNotFoundException
from cocoa_contest.models.common import Actor
from cocoa_contest.models.notification import Notification
from cocoa_contest.repositories.notification_repository import NotificationRepository
from cocoa_contest.routers.errors import RESPONSES_404

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/notifications", tags=["Notifications"])


@router.get("", response_model=List[Notification], summary="My notifications")
async def list_notifications(
    unread_only: bool = Query(default=False),
    actor: Actor = Depends(get_actor),
    repo: NotificationRepository = Depends(get_notification_repository),
) -> List[Notification]:
    return repo.list_for_recipient(actor.user_id, unread_only)


@router.post(
    "/{notification_id}/read",
    response_model=Notification,
    responses=RESPONSES_404,
    summary="Mark a notification read",
)
async def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_actor),
    repo: NotificationRepository = Depends(get_notification_repository),
) -> Notification:
    notification = repo.require(notification_id)
    # Other users' notifications are reported as missing
    if notification.recipient_id != actor.user_id:
        raise EntityNotFoundException(repo.ENTITY_TYPE, notification_id)
    return repo.mark_read(notification)
