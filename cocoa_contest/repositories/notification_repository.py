"""
Notification Repository - Cocoa Contest Evaluation Engine
cocoa_contest/repositories/notification_repository.py
"""

from typing import List

from cocoa_contest.models.notification import Notification
from cocoa_contest.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):

    COLLECTION = "notifications"
    ENTITY_TYPE = "Notification"
    MODEL = Notification

    def list_for_recipient(self, recipient_id: str, unread_only: bool = False) -> List[Notification]:
        """Newest first."""
        records = self.filter(
            lambda n: n.recipient_id == recipient_id and (not unread_only or not n.read)
        )
        return sorted(records, key=lambda n: (n.created_at, n.id), reverse=True)

    def mark_read(self, notification: Notification) -> Notification:
        if notification.read:
            return notification
        return self.update(notification.model_copy(update={"read": True}))
