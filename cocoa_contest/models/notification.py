from pydantic import BaseModel, Field
from uuid import uuid4
from datetime import datetime
from typing import Optional

from cocoa_contest.models.common import utc_now
from cocoa_contest.models.enumerations import NotificationPriority, NotificationType


class Notification(BaseModel):
    """Structured event handed to the notification sink."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: NotificationType
    priority: NotificationPriority = NotificationPriority.MEDIUM
    recipient_id: str
    title: str
    message: str
    details: Optional[str] = None
    related_sample_id: Optional[str] = None
    related_contest_id: Optional[str] = None
    action_required: bool = False
    read: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    version: int = Field(default=0, ge=0)
