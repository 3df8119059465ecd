"""Inbox schemas for leave-event notifications (submissions, decisions, accrual credits)."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from hr_leave.common.constants import NotificationType
from hr_leave.common.pagination import PaginationMeta


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    # Leave request or accrual row the message is about
    entity_type: Optional[str] = None
    entity_id: Optional[uuid.UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class InboxMeta(PaginationMeta):
    unread: int


class NotificationListResponse(BaseModel):
    """One page of the caller's inbox; ``meta.unread`` ignores the read filter."""

    data: list[NotificationResponse]
    meta: InboxMeta


class NotificationReadOut(BaseModel):
    message: str
    data: NotificationResponse
