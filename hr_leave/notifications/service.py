"""Notification service: inbox operations and the leave-event dispatchers."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.common.constants import NotificationType
from hr_leave.common.exceptions import ForbiddenException, NotFoundException
from hr_leave.common.pagination import PaginationParams
from hr_leave.notifications.models import Notification
from hr_leave.notifications.schemas import (
    InboxMeta,
    NotificationListResponse,
    NotificationResponse,
)


# ── Core service ────────────────────────────────────────────────────


class NotificationService:

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        is_read: Optional[bool] = None,
    ) -> NotificationListResponse:
        """Paginated notifications for an employee, newest first."""
        query = (
            select(Notification)
            .where(Notification.recipient_id == employee_id)
            .order_by(Notification.created_at.desc())
        )
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)

        count_q = query.with_only_columns(
            func.count(), maintain_column_froms=True,
        ).order_by(None)
        total: int = (await db.execute(count_q)).scalar_one()

        rows = (
            await db.execute(
                query.offset(pagination.offset).limit(pagination.page_size)
            )
        ).scalars().all()

        total_pages = math.ceil(total / pagination.page_size) if total else 0
        unread = await NotificationService.get_unread_count(db, employee_id)

        return NotificationListResponse(
            data=[NotificationResponse.model_validate(n) for n in rows],
            meta=InboxMeta(
                page=pagination.page,
                page_size=pagination.page_size,
                total=total,
                total_pages=total_pages,
                has_next=pagination.page < total_pages,
                has_prev=pagination.page > 1,
                unread=unread,
            ),
        )

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.recipient_id != employee_id:
            raise ForbiddenException("You can only mark your own notifications as read.")

        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        await db.flush()
        return notification

    @staticmethod
    async def get_unread_count(db: AsyncSession, employee_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.recipient_id == employee_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()


# ── Leave-event dispatchers ─────────────────────────────────────────
# Take the ORM objects directly so callers do not build schemas first.


async def notify_leave_submitted(
    db: AsyncSession,
    leave_request,  # hr_leave.leave.models.LeaveRequest
    approver_id: uuid.UUID,
) -> Notification:
    return await NotificationService.create_notification(
        db,
        recipient_id=approver_id,
        type=NotificationType.action_required,
        title="New Leave Request",
        message=(
            f"A {leave_request.leave_type} leave request from {leave_request.start_date} "
            f"to {leave_request.end_date} ({leave_request.total_days} day(s), "
            f"{leave_request.priority.value} priority) requires your approval."
        ),
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_leave_approved(db: AsyncSession, leave_request) -> Notification:
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.employee_id,
        type=NotificationType.approval,
        title="Leave Request Approved",
        message=(
            f"Your leave request from {leave_request.start_date} to "
            f"{leave_request.end_date} has been approved."
        ),
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_leave_rejected(
    db: AsyncSession,
    leave_request,
    reason: str,
) -> Notification:
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.employee_id,
        type=NotificationType.alert,
        title="Leave Request Rejected",
        message=(
            f"Your leave request from {leave_request.start_date} to "
            f"{leave_request.end_date} was rejected. Reason: {reason}"
        ),
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_accrual_credited(
    db: AsyncSession,
    employee_id: uuid.UUID,
    accruals: Iterable,  # hr_leave.accrual.models.LeaveAccrual
) -> Notification:
    summary = ", ".join(f"{a.leave_type} +{a.days_accrued}" for a in accruals)
    return await NotificationService.create_notification(
        db,
        recipient_id=employee_id,
        type=NotificationType.info,
        title="Monthly Leave Accrual",
        message=f"Your monthly leave accrual has been recorded: {summary}.",
        entity_type="employee",
        entity_id=employee_id,
    )
