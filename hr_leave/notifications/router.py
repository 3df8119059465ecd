"""Leave inbox endpoints: the caller's notifications about requests and accruals."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.auth.dependencies import get_current_user
from hr_leave.common.pagination import PaginationParams
from hr_leave.database import get_db
from hr_leave.employees.models import Employee
from hr_leave.notifications.schemas import (
    NotificationListResponse,
    NotificationReadOut,
    NotificationResponse,
)
from hr_leave.notifications.service import NotificationService

router = APIRouter(prefix="", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def inbox(
    is_read: Optional[bool] = Query(default=None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Newest first; managers see submissions here, employees see decisions and credits."""
    return await NotificationService.get_notifications(
        db,
        employee_id=employee.id,
        pagination=pagination,
        is_read=is_read,
    )


@router.put("/{notification_id}/read", response_model=NotificationReadOut)
async def mark_read(
    notification_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # Only the recipient may acknowledge a notification
    notification = await NotificationService.mark_read(db, notification_id, employee.id)
    return NotificationReadOut(
        message="Notification marked as read",
        data=NotificationResponse.model_validate(notification),
    )
