"""Holiday and working-day calendar endpoints."""


import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.auth.dependencies import get_current_user, require_role
from hr_leave.common.constants import UserRole
from hr_leave.common.exceptions import ValidationException
from hr_leave.database import get_db
from hr_leave.employees.models import Employee
from hr_leave.holidays.schemas import (
    HolidayCreate,
    HolidayOut,
    MonthlyCalendar,
    WorkingDaysOut,
)
from hr_leave.holidays.service import HolidayService
from hr_leave.holidays.working_days import MAX_RANGE_DAYS, WorkingDayService

router = APIRouter(prefix="", tags=["holidays"])


@router.get("", response_model=list[HolidayOut])
async def list_holidays(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.list_holidays(db, year=year)


@router.post("", response_model=HolidayOut, status_code=201)
async def create_holiday(
    body: HolidayCreate,
    actor: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.create_holiday(db, body, actor.id)


@router.get("/calendar/{year}/{month}", response_model=MonthlyCalendar)
async def monthly_calendar(
    year: int = Path(..., ge=1900, le=9999),
    month: int = Path(..., ge=1, le=12),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Per-day weekend/holiday/working classification for one month."""
    return await WorkingDayService.monthly_calendar(db, year, month)


@router.get("/working-days", response_model=WorkingDaysOut)
async def working_days(
    start_date: dt.date = Query(...),
    end_date: dt.date = Query(...),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Weekdays between two dates (inclusive) minus active holidays."""
    if end_date < start_date:
        raise ValidationException({"end_date": ["End date must be after start date"]})
    if (end_date - start_date).days >= MAX_RANGE_DAYS:
        raise ValidationException(
            {"end_date": [f"Date range cannot exceed {MAX_RANGE_DAYS} days"]}
        )

    holidays = await HolidayService.get_active_holidays(db, start_date, end_date)
    count = await WorkingDayService.count_working_days(db, start_date, end_date)
    return WorkingDaysOut(
        start_date=start_date,
        end_date=end_date,
        working_days=count,
        holidays=[HolidayOut.model_validate(h) for h in holidays],
    )
