"""Pydantic v2 schemas for holidays and the working-day calendar."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ═════════════════════════════════════════════════════════════════════
# Holiday
# ═════════════════════════════════════════════════════════════════════


class HolidayCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    date: dt.date
    holiday_type: str = Field(default="public", max_length=30)
    description: Optional[str] = None


class HolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    date: dt.date
    holiday_type: str
    description: Optional[str] = None
    is_active: bool


# ═════════════════════════════════════════════════════════════════════
# Working-day calendar
# ═════════════════════════════════════════════════════════════════════


class CalendarDay(BaseModel):
    date: dt.date
    day_of_week: int  # 0 = Monday
    is_weekend: bool
    is_holiday: bool
    is_working_day: bool
    holiday_name: Optional[str] = None


class CalendarSummary(BaseModel):
    total_days: int
    working_days: int
    weekends: int
    holidays: int


class MonthlyCalendar(BaseModel):
    year: int
    month: int
    calendar: list[CalendarDay]
    summary: CalendarSummary


class WorkingDaysOut(BaseModel):
    start_date: dt.date
    end_date: dt.date
    working_days: int
    holidays: list[HolidayOut] = []
