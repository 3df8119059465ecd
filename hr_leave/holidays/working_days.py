"""Working-day arithmetic: weekends and active holidays are non-working.

The pure helpers take holiday dates explicitly so the leave rules can be
exercised without a database; :class:`WorkingDayService` loads the holidays.
"""

from __future__ import annotations

import calendar
import datetime as dt
from typing import Iterable, Iterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.holidays.schemas import CalendarDay, CalendarSummary, MonthlyCalendar
from hr_leave.holidays.service import HolidayService

# Monday..Friday (date.weekday() numbering)
DEFAULT_WORKING_WEEKDAYS: frozenset[int] = frozenset({0, 1, 2, 3, 4})

# Widest range the working-days query accepts
MAX_RANGE_DAYS = 366


def iter_dates(start: dt.date, end: dt.date) -> Iterator[dt.date]:
    """Yield every date from *start* to *end* inclusive."""
    # Offsets never step past *end*, so ranges ending on date.max are safe
    for offset in range((end - start).days + 1):
        yield start + dt.timedelta(days=offset)


def count_working_days(
    start: dt.date,
    end: dt.date,
    holiday_dates: Iterable[dt.date] = (),
    working_weekdays: frozenset[int] = DEFAULT_WORKING_WEEKDAYS,
) -> int:
    """Count working days in [start, end]; an inverted range counts as 0."""
    holidays = set(holiday_dates)
    return sum(
        1
        for day in iter_dates(start, end)
        if day.weekday() in working_weekdays and day not in holidays
    )


def generate_monthly_calendar(
    year: int,
    month: int,
    holidays: Iterable,
    working_weekdays: frozenset[int] = DEFAULT_WORKING_WEEKDAYS,
) -> MonthlyCalendar:
    """Build a per-day calendar for *month*.

    *holidays* is any iterable of objects with ``date`` and ``name``
    attributes (ORM rows or schemas). A holiday falling on a weekend is
    reported as both, and counted once under weekends in the summary.
    """
    first = dt.date(year, month, 1)
    last = dt.date(year, month, calendar.monthrange(year, month)[1])
    names = {h.date: h.name for h in holidays if first <= h.date <= last}

    days: list[CalendarDay] = []
    working = weekends = holiday_count = 0
    for day in iter_dates(first, last):
        is_weekend = day.weekday() not in working_weekdays
        holiday_name: Optional[str] = names.get(day)
        is_holiday = holiday_name is not None
        is_working = not is_weekend and not is_holiday

        if is_weekend:
            weekends += 1
        elif is_holiday:
            holiday_count += 1
        else:
            working += 1

        days.append(
            CalendarDay(
                date=day,
                day_of_week=day.weekday(),
                is_weekend=is_weekend,
                is_holiday=is_holiday,
                is_working_day=is_working,
                holiday_name=holiday_name,
            )
        )

    return MonthlyCalendar(
        year=year,
        month=month,
        calendar=days,
        summary=CalendarSummary(
            total_days=len(days),
            working_days=working,
            weekends=weekends,
            holidays=holiday_count,
        ),
    )


class WorkingDayService:
    """Database-backed wrappers around the pure working-day helpers."""

    @staticmethod
    async def count_working_days(
        db: AsyncSession,
        start: dt.date,
        end: dt.date,
    ) -> int:
        holidays = await HolidayService.get_active_holidays(db, start, end)
        return count_working_days(start, end, (h.date for h in holidays))

    @staticmethod
    async def monthly_calendar(
        db: AsyncSession,
        year: int,
        month: int,
    ) -> MonthlyCalendar:
        first = dt.date(year, month, 1)
        last = dt.date(year, month, calendar.monthrange(year, month)[1])
        holidays = await HolidayService.get_active_holidays(db, first, last)
        return generate_monthly_calendar(year, month, holidays)
