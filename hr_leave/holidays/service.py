"""Holiday calendar service: the read side used by the leave rules plus admin CRUD."""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.common.audit import create_audit_entry
from hr_leave.common.exceptions import ConflictError, NotFoundException
from hr_leave.holidays.models import Holiday
from hr_leave.holidays.schemas import HolidayCreate

logger = logging.getLogger(__name__)


class HolidayService:

    @staticmethod
    async def get_active_holidays(
        db: AsyncSession,
        start: dt.date,
        end: dt.date,
    ) -> Sequence[Holiday]:
        """Active holidays with start <= date <= end, ordered by date."""
        result = await db.execute(
            select(Holiday)
            .where(
                Holiday.is_active.is_(True),
                Holiday.date >= start,
                Holiday.date <= end,
            )
            .order_by(Holiday.date)
        )
        return result.scalars().all()

    @staticmethod
    async def list_holidays(
        db: AsyncSession,
        year: Optional[int] = None,
        include_inactive: bool = False,
    ) -> Sequence[Holiday]:
        query = select(Holiday).order_by(Holiday.date)
        if year is not None:
            query = query.where(extract("year", Holiday.date) == year)
        if not include_inactive:
            query = query.where(Holiday.is_active.is_(True))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def create_holiday(
        db: AsyncSession,
        data: HolidayCreate,
        actor_id: uuid.UUID,
    ) -> Holiday:
        existing = await db.execute(
            select(Holiday.id).where(
                Holiday.date == data.date, Holiday.name == data.name,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("date", data.date.isoformat())

        holiday = Holiday(**data.model_dump())
        db.add(holiday)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            new_values={"name": holiday.name, "date": holiday.date.isoformat()},
        )
        logger.info("Holiday %s on %s created", holiday.name, holiday.date)
        return holiday

    @staticmethod
    async def deactivate_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> Holiday:
        holiday = await db.get(Holiday, holiday_id)
        if holiday is None:
            raise NotFoundException("Holiday", holiday_id)

        holiday.is_active = False
        await db.flush()

        await create_audit_entry(
            db,
            action="deactivate",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            old_values={"is_active": True},
            new_values={"is_active": False},
        )
        return holiday
