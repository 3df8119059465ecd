"""Monthly leave accrual processing.

Accrual is recorded once a month on the employee's joining day of month
(the last day of the month when the joining day does not exist in it). Each
run stores, per applicable policy, the nominal monthly share of the annual
entitlement together with the calculator's earned and available figures as
of that day. The balance itself is always computed on the fly; these rows
are the history shown to employees and the trigger for their notification.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.accrual.models import LeaveAccrual
from hr_leave.accrual.schemas import AccrualResult, AccrualRunSummary, LeaveAccrualOut
from hr_leave.common.audit import create_audit_entry
from hr_leave.common.exceptions import AppException
from hr_leave.employees.models import Employee
from hr_leave.employees.service import EmployeeService
from hr_leave.leave.balance import round2
from hr_leave.leave.validator import LeaveBalanceService
from hr_leave.notifications.service import notify_accrual_credited

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = Decimal("12")


def accrual_day_in_month(join_date: date, year: int, month: int) -> date:
    """The joining day of month, clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(join_date.day, last_day))


def is_accrual_day(join_date: date, day: date) -> bool:
    return accrual_day_in_month(join_date, day.year, day.month) == day


def get_next_accrual_date(join_date: Optional[date], today: date) -> Optional[date]:
    """First accrual day strictly after *today* (never before one month of service)."""
    if join_date is None:
        return None

    candidate = accrual_day_in_month(join_date, today.year, today.month)
    if candidate <= today or candidate <= join_date:
        year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
        candidate = accrual_day_in_month(join_date, year, month)
        if candidate <= join_date:
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
            candidate = accrual_day_in_month(join_date, year, month)
    return candidate


class AccrualService:

    @staticmethod
    async def _already_processed(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
        month: int,
    ) -> bool:
        result = await db.execute(
            select(LeaveAccrual.id).where(
                LeaveAccrual.employee_id == employee_id,
                LeaveAccrual.year == year,
                LeaveAccrual.month == month,
            )
        )
        return result.first() is not None

    @staticmethod
    async def process_monthly_accrual(
        db: AsyncSession,
        employee_id: uuid.UUID,
        accrual_date: date,
    ) -> AccrualResult:
        employee = await EmployeeService.get_employee(db, employee_id)

        def skipped(message: str) -> AccrualResult:
            return AccrualResult(employee_id=employee.id, processed=False, message=message)

        if not employee.is_active:
            return skipped("Cannot accrue leave for inactive employee")
        if employee.join_date is None:
            return skipped("Employee join date is not set")
        if accrual_date <= employee.join_date:
            return skipped("Accrual starts one month after joining")
        if not is_accrual_day(employee.join_date, accrual_date):
            expected = accrual_day_in_month(employee.join_date, accrual_date.year, accrual_date.month)
            return skipped(
                f"Accrual for this employee runs on day {expected.day} of the month, "
                f"not {accrual_date.day}"
            )
        if await AccrualService._already_processed(
            db, employee.id, accrual_date.year, accrual_date.month,
        ):
            return skipped(
                f"Leave accrual already processed for {accrual_date.month}/{accrual_date.year}"
            )

        balances = await LeaveBalanceService.compute_for_employee(db, employee, accrual_date)
        if not balances:
            return skipped("No applicable leave policies")

        accruals = []
        for entry in balances.values():
            accrual = LeaveAccrual(
                employee_id=employee.id,
                leave_type=entry.leave_type,
                year=accrual_date.year,
                month=accrual_date.month,
                accrual_date=accrual_date,
                days_accrued=round2(entry.total_days_per_year / MONTHS_PER_YEAR),
                total_earned=entry.total,
                available=entry.available,
            )
            db.add(accrual)
            accruals.append(accrual)
        await db.flush()

        await create_audit_entry(
            db,
            action="accrue",
            entity_type="employee",
            entity_id=employee.id,
            new_values={
                "accrual_date": accrual_date.isoformat(),
                "accruals": {a.leave_type: str(a.days_accrued) for a in accruals},
            },
        )
        await notify_accrual_credited(db, employee.id, accruals)

        logger.info(
            "Recorded %d leave accruals for employee %s on %s",
            len(accruals), employee.employee_code, accrual_date,
        )
        return AccrualResult(
            employee_id=employee.id,
            processed=True,
            message=f"Leave accrual processed for {accrual_date.month}/{accrual_date.year}",
            accruals=[LeaveAccrualOut.model_validate(a) for a in accruals],
        )

    @staticmethod
    async def process_all_eligible(
        db: AsyncSession,
        accrual_date: date,
    ) -> AccrualRunSummary:
        """Run monthly accrual for every active employee whose accrual day is *accrual_date*."""
        result = await db.execute(
            select(Employee).where(
                Employee.is_active.is_(True),
                Employee.join_date.is_not(None),
            )
        )
        eligible = [
            e for e in result.scalars().all()
            if is_accrual_day(e.join_date, accrual_date)
        ]

        summary = AccrualRunSummary(accrual_date=accrual_date, eligible=len(eligible))
        for employee in eligible:
            try:
                outcome = await AccrualService.process_monthly_accrual(db, employee.id, accrual_date)
            except AppException as exc:
                logger.error("Accrual failed for employee %s: %s", employee.employee_code, exc.detail)
                summary.failed += 1
                summary.errors.append(f"{employee.employee_code}: {exc.detail}")
                continue
            if outcome.processed:
                summary.processed += 1
            else:
                summary.skipped += 1

        logger.info(
            "Accrual run for %s: %d eligible, %d processed, %d skipped, %d failed",
            accrual_date, summary.eligible, summary.processed, summary.skipped, summary.failed,
        )
        return summary

    @staticmethod
    async def get_accrual_history(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: Optional[int] = None,
    ) -> Sequence[LeaveAccrual]:
        query = (
            select(LeaveAccrual)
            .where(LeaveAccrual.employee_id == employee_id)
            .order_by(LeaveAccrual.accrual_date.desc(), LeaveAccrual.leave_type)
        )
        if year is not None:
            query = query.where(LeaveAccrual.year == year)
        result = await db.execute(query)
        return result.scalars().all()
