"""Employee directory lookups and probation lifecycle actions."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.common.audit import create_audit_entry
from hr_leave.common.constants import (
    OPEN_PROBATION_STATUSES,
    ProbationStatus,
    UserRole,
)
from hr_leave.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hr_leave.employees.models import Employee
from hr_leave.employees.schemas import ProbationUpdate

logger = logging.getLogger(__name__)


def _probation_snapshot(employee: Employee) -> dict:
    return {
        "probation_status": employee.probation_status.value if employee.probation_status else None,
        "probation_start_date": (
            employee.probation_start_date.isoformat() if employee.probation_start_date else None
        ),
        "probation_end_date": (
            employee.probation_end_date.isoformat() if employee.probation_end_date else None
        ),
        "probation_duration_days": employee.probation_duration_days,
    }


class EmployeeService:

    # ── Directory ───────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Employee:
        """Fetch an employee or raise NotFoundException.

        ``for_update`` takes a row lock so that callers can serialise
        writes per employee (a no-op on SQLite).
        """
        query = select(Employee).where(Employee.id == employee_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", employee_id)
        return employee

    @staticmethod
    async def get_direct_reports(
        db: AsyncSession,
        manager_id: uuid.UUID,
    ) -> Sequence[Employee]:
        result = await db.execute(
            select(Employee)
            .where(
                Employee.reporting_manager_id == manager_id,
                Employee.is_active.is_(True),
            )
            .order_by(Employee.first_name, Employee.last_name)
        )
        return result.scalars().all()

    @staticmethod
    async def get_team(db: AsyncSession, actor: Employee) -> Sequence[Employee]:
        """Direct reports for managers, every active employee for admins."""
        if actor.role == UserRole.admin:
            result = await db.execute(
                select(Employee)
                .where(Employee.is_active.is_(True), Employee.id != actor.id)
                .order_by(Employee.first_name, Employee.last_name)
            )
            return result.scalars().all()
        return await EmployeeService.get_direct_reports(db, actor.id)

    @staticmethod
    def ensure_can_manage(actor: Employee, employee: Employee) -> None:
        """Admins manage everyone; managers only their direct reports."""
        if actor.role == UserRole.admin:
            return
        if actor.role == UserRole.manager and employee.reporting_manager_id == actor.id:
            return
        raise ForbiddenException("You can only manage your own direct reports.")

    # ── Probation ───────────────────────────────────────────────────

    @staticmethod
    async def _get_in_open_probation(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        employee = await EmployeeService.get_employee(db, employee_id)
        if employee.probation_status not in OPEN_PROBATION_STATUSES:
            raise ValidationException(
                {"probation_status": ["Employee is not in active probation"]}
            )
        return employee

    @staticmethod
    async def complete_probation(
        db: AsyncSession,
        employee_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> Employee:
        """Close probation; earned leave becomes available immediately."""
        employee = await EmployeeService._get_in_open_probation(db, employee_id)
        old_values = _probation_snapshot(employee)

        employee.probation_status = ProbationStatus.completed
        employee.probation_completed_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="complete_probation",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=_probation_snapshot(employee),
        )
        logger.info("Probation completed for employee %s", employee.employee_code)
        return employee

    @staticmethod
    async def extend_probation(
        db: AsyncSession,
        employee_id: uuid.UUID,
        additional_days: int,
        actor_id: uuid.UUID,
    ) -> Employee:
        if additional_days <= 0:
            raise ValidationException(
                {"additional_days": ["Additional days must be a positive number"]}
            )

        employee = await EmployeeService._get_in_open_probation(db, employee_id)
        old_values = _probation_snapshot(employee)

        current_end = employee.probation_end_date or date.today()
        employee.probation_end_date = current_end + timedelta(days=additional_days)
        employee.probation_duration_days = (employee.probation_duration_days or 0) + additional_days
        employee.probation_status = ProbationStatus.extended
        await db.flush()

        await create_audit_entry(
            db,
            action="extend_probation",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=_probation_snapshot(employee),
        )
        logger.info(
            "Probation extended by %d days for employee %s (new end %s)",
            additional_days, employee.employee_code, employee.probation_end_date,
        )
        return employee

    @staticmethod
    async def terminate_probation(
        db: AsyncSession,
        employee_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> Employee:
        employee = await EmployeeService._get_in_open_probation(db, employee_id)
        old_values = _probation_snapshot(employee)

        employee.probation_status = ProbationStatus.terminated
        await db.flush()

        await create_audit_entry(
            db,
            action="terminate_probation",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=_probation_snapshot(employee),
        )
        logger.warning("Probation terminated for employee %s", employee.employee_code)
        return employee

    @staticmethod
    async def update_probation(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: ProbationUpdate,
        actor_id: uuid.UUID,
    ) -> Employee:
        """Direct edit of probation fields (admin data fixes)."""
        employee = await EmployeeService.get_employee(db, employee_id)
        old_values = _probation_snapshot(employee)

        changes = data.model_dump(exclude_unset=True)
        start = changes.get("probation_start_date", employee.probation_start_date)
        end = changes.get("probation_end_date", employee.probation_end_date)
        if start is not None and end is not None and end < start:
            raise ValidationException(
                {"probation_end_date": ["Probation end date cannot be before start date"]}
            )

        for key, value in changes.items():
            setattr(employee, key, value)
        if start is not None and end is not None:
            employee.probation_duration_days = (end - start).days
        if changes.get("probation_status") == ProbationStatus.completed and employee.probation_completed_at is None:
            employee.probation_completed_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="update_probation",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=_probation_snapshot(employee),
        )
        return employee

    @staticmethod
    async def get_probation_ending_soon(
        db: AsyncSession,
        days_ahead: int = 7,
        today: Optional[date] = None,
    ) -> Sequence[Employee]:
        """Employees in open probation whose end date falls within the next *days_ahead* days."""
        today = today or date.today()
        result = await db.execute(
            select(Employee)
            .where(
                Employee.is_active.is_(True),
                Employee.probation_status.in_(tuple(OPEN_PROBATION_STATUSES)),
                Employee.probation_end_date >= today,
                Employee.probation_end_date <= today + timedelta(days=days_ahead),
            )
            .order_by(Employee.probation_end_date)
        )
        return result.scalars().all()
