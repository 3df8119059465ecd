"""Leave request lifecycle: submit, cancel, approve, reject, and listings."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import extract, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hr_leave.common.audit import create_audit_entry
from hr_leave.common.constants import LeaveStatus, OverlapMode, UserRole
from hr_leave.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hr_leave.common.pagination import PaginationParams, paginate
from hr_leave.employees.models import Employee
from hr_leave.employees.schemas import EmployeeOut, TeamMemberOut
from hr_leave.employees.service import EmployeeService
from hr_leave.leave import rules
from hr_leave.leave.models import LeaveRequest, SalaryDeduction
from hr_leave.leave.payroll import DailyRateProvider
from hr_leave.leave.schemas import (
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestOut,
    LeaveRequestWithEmployee,
    LeaveSubmissionOut,
    TeamLeaveRequestListResponse,
)
from hr_leave.leave.validator import LeaveBalanceService, LeaveValidator
from hr_leave.notifications.service import (
    notify_leave_approved,
    notify_leave_rejected,
    notify_leave_submitted,
)

logger = logging.getLogger(__name__)

# PostgreSQL exclusion constraint on overlapping pending/approved ranges
OVERLAP_CONSTRAINT = "leave_requests_no_overlap"


def _request_snapshot(leave: LeaveRequest) -> dict:
    return {
        "leave_type": leave.leave_type,
        "start_date": leave.start_date.isoformat(),
        "end_date": leave.end_date.isoformat(),
        "total_days": str(leave.total_days),
        "status": leave.status.value,
        "is_paid": leave.is_paid,
    }


class LeaveService:

    # ── Lookup ──────────────────────────────────────────────────────

    @staticmethod
    async def _get_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        leave = await db.get(LeaveRequest, request_id)
        if leave is None:
            raise NotFoundException("LeaveRequest", request_id)
        return leave

    @staticmethod
    async def get_leave_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
    ) -> LeaveRequest:
        """Fetch a request visible to *actor* (owner, their manager, or an admin)."""
        leave = await LeaveService._get_request(db, request_id)
        if leave.employee_id != actor.id:
            owner = await EmployeeService.get_employee(db, leave.employee_id)
            EmployeeService.ensure_can_manage(actor, owner)
        return leave

    # ── Submit ──────────────────────────────────────────────────────

    @staticmethod
    async def create_leave_request(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveRequestCreate,
        *,
        rate_provider: Optional[DailyRateProvider] = None,
        strict_balance: Optional[bool] = None,
        today: Optional[date] = None,
    ) -> LeaveSubmissionOut:
        """Validate and persist a new pending request.

        The employee row is locked first so two submissions for the same
        person cannot both pass the overlap check before either is written.
        Overlaps are a hard rejection here, unlike the advisory validator.
        """
        employee = await EmployeeService.get_employee(db, employee_id, for_update=True)

        outcome = await LeaveValidator.evaluate(
            db,
            employee.id,
            data,
            rate_provider=rate_provider,
            strict_balance=strict_balance,
            overlap_mode=OverlapMode.strict,
            today=today,
        )
        result = outcome.result
        if not result.is_valid:
            raise ValidationException({outcome.error_field or "leave_request": [result.message]})

        policy = outcome.policy
        warnings = list(result.warnings)

        in_probation = rules.leave_overlaps_probation(employee, data.start_date, data.end_date)
        if in_probation:
            warnings.append("This leave falls within your probation period and will be unpaid.")

        # Deductions only apply to leave that would otherwise have been paid
        otherwise_paid = policy.is_paid and not in_probation
        exceeds_balance = result.salary_deduction is not None
        record_deduction = otherwise_paid and exceeds_balance
        if not record_deduction and outcome.deduction_warning in warnings:
            warnings.remove(outcome.deduction_warning)

        leave = LeaveRequest(
            employee_id=employee.id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            total_days=result.total_days,
            reason=data.reason,
            is_half_day=data.is_half_day,
            half_day_period=data.half_day_period,
            short_leave_hours=data.short_leave_hours,
            status=LeaveStatus.pending,
            priority=result.priority,
            is_paid=otherwise_paid and not exceeds_balance,
            submitted_at=datetime.now(timezone.utc),
        )
        db.add(leave)
        try:
            await db.flush()
        except IntegrityError as exc:
            if OVERLAP_CONSTRAINT not in str(exc.orig):
                raise
            raise ValidationException(
                {"start_date": ["You already have a leave request for this period."]}
            ) from exc

        if record_deduction:
            deduction = result.salary_deduction
            db.add(
                SalaryDeduction(
                    leave_request_id=leave.id,
                    employee_id=employee.id,
                    days=deduction.days,
                    daily_rate=deduction.daily_rate,
                    amount=deduction.amount,
                )
            )
            await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=employee.id,
            new_values=_request_snapshot(leave),
        )

        if employee.reporting_manager_id is not None:
            await notify_leave_submitted(db, leave, employee.reporting_manager_id)

        logger.info(
            "Leave request %s submitted by %s: %s %s..%s (%s days, paid=%s)",
            leave.id, employee.employee_code, leave.leave_type,
            leave.start_date, leave.end_date, leave.total_days, leave.is_paid,
        )

        return LeaveSubmissionOut(
            request=LeaveRequestOut.model_validate(leave),
            warnings=warnings,
            suggestions=result.suggestions,
            salary_deduction=result.salary_deduction if record_deduction else None,
            estimated_approval_time=result.estimated_approval_time,
        )

    # ── Cancel ──────────────────────────────────────────────────────

    @staticmethod
    async def cancel_leave_request(
        db: AsyncSession,
        employee_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> None:
        """Delete the caller's own request while it is still pending."""
        leave = await LeaveService._get_request(db, request_id)
        if leave.employee_id != employee_id:
            raise ForbiddenException("You can only cancel your own leave requests.")
        if leave.status != LeaveStatus.pending:
            raise ValidationException(
                {"status": ["Cannot cancel leave request that has been processed"]}
            )

        snapshot = _request_snapshot(leave)
        await db.delete(leave)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_request",
            entity_id=request_id,
            actor_id=employee_id,
            old_values=snapshot,
        )
        logger.info("Leave request %s cancelled by its owner", request_id)

    # ── Approve / reject ────────────────────────────────────────────

    @staticmethod
    async def _get_for_decision(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
        verb: str,
    ) -> LeaveRequest:
        leave = await LeaveService._get_request(db, request_id)
        if leave.employee_id == actor.id:
            raise ForbiddenException(f"You cannot {verb} your own leave request.")

        owner = await EmployeeService.get_employee(db, leave.employee_id)
        EmployeeService.ensure_can_manage(actor, owner)

        if leave.status != LeaveStatus.pending:
            raise ValidationException(
                {"status": [f"Only pending requests can be {verb}d (current: {leave.status.value})"]}
            )
        return leave

    @staticmethod
    async def approve_leave_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
    ) -> LeaveRequest:
        leave = await LeaveService._get_for_decision(db, request_id, actor, "approve")
        old_values = _request_snapshot(leave)

        leave.status = LeaveStatus.approved
        leave.approved_by = actor.id
        leave.approved_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="approve",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_request_snapshot(leave),
        )
        await notify_leave_approved(db, leave)
        logger.info("Leave request %s approved by %s", leave.id, actor.employee_code)
        return leave

    @staticmethod
    async def reject_leave_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
        reason: str,
    ) -> LeaveRequest:
        leave = await LeaveService._get_for_decision(db, request_id, actor, "reject")
        old_values = _request_snapshot(leave)

        leave.status = LeaveStatus.rejected
        leave.rejection_reason = reason
        leave.approved_by = actor.id
        leave.approved_at = datetime.now(timezone.utc)

        deduction = (
            await db.execute(
                select(SalaryDeduction).where(SalaryDeduction.leave_request_id == leave.id)
            )
        ).scalars().first()
        if deduction is not None:
            deduction.is_void = True
        await db.flush()

        await create_audit_entry(
            db,
            action="reject",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values={**_request_snapshot(leave), "rejection_reason": reason},
        )
        await notify_leave_rejected(db, leave, reason)
        logger.info("Leave request %s rejected by %s", leave.id, actor.employee_code)
        return leave

    # ── Listings ────────────────────────────────────────────────────

    @staticmethod
    async def list_my_requests(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
        year: Optional[int] = None,
    ) -> LeaveRequestListResponse:
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.start_date.desc())
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if year is not None:
            query = query.where(extract("year", LeaveRequest.start_date) == year)

        rows, meta = await paginate(db, query, pagination, model=LeaveRequest)
        return LeaveRequestListResponse(
            data=[LeaveRequestOut.model_validate(r) for r in rows],
            meta=meta,
        )

    @staticmethod
    async def list_team_requests(
        db: AsyncSession,
        actor: Employee,
        pagination: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
    ) -> TeamLeaveRequestListResponse:
        """Requests of the actor's direct reports (all employees for admins)."""
        query = (
            select(LeaveRequest)
            .join(Employee, LeaveRequest.employee_id == Employee.id)
            .order_by(LeaveRequest.submitted_at.desc())
        )
        if actor.role != UserRole.admin:
            query = query.where(Employee.reporting_manager_id == actor.id)
        if status is not None:
            query = query.where(LeaveRequest.status == status)

        rows, meta = await paginate(
            db, query, pagination,
            model=LeaveRequest,
            options=[selectinload(LeaveRequest.employee)],
        )
        return TeamLeaveRequestListResponse(
            data=[LeaveRequestWithEmployee.model_validate(r) for r in rows],
            meta=meta,
        )

    @staticmethod
    async def get_team_balances(
        db: AsyncSession,
        actor: Employee,
        today: Optional[date] = None,
    ) -> list[TeamMemberOut]:
        """Team roster with each member's current balances."""
        today = today or date.today()
        roster = []
        for member in await EmployeeService.get_team(db, actor):
            balances = await LeaveBalanceService.compute_for_employee(db, member, today)
            roster.append(
                TeamMemberOut(
                    employee=EmployeeOut.model_validate(member),
                    in_probation=member.in_probation,
                    balances=list(balances.values()),
                )
            )
        return roster
