"""Leave request business-rule validator and the balance lookup it depends on.

Checks run in a fixed order and stop at the first hard failure:

  1. date sanity              (hard)
  2. day count                (0.5 / hours ÷ 8 / working days)
  3. policy + balance         (no policy is hard; overrun is priced as a salary
                               deduction, or hard in strict-balance mode)
  5. notice period            (warning)
  6. holiday conflict         (warning)
  7. overlapping requests     (warning, or hard in strict overlap mode)
  8. max consecutive days     (warning)
  9. emergency reason         (warning)
 10. parental once per year   (warning)

The probation pay override (step 4) belongs to the create path in
``LeaveService`` because it only matters once a record is written.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.common.constants import (
    PARENTAL_LEAVE_TYPES,
    LeaveStatus,
    OverlapMode,
)
from hr_leave.common.exceptions import AppException, ServiceError
from hr_leave.config import settings
from hr_leave.employees.models import Employee
from hr_leave.employees.service import EmployeeService
from hr_leave.holidays.service import HolidayService
from hr_leave.holidays.working_days import count_working_days
from hr_leave.leave import rules
from hr_leave.leave.balance import ZERO, compute_balance, days_served, round2
from hr_leave.leave.models import LeavePolicy, LeaveRequest
from hr_leave.leave.payroll import DailyRateProvider, FlatDailyRateProvider
from hr_leave.leave.policies import PolicyService
from hr_leave.leave.schemas import (
    LeaveBalanceOut,
    LeaveValidationRequest,
    LeaveValidationResult,
    SalaryDeductionInfo,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)


# ═════════════════════════════════════════════════════════════════════
# Balance lookup
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceService:
    """Loads the rows the calculator needs and runs it."""

    @staticmethod
    async def get_requests_for_year(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
    ) -> Sequence[LeaveRequest]:
        """Requests submitted during *year*, any status."""
        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.employee_id == employee_id,
                extract("year", LeaveRequest.submitted_at) == year,
            )
        )
        return result.scalars().all()

    @staticmethod
    async def compute_for_employee(
        db: AsyncSession,
        employee: Employee,
        today: date,
    ):
        policies = await PolicyService.get_active_policies(db, employee.employee_type)
        requests = await LeaveBalanceService.get_requests_for_year(db, employee.id, today.year)
        return compute_balance(
            employee,
            policies,
            requests,
            today,
            legacy_fallback=settings.LEAVE_POLICY_LEGACY_FALLBACK,
        )

    @staticmethod
    async def get_leave_balance(
        db: AsyncSession,
        employee_id: uuid.UUID,
        today: Optional[date] = None,
    ) -> LeaveBalanceOut:
        """Balance for every applicable leave type as of *today* (defaults to now)."""
        today = today or date.today()
        try:
            employee = await EmployeeService.get_employee(db, employee_id)
            balances = await LeaveBalanceService.compute_for_employee(db, employee, today)
        except AppException:
            raise
        except Exception as exc:
            logger.exception("Balance calculation failed for employee %s", employee_id)
            raise ServiceError(f"Failed to calculate leave balance: {exc}") from exc

        return LeaveBalanceOut(
            employee_id=employee.id,
            as_of=today,
            days_served=days_served(employee.join_date, today),
            probation_status=employee.probation_status,
            in_probation=employee.in_probation,
            balances=list(balances.values()),
        )


# ═════════════════════════════════════════════════════════════════════
# Validator
# ═════════════════════════════════════════════════════════════════════


@dataclass
class ValidationOutcome:
    """Validator result plus the rows the create path needs afterwards."""

    result: LeaveValidationResult
    employee: Employee
    policy: Optional[LeavePolicy] = None
    overlapping: list[LeaveRequest] = field(default_factory=list)
    # Request field a hard failure is reported against
    error_field: Optional[str] = None
    # Salary-deduction warning, dropped by callers that waive the deduction
    deduction_warning: Optional[str] = None


def overlap_message(existing: LeaveRequest) -> str:
    return (
        f"You already have a {existing.status.value} leave request for this period. "
        f"Existing request: {existing.start_date.isoformat()} to "
        f"{existing.end_date.isoformat()}. Please choose different dates or "
        f"wait for the existing request to be processed."
    )


class LeaveValidator:

    @staticmethod
    async def find_overlapping_requests(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> list[LeaveRequest]:
        """Pending or approved requests intersecting [start, end]."""
        result = await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status.in_(ACTIVE_STATUSES),
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
            )
            .order_by(LeaveRequest.start_date)
        )
        return list(result.scalars().all())

    @staticmethod
    async def has_approved_leave_in_year(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_types: Iterable[str],
        year: int,
    ) -> bool:
        """True when any of *leave_types* was approved for a start date in *year*."""
        result = await db.execute(
            select(LeaveRequest.id).where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.leave_type.in_(tuple(leave_types)),
                LeaveRequest.status == LeaveStatus.approved,
                extract("year", LeaveRequest.start_date) == year,
            )
        )
        return result.first() is not None

    @staticmethod
    async def validate(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveValidationRequest,
        *,
        rate_provider: Optional[DailyRateProvider] = None,
        strict_balance: Optional[bool] = None,
        overlap_mode: OverlapMode = OverlapMode.warn,
        today: Optional[date] = None,
    ) -> LeaveValidationResult:
        outcome = await LeaveValidator.evaluate(
            db,
            employee_id,
            data,
            rate_provider=rate_provider,
            strict_balance=strict_balance,
            overlap_mode=overlap_mode,
            today=today,
        )
        return outcome.result

    @staticmethod
    async def evaluate(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveValidationRequest,
        *,
        rate_provider: Optional[DailyRateProvider] = None,
        strict_balance: Optional[bool] = None,
        overlap_mode: OverlapMode = OverlapMode.warn,
        today: Optional[date] = None,
    ) -> ValidationOutcome:
        """Run every rule; unexpected errors surface as ``ServiceError``."""
        try:
            return await LeaveValidator._evaluate(
                db,
                employee_id,
                data,
                rate_provider=rate_provider or FlatDailyRateProvider(),
                strict_balance=(
                    settings.LEAVE_STRICT_BALANCE_LIMIT
                    if strict_balance is None else strict_balance
                ),
                overlap_mode=overlap_mode,
                today=today or date.today(),
            )
        except AppException:
            raise
        except Exception as exc:
            logger.exception("Leave validation failed for employee %s", employee_id)
            raise ServiceError(f"Failed to validate leave request: {exc}") from exc

    @staticmethod
    async def _evaluate(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveValidationRequest,
        *,
        rate_provider: DailyRateProvider,
        strict_balance: bool,
        overlap_mode: OverlapMode,
        today: date,
    ) -> ValidationOutcome:
        employee = await EmployeeService.get_employee(db, employee_id)
        warnings: list[str] = []
        suggestions: list[str] = []

        def reject(
            error_field: str,
            message: str,
            total_days: Decimal = ZERO,
            **extra,
        ) -> ValidationOutcome:
            return ValidationOutcome(
                result=LeaveValidationResult(
                    is_valid=False,
                    can_submit=False,
                    message=message,
                    total_days=total_days,
                    warnings=warnings,
                    suggestions=suggestions,
                ),
                employee=employee,
                error_field=error_field,
                **extra,
            )

        # 1. Date sanity
        if data.end_date < data.start_date:
            return reject("end_date", "End date cannot be before start date")
        if (data.end_date - data.start_date).days >= rules.MAX_REQUEST_SPAN_DAYS:
            return reject(
                "end_date",
                f"A leave request cannot span more than {rules.MAX_REQUEST_SPAN_DAYS} days",
            )

        # 2. Day count
        holidays = await HolidayService.get_active_holidays(db, data.start_date, data.end_date)
        working_days = count_working_days(
            data.start_date, data.end_date, (h.date for h in holidays),
        )
        total_days = rules.requested_days(
            is_half_day=data.is_half_day,
            short_leave_hours=data.short_leave_hours,
            working_days=working_days,
            hours_per_day=settings.HOURS_PER_DAY,
        )
        if total_days == 0:
            warnings.append("The selected dates contain no working days.")

        # 3. Policy and balance
        balances = await LeaveBalanceService.compute_for_employee(db, employee, today)
        policy = await PolicyService.get_policy_for_leave_type(db, employee, data.leave_type)
        if policy is None or data.leave_type not in balances:
            return reject(
                "leave_type",
                f"No active policy found for {data.leave_type} leave",
                total_days,
            )

        remaining = balances[data.leave_type].remaining
        salary_deduction: Optional[SalaryDeductionInfo] = None
        deduction_warning: Optional[str] = None
        if total_days > remaining:
            if strict_balance:
                return reject(
                    "total_days",
                    f"Leave limit reached. You have {remaining} days remaining, but "
                    f"requested {total_days} days. Please reduce the number of days "
                    f"or contact HR.",
                    total_days,
                    policy=policy,
                )
            excess = total_days - remaining
            daily_rate = round2(await rate_provider.get_daily_rate(db, employee))
            salary_deduction = SalaryDeductionInfo(
                days=excess,
                daily_rate=daily_rate,
                amount=round2(excess * daily_rate),
            )
            deduction_warning = (
                f"Requested {total_days} days exceeds your remaining balance of "
                f"{remaining} days. {excess} day(s) will be deducted from salary "
                f"({salary_deduction.amount})."
            )
            warnings.append(deduction_warning)

        # 5. Notice period
        notice_warning = rules.check_notice_period(data.leave_type, data.start_date, today)
        if notice_warning:
            warnings.append(notice_warning)
            required = rules.NOTICE_REQUIREMENTS.get(data.leave_type, rules.DEFAULT_NOTICE_DAYS)
            suggestions.append(f"Apply at least {required} day(s) in advance next time.")

        # 6. Holidays inside the range
        conflict_with_holidays = rules.format_holiday_conflicts(holidays)
        if conflict_with_holidays:
            warnings.append(
                "Your leave period includes holiday(s): " + ", ".join(conflict_with_holidays)
            )

        # 7. Overlap with other pending / approved requests
        overlapping = await LeaveValidator.find_overlapping_requests(
            db, employee.id, data.start_date, data.end_date,
        )
        if overlapping:
            if overlap_mode == OverlapMode.strict:
                return reject(
                    "start_date",
                    overlap_message(overlapping[0]),
                    total_days,
                    policy=policy,
                    overlapping=overlapping,
                )
            warnings.append(overlap_message(overlapping[0]))

        # 8. Duration
        duration_warning = rules.check_max_consecutive_days(data.leave_type, total_days)
        if duration_warning:
            warnings.append(duration_warning)
            suggestions.append("Consider splitting the leave into shorter periods.")

        # 9. Emergency reason
        reason_warning = rules.check_emergency_reason(data.leave_type, data.reason)
        if reason_warning:
            warnings.append(reason_warning)

        # 10. One parental leave (maternity or paternity) per calendar year
        if data.leave_type in PARENTAL_LEAVE_TYPES and await LeaveValidator.has_approved_leave_in_year(
            db, employee.id, PARENTAL_LEAVE_TYPES, data.start_date.year,
        ):
            warnings.append(
                f"You have already taken parental leave in {data.start_date.year}. "
                f"Only one {data.leave_type} leave is allowed per year."
            )

        result = LeaveValidationResult(
            is_valid=True,
            can_submit=True,
            requires_approval=policy.requires_approval,
            total_days=total_days,
            warnings=warnings,
            suggestions=suggestions,
            salary_deduction=salary_deduction,
            conflict_with_holidays=conflict_with_holidays,
            conflict_with_other_requests=bool(overlapping),
            estimated_approval_time=rules.estimate_approval_time(data.leave_type, total_days),
            priority=rules.determine_priority(data.leave_type, total_days),
        )
        return ValidationOutcome(
            result=result,
            employee=employee,
            policy=policy,
            overlapping=overlapping,
            deduction_warning=deduction_warning,
        )
