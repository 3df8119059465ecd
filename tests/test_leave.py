"""Leave module test suite: validator rules, the create path (overlap
rejection, salary deductions, probation pay), cancellation, and the
approve/reject workflow.

Tests run against SQLite via the shared conftest.py fixtures.
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.common.audit import AuditTrail
from hr_leave.common.constants import LeavePriority, LeaveStatus, ProbationStatus, UserRole
from hr_leave.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hr_leave.leave.models import LeaveRequest, SalaryDeduction
from hr_leave.leave.payroll import FlatDailyRateProvider
from hr_leave.leave.schemas import LeaveRequestCreate, LeaveValidationRequest
from hr_leave.leave.service import LeaveService
from hr_leave.leave.validator import LeaveBalanceService, LeaveValidator
from hr_leave.notifications.models import Notification
from tests.conftest import (
    make_employee,
    make_holiday,
    make_leave_request,
    make_policy,
    next_weekday,
)


# ═════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════


def _week(min_days: int = 14) -> tuple[date, date]:
    """Monday..Friday of a week far enough ahead to satisfy notice rules."""
    monday = next_weekday(0, min_days=min_days)
    return monday, monday + timedelta(days=4)


def _request(start: date, end: date, leave_type: str = "annual", **kwargs) -> LeaveRequestCreate:
    return LeaveRequestCreate(
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        reason=kwargs.pop("reason", "Family trip"),
        **kwargs,
    )


async def _use_all_but_three_days(db: AsyncSession, employee) -> None:
    """Joined 400 days ago on 25/year → 27.40 earned; leave 3.00 remaining."""
    today = date.today()
    await make_leave_request(
        db,
        employee.id,
        start_date=today - timedelta(days=60),
        end_date=today - timedelta(days=40),
        total_days="24.40",
        status=LeaveStatus.approved,
    )


# ═════════════════════════════════════════════════════════════════════
# Validator (advisory)
# ═════════════════════════════════════════════════════════════════════


class TestValidator:

    async def test_end_before_start_is_rejected(self, db, employee, annual_policy):
        start, end = _week()
        data = LeaveValidationRequest(leave_type="annual", start_date=end, end_date=start)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is False
        assert result.can_submit is False
        assert result.message == "End date cannot be before start date"
        assert result.total_days == Decimal("0")

    async def test_valid_week_of_annual_leave(self, db, employee, annual_policy):
        start, end = _week()
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is True
        assert result.can_submit is True
        assert result.total_days == Decimal("5")
        assert result.salary_deduction is None
        assert result.warnings == []
        assert result.priority == LeavePriority.low
        assert result.estimated_approval_time == "1-3 business days"

    async def test_missing_policy_is_rejected(self, db, employee, annual_policy):
        start, end = _week()
        data = LeaveValidationRequest(leave_type="sick", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is False
        assert result.message == "No active policy found for sick leave"

    async def test_unclassified_employee_has_no_policy(self, db, annual_policy):
        employee = await make_employee(db, employee_type=None)
        start, end = _week()
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is False
        assert "No active policy" in result.message

    async def test_excess_days_priced_as_salary_deduction(self, db, employee, annual_policy):
        """Remaining 3, request 5 → valid with a 2-day deduction at the daily rate."""
        await _use_all_but_three_days(db, employee)
        start, end = _week()
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(
            db, employee.id, data,
            rate_provider=FlatDailyRateProvider(1500),
            strict_balance=False,
        )

        assert result.is_valid is True
        assert result.salary_deduction is not None
        assert result.salary_deduction.days == Decimal("2")
        assert result.salary_deduction.daily_rate == Decimal("1500")
        assert result.salary_deduction.amount == Decimal("3000")
        assert any("will be deducted from salary" in w for w in result.warnings)

    async def test_strict_balance_rejects_excess(self, db, employee, annual_policy):
        await _use_all_but_three_days(db, employee)
        start, end = _week()
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data, strict_balance=True)

        assert result.is_valid is False
        assert result.message.startswith("Leave limit reached. You have 3.00 days remaining")

    async def test_overlap_is_only_a_warning(self, db, employee, annual_policy):
        start, end = _week()
        await make_leave_request(db, employee.id, start_date=start, end_date=start, total_days="1")
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is True
        assert result.conflict_with_other_requests is True
        assert any("You already have a pending leave request" in w for w in result.warnings)

    async def test_rejected_requests_do_not_overlap(self, db, employee, annual_policy):
        start, end = _week()
        await make_leave_request(
            db, employee.id, start_date=start, end_date=end, status=LeaveStatus.rejected,
        )
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.conflict_with_other_requests is False

    async def test_holidays_reported_and_not_counted(self, db, employee, annual_policy):
        start, end = _week()
        await make_holiday(db, "Founders Day", start + timedelta(days=2))
        await make_holiday(db, "Retired Holiday", start + timedelta(days=3), is_active=False)
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is True
        assert result.total_days == Decimal("4")
        assert result.conflict_with_holidays == [
            f"Founders Day ({(start + timedelta(days=2)).isoformat()})",
        ]

    async def test_short_notice_is_a_warning(self, db, employee, annual_policy):
        start = date.today() + timedelta(days=2)
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=start)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is True
        assert any("requires 7 day(s) advance notice" in w for w in result.warnings)
        assert "Apply at least 7 day(s) in advance next time." in result.suggestions

    async def test_weekend_only_request_warns_zero_days(self, db, employee, annual_policy):
        saturday = next_weekday(5, min_days=14)
        data = LeaveValidationRequest(
            leave_type="annual", start_date=saturday, end_date=saturday + timedelta(days=1),
        )

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is True
        assert result.total_days == Decimal("0")
        assert "The selected dates contain no working days." in result.warnings

    async def test_half_day_and_short_leave(self, db, employee, annual_policy):
        start, _ = _week()
        half = LeaveValidationRequest(
            leave_type="annual", start_date=start, end_date=start, is_half_day=True,
        )
        short = LeaveValidationRequest(
            leave_type="annual", start_date=start, end_date=start,
            short_leave_hours=Decimal("2"),
        )

        assert (await LeaveValidator.validate(db, employee.id, half)).total_days == Decimal("0.5")
        assert (await LeaveValidator.validate(db, employee.id, short)).total_days == Decimal("0.25")

    async def test_emergency_reason_without_keyword_warns(self, db, employee):
        await make_policy(db, "emergency", "5")
        start = next_weekday(0)
        data = LeaveValidationRequest(
            leave_type="emergency", start_date=start, end_date=start, reason="Need a day",
        )

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is True
        assert result.priority == LeavePriority.high
        assert any("Emergency leave reason" in w for w in result.warnings)

    async def test_long_casual_leave_warns(self, db, employee):
        await make_policy(db, "casual", "12")
        start, end = _week()
        data = LeaveValidationRequest(leave_type="casual", start_date=start, end_date=end)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert any("recommended maximum of 3" in w for w in result.warnings)
        assert "Consider splitting the leave into shorter periods." in result.suggestions

    async def test_second_parental_leave_in_year_warns(self, db, employee):
        await make_policy(db, "paternity", "15")
        start = next_weekday(0, min_days=30)
        await make_leave_request(
            db, employee.id,
            leave_type="paternity",
            start_date=date(start.year, 1, 1),
            end_date=date(start.year, 1, 1),
            status=LeaveStatus.approved,
        )
        data = LeaveValidationRequest(leave_type="paternity", start_date=start, end_date=start)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert (
            f"You have already taken parental leave in {start.year}. "
            "Only one paternity leave is allowed per year."
        ) in result.warnings

    async def test_paternity_after_approved_maternity_warns(self, db, employee):
        await make_policy(db, "paternity", "15")
        start = next_weekday(0, min_days=30)
        await make_leave_request(
            db, employee.id,
            leave_type="maternity",
            start_date=date(start.year, 1, 1),
            end_date=date(start.year, 1, 1),
            status=LeaveStatus.approved,
        )
        data = LeaveValidationRequest(leave_type="paternity", start_date=start, end_date=start)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert any(w.startswith("You have already taken parental leave") for w in result.warnings)

    async def test_parental_check_ignores_other_years_and_types(self, db, employee):
        await make_policy(db, "paternity", "15")
        start = next_weekday(0, min_days=30)
        await make_leave_request(
            db, employee.id,
            leave_type="maternity",
            start_date=date(start.year - 1, 6, 1),
            end_date=date(start.year - 1, 6, 1),
            status=LeaveStatus.approved,
        )
        await make_leave_request(
            db, employee.id,
            leave_type="annual",
            start_date=date(start.year, 1, 1),
            end_date=date(start.year, 1, 1),
            status=LeaveStatus.approved,
        )
        data = LeaveValidationRequest(leave_type="paternity", start_date=start, end_date=start)

        result = await LeaveValidator.validate(db, employee.id, data)

        assert not any("parental leave" in w for w in result.warnings)

    async def test_range_ending_on_last_representable_date(self, db, employee, annual_policy):
        data = LeaveValidationRequest(
            leave_type="annual", start_date=date.max - timedelta(days=6), end_date=date.max,
        )

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is True
        # any seven consecutive days hold five weekdays
        assert result.total_days == Decimal("5")

    async def test_request_spanning_more_than_a_year_is_rejected(self, db, employee, annual_policy):
        start = next_weekday(0, min_days=14)
        data = LeaveValidationRequest(
            leave_type="annual", start_date=start, end_date=start + timedelta(days=366),
        )

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is False
        assert result.message == "A leave request cannot span more than 366 days"
        assert result.total_days == Decimal("0")

    async def test_century_long_request_is_rejected(self, db, employee, annual_policy):
        data = LeaveValidationRequest(
            leave_type="annual", start_date=date(2026, 1, 1), end_date=date(9999, 12, 31),
        )

        result = await LeaveValidator.validate(db, employee.id, data)

        assert result.is_valid is False

    async def test_unknown_employee(self, db):
        start, end = _week()
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)
        with pytest.raises(NotFoundException):
            await LeaveValidator.validate(db, uuid.uuid4(), data)

    async def test_validation_does_not_persist(self, db, employee, annual_policy):
        start, end = _week()
        data = LeaveValidationRequest(leave_type="annual", start_date=start, end_date=end)
        await LeaveValidator.validate(db, employee.id, data)

        rows = (await db.execute(select(LeaveRequest))).scalars().all()
        assert rows == []


# ═════════════════════════════════════════════════════════════════════
# Create path
# ═════════════════════════════════════════════════════════════════════


class TestCreateLeaveRequest:

    async def test_create_pending_request(self, db, employee, manager, annual_policy):
        start, end = _week()

        result = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        request = result.request
        assert request.status == LeaveStatus.pending
        assert request.total_days == Decimal("5")
        assert request.is_paid is True
        assert result.salary_deduction is None

        notifications = (
            await db.execute(select(Notification).where(Notification.recipient_id == manager.id))
        ).scalars().all()
        assert len(notifications) == 1
        assert notifications[0].title == "New Leave Request"

        audit = (
            await db.execute(select(AuditTrail).where(AuditTrail.entity_id == request.id))
        ).scalars().all()
        assert [a.action for a in audit] == ["create"]

    async def test_overlapping_submission_is_rejected(self, db, employee, annual_policy):
        """Second overlapping submission fails naming the first request's range and status."""
        start, end = _week()
        await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.create_leave_request(
                db, employee.id, _request(end, end + timedelta(days=3)),
            )

        message = exc_info.value.errors["start_date"][0]
        assert "pending" in message
        assert f"{start.isoformat()} to {end.isoformat()}" in message

    async def test_end_before_start_rejected(self, db, employee, annual_policy):
        start, end = _week()
        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.create_leave_request(db, employee.id, _request(end, start))
        assert exc_info.value.errors == {"end_date": ["End date cannot be before start date"]}

    async def test_missing_policy_rejected(self, db, employee):
        start, end = _week()
        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.create_leave_request(db, employee.id, _request(start, end))
        assert "leave_type" in exc_info.value.errors

    async def test_excess_records_salary_deduction(self, db, employee, annual_policy):
        await _use_all_but_three_days(db, employee)
        start, end = _week()

        result = await LeaveService.create_leave_request(
            db, employee.id, _request(start, end),
            rate_provider=FlatDailyRateProvider(1000),
        )

        assert result.request.is_paid is False
        assert result.salary_deduction.amount == Decimal("2000")
        assert any("day(s) will be deducted from salary" in w for w in result.warnings)

        deduction = (await db.execute(select(SalaryDeduction))).scalars().one()
        assert deduction.leave_request_id == result.request.id
        assert deduction.days == Decimal("2")
        assert deduction.amount == Decimal("2000")
        assert deduction.is_void is False

    async def test_strict_balance_blocks_create(self, db, employee, annual_policy):
        await _use_all_but_three_days(db, employee)
        start, end = _week()
        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.create_leave_request(
                db, employee.id, _request(start, end), strict_balance=True,
            )
        assert "total_days" in exc_info.value.errors

    async def test_probation_leave_is_unpaid_without_deduction(self, db, annual_policy):
        today = date.today()
        employee = await make_employee(
            db,
            join_date=today - timedelta(days=30),
            probation_status=ProbationStatus.active,
            probation_start_date=today - timedelta(days=30),
            probation_end_date=today + timedelta(days=150),
        )
        start, end = _week()

        result = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        assert result.request.is_paid is False
        assert result.salary_deduction is None
        assert "This leave falls within your probation period and will be unpaid." in result.warnings
        assert not any("deducted from salary" in w for w in result.warnings)
        assert (await db.execute(select(SalaryDeduction))).scalars().all() == []

    async def test_unpaid_policy_records_no_deduction(self, db, employee):
        await make_policy(db, "unpaid", "0", is_paid=False)
        start, end = _week()

        result = await LeaveService.create_leave_request(
            db, employee.id, _request(start, end, leave_type="unpaid"),
        )

        assert result.request.is_paid is False
        assert result.salary_deduction is None
        assert not any("deducted from salary" in w for w in result.warnings)
        assert (await db.execute(select(SalaryDeduction))).scalars().all() == []

    async def test_pending_request_reduces_remaining(self, db, employee, annual_policy):
        before = await LeaveBalanceService.get_leave_balance(db, employee.id)
        start, end = _week()
        await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        after = await LeaveBalanceService.get_leave_balance(db, employee.id)

        annual_before = before.balances[0]
        annual_after = after.balances[0]
        assert annual_after.pending == Decimal("5.00")
        assert annual_after.remaining == annual_before.remaining - Decimal("5")

    async def test_after_rejection_dates_can_be_reused(self, db, employee, manager, annual_policy):
        start, end = _week()
        first = await LeaveService.create_leave_request(db, employee.id, _request(start, end))
        await LeaveService.reject_leave_request(db, first.request.id, manager, "Busy week")

        second = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        assert second.request.status == LeaveStatus.pending


# ═════════════════════════════════════════════════════════════════════
# Cancel / approve / reject
# ═════════════════════════════════════════════════════════════════════


class TestLeaveLifecycle:

    async def test_cancel_pending_request(self, db, employee, annual_policy):
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        await LeaveService.cancel_leave_request(db, employee.id, created.request.id)

        assert await db.get(LeaveRequest, created.request.id) is None

    async def test_cancel_processed_request_fails(self, db, employee, manager, annual_policy):
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))
        await LeaveService.approve_leave_request(db, created.request.id, manager)

        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.cancel_leave_request(db, employee.id, created.request.id)
        assert exc_info.value.detail == "Cannot cancel leave request that has been processed"

    async def test_cancel_someone_elses_request_forbidden(self, db, employee, manager, annual_policy):
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        with pytest.raises(ForbiddenException):
            await LeaveService.cancel_leave_request(db, manager.id, created.request.id)

    async def test_cancel_with_deduction_removes_it(self, db, employee, annual_policy):
        await _use_all_but_three_days(db, employee)
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        await LeaveService.cancel_leave_request(db, employee.id, created.request.id)

        assert (await db.execute(select(SalaryDeduction))).scalars().all() == []

    async def test_manager_approves(self, db, employee, manager, annual_policy):
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        leave = await LeaveService.approve_leave_request(db, created.request.id, manager)

        assert leave.status == LeaveStatus.approved
        assert leave.approved_by == manager.id
        assert leave.approved_at is not None

        balance = await LeaveBalanceService.get_leave_balance(db, employee.id)
        assert balance.balances[0].used == Decimal("5.00")
        assert balance.balances[0].pending == Decimal("0.00")

        titles = (
            await db.execute(
                select(Notification.title).where(Notification.recipient_id == employee.id)
            )
        ).scalars().all()
        assert "Leave Request Approved" in titles

    async def test_cannot_approve_own_request(self, db, manager, annual_policy):
        start, end = _week()
        created = await LeaveService.create_leave_request(db, manager.id, _request(start, end))

        with pytest.raises(ForbiddenException):
            await LeaveService.approve_leave_request(db, created.request.id, manager)

    async def test_other_manager_cannot_approve(self, db, employee, annual_policy):
        outsider = await make_employee(db, first_name="Otto", role=UserRole.manager)
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        with pytest.raises(ForbiddenException):
            await LeaveService.approve_leave_request(db, created.request.id, outsider)

    async def test_admin_can_approve_anyone(self, db, employee, admin, annual_policy):
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        leave = await LeaveService.approve_leave_request(db, created.request.id, admin)

        assert leave.status == LeaveStatus.approved

    async def test_approve_twice_fails(self, db, employee, manager, annual_policy):
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))
        await LeaveService.approve_leave_request(db, created.request.id, manager)

        with pytest.raises(ValidationException):
            await LeaveService.approve_leave_request(db, created.request.id, manager)

    async def test_reject_voids_deduction(self, db, employee, manager, annual_policy):
        await _use_all_but_three_days(db, employee)
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        leave = await LeaveService.reject_leave_request(
            db, created.request.id, manager, "Project deadline",
        )

        assert leave.status == LeaveStatus.rejected
        assert leave.rejection_reason == "Project deadline"
        deduction = (await db.execute(select(SalaryDeduction))).scalars().one()
        assert deduction.is_void is True

    async def test_get_request_visibility(self, db, employee, manager, annual_policy):
        outsider = await make_employee(db, first_name="Nosy")
        start, end = _week()
        created = await LeaveService.create_leave_request(db, employee.id, _request(start, end))

        assert (await LeaveService.get_leave_request(db, created.request.id, employee)).id == created.request.id
        assert (await LeaveService.get_leave_request(db, created.request.id, manager)).id == created.request.id
        with pytest.raises(ForbiddenException):
            await LeaveService.get_leave_request(db, created.request.id, outsider)
