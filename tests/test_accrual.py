"""Accrual test suite: monthly accrual records, idempotence, the batch run,
and the run-once scheduler tasks invoked directly.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from hr_leave.accrual.models import LeaveAccrual
from hr_leave.accrual.scheduler import (
    ACCRUAL_JOB_ID,
    CALENDAR_JOB_ID,
    LeaveScheduler,
    run_accrual_job,
    run_calendar_job,
)
from hr_leave.accrual.service import AccrualService
from hr_leave.notifications.models import Notification
from tests.conftest import make_employee, make_holiday, make_policy

JOIN = date(2025, 3, 15)
ACCRUAL_DAY = date(2026, 10, 15)


async def _accrual_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(LeaveAccrual))).scalar_one()


class TestMonthlyAccrual:

    async def test_records_monthly_share_per_policy(self, db):
        employee = await make_employee(db, join_date=JOIN)
        await make_policy(db, "annual", "24")
        await make_policy(db, "sick", "6")

        result = await AccrualService.process_monthly_accrual(db, employee.id, ACCRUAL_DAY)

        assert result.processed is True
        assert result.message == "Leave accrual processed for 10/2026"
        by_type = {a.leave_type: a for a in result.accruals}
        assert by_type["annual"].days_accrued == Decimal("2.00")
        assert by_type["sick"].days_accrued == Decimal("0.50")
        # 24 / 365 * 579 days served
        assert by_type["annual"].total_earned == Decimal("38.07")
        assert by_type["annual"].available == Decimal("38.07")

        notes = (
            await db.execute(select(Notification).where(Notification.recipient_id == employee.id))
        ).scalars().all()
        assert len(notes) == 1
        assert "annual +2.00" in notes[0].message

    async def test_second_run_same_month_is_skipped(self, db):
        employee = await make_employee(db, join_date=JOIN)
        await make_policy(db, "annual", "24")

        await AccrualService.process_monthly_accrual(db, employee.id, ACCRUAL_DAY)
        again = await AccrualService.process_monthly_accrual(db, employee.id, ACCRUAL_DAY)

        assert again.processed is False
        assert again.message == "Leave accrual already processed for 10/2026"
        assert await _accrual_count(db) == 1

    async def test_wrong_day_is_skipped(self, db):
        employee = await make_employee(db, join_date=JOIN)
        await make_policy(db, "annual", "24")

        result = await AccrualService.process_monthly_accrual(db, employee.id, date(2026, 10, 16))

        assert result.processed is False
        assert "day 15 of the month" in result.message

    async def test_no_accrual_before_first_month(self, db):
        employee = await make_employee(db, join_date=ACCRUAL_DAY)
        await make_policy(db, "annual", "24")

        result = await AccrualService.process_monthly_accrual(db, employee.id, ACCRUAL_DAY)

        assert result.processed is False
        assert result.message == "Accrual starts one month after joining"

    async def test_inactive_employee_is_skipped(self, db):
        employee = await make_employee(db, join_date=JOIN, is_active=False)
        await make_policy(db, "annual", "24")

        result = await AccrualService.process_monthly_accrual(db, employee.id, ACCRUAL_DAY)

        assert result.processed is False
        assert result.message == "Cannot accrue leave for inactive employee"

    async def test_employee_without_policies_is_skipped(self, db):
        employee = await make_employee(db, join_date=JOIN, employee_type=None)
        await make_policy(db, "annual", "24")

        result = await AccrualService.process_monthly_accrual(db, employee.id, ACCRUAL_DAY)

        assert result.processed is False
        assert result.message == "No applicable leave policies"

    async def test_month_end_clamp(self, db):
        employee = await make_employee(db, join_date=date(2025, 1, 31))
        await make_policy(db, "annual", "24")

        result = await AccrualService.process_monthly_accrual(db, employee.id, date(2026, 2, 28))

        assert result.processed is True

    async def test_history(self, db):
        employee = await make_employee(db, join_date=JOIN)
        await make_policy(db, "annual", "24")
        await AccrualService.process_monthly_accrual(db, employee.id, date(2026, 9, 15))
        await AccrualService.process_monthly_accrual(db, employee.id, ACCRUAL_DAY)

        history = await AccrualService.get_accrual_history(db, employee.id)

        assert [a.accrual_date for a in history] == [ACCRUAL_DAY, date(2026, 9, 15)]
        assert await AccrualService.get_accrual_history(db, employee.id, year=2025) == []


class TestAccrualRun:

    async def test_only_employees_due_today_are_processed(self, db):
        due = await make_employee(db, first_name="Due", join_date=JOIN)
        await make_employee(db, first_name="Other", join_date=date(2025, 3, 20))
        await make_policy(db, "annual", "24")

        summary = await AccrualService.process_all_eligible(db, ACCRUAL_DAY)

        assert summary.eligible == 1
        assert summary.processed == 1
        assert summary.skipped == 0
        assert summary.failed == 0
        rows = (await db.execute(select(LeaveAccrual))).scalars().all()
        assert {r.employee_id for r in rows} == {due.id}

    async def test_rerun_skips_processed(self, db):
        await make_employee(db, join_date=JOIN)
        await make_policy(db, "annual", "24")

        await AccrualService.process_all_eligible(db, ACCRUAL_DAY)
        summary = await AccrualService.process_all_eligible(db, ACCRUAL_DAY)

        assert summary.processed == 0
        assert summary.skipped == 1


class TestScheduledTasks:

    async def test_run_accrual_job_commits(self, db, session_factory):
        employee = await make_employee(db, join_date=JOIN)
        await make_policy(db, "annual", "24")

        summary = await run_accrual_job(session_factory, ACCRUAL_DAY)

        assert summary is not None
        assert summary.processed == 1
        async with session_factory() as session:
            rows = (
                await session.execute(
                    select(LeaveAccrual).where(LeaveAccrual.employee_id == employee.id)
                )
            ).scalars().all()
        assert len(rows) == 1

    async def test_run_accrual_job_logs_and_swallows_failures(self, caplog):
        def broken_factory():
            raise RuntimeError("database unavailable")

        result = await run_accrual_job(broken_factory, ACCRUAL_DAY)

        assert result is None
        assert "Leave accrual job failed" in caplog.text

    async def test_run_calendar_job(self, db, session_factory):
        await make_holiday(db, "Gandhi Jayanti", date(2026, 10, 2))

        month = await run_calendar_job(session_factory, date(2026, 10, 19))

        assert month.summary.working_days == 21
        assert month.summary.holidays == 1

    async def test_scheduler_registers_jobs(self, session_factory):
        scheduler = LeaveScheduler(session_factory)
        scheduler.register_jobs()

        assert {j["id"] for j in scheduler.job_status()} == {ACCRUAL_JOB_ID, CALENDAR_JOB_ID}
