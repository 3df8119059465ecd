"""Background jobs: daily accrual run and monthly working-day calendar.

The wall-clock trigger (APScheduler cron) only calls the ``run_*`` coroutines
below, which take an explicit date and session factory so they can be run
directly without waiting for the clock. Each run is fire-and-forget: errors
are logged and the next scheduled run starts from scratch.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_leave.accrual.schemas import AccrualRunSummary
from hr_leave.accrual.service import AccrualService
from hr_leave.config import settings
from hr_leave.holidays.schemas import MonthlyCalendar
from hr_leave.holidays.working_days import WorkingDayService

logger = logging.getLogger(__name__)

ACCRUAL_JOB_ID = "leave_accrual_daily"
CALENDAR_JOB_ID = "working_days_monthly"


# ── Run-once tasks ──────────────────────────────────────────────────


async def run_accrual_job(
    session_factory: async_sessionmaker[AsyncSession],
    accrual_date: Optional[date] = None,
) -> Optional[AccrualRunSummary]:
    """Process accruals due on *accrual_date* (today by default) in one transaction."""
    accrual_date = accrual_date or date.today()
    logger.info("Leave accrual job started for %s", accrual_date)
    try:
        async with session_factory() as session:
            try:
                summary = await AccrualService.process_all_eligible(session, accrual_date)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    except Exception:
        logger.exception("Leave accrual job failed for %s", accrual_date)
        return None
    return summary


async def run_calendar_job(
    session_factory: async_sessionmaker[AsyncSession],
    today: Optional[date] = None,
) -> Optional[MonthlyCalendar]:
    """Build the working-day calendar for the month containing *today* and log its summary."""
    today = today or date.today()
    try:
        async with session_factory() as session:
            month = await WorkingDayService.monthly_calendar(session, today.year, today.month)
    except Exception:
        logger.exception("Working-day calendar job failed for %s-%02d", today.year, today.month)
        return None

    logger.info(
        "Working days for %s-%02d: %d working, %d weekend, %d holiday (of %d)",
        month.year, month.month, month.summary.working_days, month.summary.weekends,
        month.summary.holidays, month.summary.total_days,
    )
    return month


# ── Scheduler ───────────────────────────────────────────────────────


class LeaveScheduler:
    """Owns the APScheduler instance; started and stopped by the app lifespan."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timezone: str = settings.SCHEDULER_TIMEZONE,
    ) -> None:
        self.session_factory = session_factory
        self.scheduler = AsyncIOScheduler(timezone=timezone)

    def register_jobs(self) -> None:
        self.scheduler.add_job(
            func=run_accrual_job,
            trigger="cron",
            hour=settings.ACCRUAL_JOB_HOUR,
            minute=settings.ACCRUAL_JOB_MINUTE,
            args=[self.session_factory],
            id=ACCRUAL_JOB_ID,
            name="Daily leave accrual",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.add_job(
            func=run_calendar_job,
            trigger="cron",
            day=1,
            hour=0,
            minute=5,
            args=[self.session_factory],
            id=CALENDAR_JOB_ID,
            name="Monthly working-day calendar",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

    def start(self) -> None:
        self.register_jobs()
        self.scheduler.start()
        logger.info("Leave scheduler started with jobs: %s", [j.id for j in self.scheduler.get_jobs()])

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Leave scheduler stopped")

    def job_status(self) -> list[dict]:
        # Jobs added before start() have no next_run_time yet
        status = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            status.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
            })
        return status
