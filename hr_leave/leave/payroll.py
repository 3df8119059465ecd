"""Daily salary rate used to price leave taken beyond the available balance.

The leave rules ask a :class:`DailyRateProvider` for the rate; the default
provider returns a flat configured figure until a payroll source is wired in.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.config import settings


class DailyRateProvider(Protocol):
    async def get_daily_rate(self, db: AsyncSession, employee) -> Decimal:
        ...


class FlatDailyRateProvider:
    """Same rate for every employee."""

    def __init__(self, rate=None) -> None:
        self.rate = Decimal(str(rate if rate is not None else settings.SALARY_DEDUCTION_DAILY_RATE))

    async def get_daily_rate(self, db: AsyncSession, employee) -> Decimal:
        return self.rate


def get_daily_rate_provider() -> DailyRateProvider:
    """FastAPI dependency; override in ``app.dependency_overrides`` to plug in payroll."""
    return FlatDailyRateProvider()
