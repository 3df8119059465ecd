"""Leave balance and accrual calculator.

Entitlement accrues in a straight line from the join date:
``total = round(total_days_per_year / 365 * days_served, 2)`` with no annual
cap. While probation is open (active or extended) everything earned is
locked: ``available`` and ``remaining`` are zero. Used and pending days are
summed from the approved and pending requests handed in by the caller, who
is responsible for restricting them to the calendar year.

Everything in this module is pure; the async wrapper lives in
``LeaveService.get_leave_balance``.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from hr_leave.common.constants import OPEN_PROBATION_STATUSES, LeaveStatus
from hr_leave.leave.schemas import LeaveBalanceEntry

ZERO = Decimal("0")
TWO_PLACES = Decimal("0.01")
DAYS_PER_YEAR = Decimal("365")


def round2(value) -> Decimal:
    """Round half-up to two decimal places."""
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


# ── Tenure ──────────────────────────────────────────────────────────


def days_served(join_date: Optional[date], today: date) -> Decimal:
    """Whole days between join date and *today*; 0 on the first day or before joining."""
    if join_date is None:
        return ZERO
    return max(ZERO, round2((today - join_date).days))


def probation_days_served(employee, today: date) -> Decimal:
    """Days served inside the probation window.

    The window runs from ``max(join_date, probation_start)`` to
    ``min(probation_completed_at or today, probation_end)``. Employees
    without both probation dates have served no probation days.
    """
    start = employee.probation_start_date
    end = employee.probation_end_date
    if start is None or end is None:
        return ZERO

    window_start = max(employee.join_date, start) if employee.join_date else start
    window_end = min(_as_date(employee.probation_completed_at) or today, end)
    return max(ZERO, round2((window_end - window_start).days))


# ── Policy selection ────────────────────────────────────────────────


def select_policies(
    employee,
    policies: Iterable,
    *,
    legacy_fallback: bool = False,
) -> list:
    """Active policies applying to the employee's classification, one per leave type.

    Only exact classification matches count, so an employee with no
    classification gets nothing. With *legacy_fallback* an unclassified
    policy fills any leave type left without a classified one.
    """
    active = [p for p in policies if p.is_active]
    chosen: dict[str, object] = {}

    if employee.employee_type is not None:
        for policy in active:
            if policy.employee_type == employee.employee_type:
                chosen.setdefault(policy.leave_type, policy)

    if legacy_fallback:
        for policy in active:
            if policy.employee_type is None:
                chosen.setdefault(policy.leave_type, policy)

    return list(chosen.values())


# ── Request aggregation ─────────────────────────────────────────────


def aggregate_requests(requests: Iterable) -> tuple[dict[str, Decimal], dict[str, Decimal]]:
    """Sum total_days per leave type into (used, pending); rejected rows are ignored."""
    used: dict[str, Decimal] = defaultdict(lambda: ZERO)
    pending: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for req in requests:
        days = Decimal(str(req.total_days))
        if req.status == LeaveStatus.approved:
            used[req.leave_type] += days
        elif req.status == LeaveStatus.pending:
            pending[req.leave_type] += days
    return used, pending


# ── Calculator ──────────────────────────────────────────────────────


def compute_balance(
    employee,
    policies: Sequence,
    requests: Iterable,
    today: date,
    *,
    legacy_fallback: bool = False,
) -> dict[str, LeaveBalanceEntry]:
    """Compute per-leave-type balances for *employee* as of *today*."""
    served = days_served(employee.join_date, today)
    in_probation_days = probation_days_served(employee, today)
    locked = employee.probation_status in OPEN_PROBATION_STATUSES
    used, pending = aggregate_requests(requests)

    balances: dict[str, LeaveBalanceEntry] = {}
    for policy in select_policies(employee, policies, legacy_fallback=legacy_fallback):
        annual = Decimal(str(policy.total_days_per_year))
        daily_accrual = annual / DAYS_PER_YEAR

        total = round2(daily_accrual * served)
        probation_earned = round2(daily_accrual * in_probation_days)
        available = ZERO if locked else total

        type_used = used[policy.leave_type]
        type_pending = pending[policy.leave_type]
        remaining = ZERO if locked else max(ZERO, available - type_used - type_pending)

        balances[policy.leave_type] = LeaveBalanceEntry(
            leave_type=policy.leave_type,
            total_days_per_year=annual,
            total=total,
            probation_earned=probation_earned,
            available=available,
            used=round2(type_used),
            pending=round2(type_pending),
            remaining=round2(remaining),
        )

    return balances
