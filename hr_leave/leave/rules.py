"""Leave business-rule tables and the pure checks built on them.

Soft rules return a warning string (or ``None``) so the validator can collect
them; nothing here touches the database.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from hr_leave.common.constants import (
    ANNUAL,
    CASUAL,
    EMERGENCY,
    MATERNITY,
    OPEN_PROBATION_STATUSES,
    PATERNITY,
    SICK,
    LeavePriority,
)
from hr_leave.leave.balance import round2

# Minimum advance notice, in days, per leave type
NOTICE_REQUIREMENTS: dict[str, int] = {
    ANNUAL: 7,
    SICK: 0,
    CASUAL: 1,
    EMERGENCY: 0,
    MATERNITY: 30,
    PATERNITY: 14,
}
DEFAULT_NOTICE_DAYS = 1

# Recommended ceiling on a single request, in days
MAX_CONSECUTIVE_DAYS: dict[str, int] = {
    ANNUAL: 15,
    SICK: 30,
    CASUAL: 3,
    EMERGENCY: 5,
    MATERNITY: 180,
    PATERNITY: 30,
}
DEFAULT_MAX_CONSECUTIVE_DAYS = 10

EMERGENCY_KEYWORDS = ("emergency", "urgent", "critical", "immediate", "family", "medical")

# Longest calendar span a single request may cover
MAX_REQUEST_SPAN_DAYS = 366

HALF_DAY = Decimal("0.5")


# ── Duration ────────────────────────────────────────────────────────


def requested_days(
    *,
    is_half_day: bool,
    short_leave_hours: Optional[Decimal],
    working_days: int,
    hours_per_day: int = 8,
) -> Decimal:
    """Days charged for a request: 0.5, hours / hours_per_day, or the working-day count."""
    if is_half_day:
        return HALF_DAY
    if short_leave_hours is not None:
        return round2(Decimal(str(short_leave_hours)) / Decimal(hours_per_day))
    return Decimal(working_days)


# ── Soft checks ─────────────────────────────────────────────────────


def days_until(start_date: date, today: date) -> int:
    """Calendar days between today and the first day of leave."""
    return (start_date - today).days


def check_notice_period(leave_type: str, start_date: date, today: date) -> Optional[str]:
    required = NOTICE_REQUIREMENTS.get(leave_type, DEFAULT_NOTICE_DAYS)
    notice = days_until(start_date, today)
    if notice < required:
        return (
            f"{leave_type.capitalize()} leave requires {required} day(s) advance notice. "
            f"You are applying {max(notice, 0)} day(s) in advance."
        )
    return None


def check_max_consecutive_days(leave_type: str, total_days: Decimal) -> Optional[str]:
    limit = MAX_CONSECUTIVE_DAYS.get(leave_type, DEFAULT_MAX_CONSECUTIVE_DAYS)
    if total_days > limit:
        return (
            f"Requested {total_days} days exceeds the recommended maximum of "
            f"{limit} consecutive days for {leave_type} leave."
        )
    return None


def check_emergency_reason(leave_type: str, reason: str) -> Optional[str]:
    if leave_type != EMERGENCY:
        return None
    text = (reason or "").lower()
    if not any(keyword in text for keyword in EMERGENCY_KEYWORDS):
        return (
            "Emergency leave reason should describe the emergency "
            f"(e.g. {', '.join(EMERGENCY_KEYWORDS)})."
        )
    return None


def format_holiday_conflicts(holidays: Iterable) -> list[str]:
    """Render holidays as ``"Name (YYYY-MM-DD)"``."""
    return [f"{h.name} ({h.date.isoformat()})" for h in holidays]


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive date-range intersection."""
    return start_a <= end_b and end_a >= start_b


# ── Display helpers ─────────────────────────────────────────────────


def determine_priority(leave_type: str, total_days: Decimal) -> LeavePriority:
    if leave_type == EMERGENCY or (leave_type == SICK and total_days > 3):
        return LeavePriority.high
    if total_days > 7 or leave_type == SICK:
        return LeavePriority.medium
    return LeavePriority.low


def estimate_approval_time(leave_type: str, total_days: Decimal) -> str:
    if leave_type == EMERGENCY:
        return "2-4 hours"
    if leave_type == SICK:
        return "1-2 business days"
    if total_days > 10:
        return "3-5 business days"
    return "1-3 business days"


# ── Probation ───────────────────────────────────────────────────────


def leave_overlaps_probation(employee, start_date: date, end_date: date) -> bool:
    """True if any day of the leave falls inside an open probation window.

    An open probation with missing dates is treated as covering everything.
    """
    if employee.probation_status not in OPEN_PROBATION_STATUSES:
        return False
    if employee.probation_start_date is None or employee.probation_end_date is None:
        return True
    return ranges_overlap(
        start_date, end_date,
        employee.probation_start_date, employee.probation_end_date,
    )

