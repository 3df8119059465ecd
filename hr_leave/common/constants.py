"""Enums and constants for the leave service: matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    admin = "admin"


# ── Employee ────────────────────────────────────────────────────────

class ProbationStatus(str, enum.Enum):
    none = "none"
    active = "active"
    extended = "extended"
    completed = "completed"
    terminated = "terminated"


# Statuses under which earned leave is locked and new leave is unpaid.
OPEN_PROBATION_STATUSES = frozenset({ProbationStatus.active, ProbationStatus.extended})


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class HalfDayPeriod(str, enum.Enum):
    morning = "morning"
    afternoon = "afternoon"


class LeavePriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class OverlapMode(str, enum.Enum):
    """How the validator treats a clash with another pending/approved request."""

    warn = "warn"
    strict = "strict"


# Well-known leave type tags. Policies may define others.
ANNUAL = "annual"
SICK = "sick"
CASUAL = "casual"
EMERGENCY = "emergency"
MATERNITY = "maternity"
PATERNITY = "paternity"

PARENTAL_LEAVE_TYPES = frozenset({MATERNITY, PATERNITY})


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    alert = "alert"


# ── Misc ────────────────────────────────────────────────────────────

DATE_FORMAT = "%d-%b-%Y"          # 19-Feb-2026
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
