"""Employee ORM model: the directory record the leave rules read from.

Carries the fields the balance calculator needs (join date, probation window,
classification) plus reporting line and role for approvals.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hr_leave.common.constants import (
    OPEN_PROBATION_STATUSES,
    ProbationStatus,
    UserRole,
)
from hr_leave.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Employee(Base):
    """Employee directory entry."""

    __tablename__ = "employees"

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Identifiers ─────────────────────────────────────────────────
    employee_code: Mapped[str] = mapped_column(
        sa.String(20), unique=True, nullable=False,
    )
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    department: Mapped[Optional[str]] = mapped_column(sa.String(100))

    # ── Access / org ────────────────────────────────────────────────
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        default=UserRole.employee,
        server_default=UserRole.employee.value,
        nullable=False,
    )
    reporting_manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"),
    )

    # ── Employment ──────────────────────────────────────────────────
    join_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    # Classification used to pick leave policies (e.g. onshore / offshore)
    employee_type: Mapped[Optional[str]] = mapped_column(sa.String(50))
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.true(), nullable=False,
    )

    # ── Probation ───────────────────────────────────────────────────
    probation_status: Mapped[Optional[ProbationStatus]] = mapped_column(
        sa.Enum(ProbationStatus, name="probation_status"),
    )
    probation_start_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    probation_end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    probation_duration_days: Mapped[Optional[int]] = mapped_column(sa.Integer)
    probation_completed_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
    )

    # ── Timestamps ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=_utcnow,
        server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=_utcnow,
        server_default=sa.func.now(),
        onupdate=_utcnow,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def in_probation(self) -> bool:
        """True while earned leave is locked (probation active or extended)."""
        return self.probation_status in OPEN_PROBATION_STATUSES

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code} {self.email}>"
