"""Leave ORM models: LeavePolicy, LeaveRequest, SalaryDeduction."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_leave.common.constants import HalfDayPeriod, LeavePriority, LeaveStatus
from hr_leave.database import Base
from hr_leave.employees.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeavePolicy(Base):
    """Annual entitlement for one leave type and employee classification."""

    __tablename__ = "leave_policies"
    __table_args__ = (
        sa.Index("ix_leave_policies_type_class", "leave_type", "employee_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    leave_type: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    total_days_per_year: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), nullable=False,
    )
    # NULL = legacy policy with no classification
    employee_type: Mapped[Optional[str]] = mapped_column(sa.String(50))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_paid: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.true(),
    )
    requires_approval: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.true(),
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.true(),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=_utcnow,
        server_default=sa.func.now(),
        onupdate=_utcnow,
    )


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.Index("ix_leave_requests_employee_dates", "employee_id", "start_date", "end_date"),
        sa.Index("ix_leave_requests_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    total_days: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)

    # Partial-day variants
    is_half_day: Mapped[bool] = mapped_column(
        sa.Boolean, default=False, server_default=sa.false(),
    )
    half_day_period: Mapped[Optional[HalfDayPeriod]] = mapped_column(
        sa.Enum(HalfDayPeriod, name="half_day_period"),
    )
    short_leave_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(4, 2))

    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status"),
        default=LeaveStatus.pending,
        server_default=LeaveStatus.pending.value,
    )
    priority: Mapped[LeavePriority] = mapped_column(
        sa.Enum(LeavePriority, name="leave_priority"),
        default=LeavePriority.low,
        server_default=LeavePriority.low.value,
    )
    is_paid: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.true(),
    )

    submitted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"),
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Relationships
    employee: Mapped[Employee] = relationship(foreign_keys=[employee_id])
    salary_deduction: Mapped[Optional[SalaryDeduction]] = relationship(
        back_populates="leave_request",
        cascade="all, delete-orphan",
        uselist=False,
    )


class SalaryDeduction(Base):
    """Payroll deduction owed for paid leave taken beyond the available balance."""

    __tablename__ = "salary_deductions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    leave_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("leave_requests.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False,
    )
    days: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    is_void: Mapped[bool] = mapped_column(
        sa.Boolean, default=False, server_default=sa.false(),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )

    leave_request: Mapped[LeaveRequest] = relationship(back_populates="salary_deduction")
