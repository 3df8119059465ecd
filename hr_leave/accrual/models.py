"""Monthly leave accrual snapshots."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hr_leave.database import Base


class LeaveAccrual(Base):
    """One row per employee, leave type and month in which accrual was recorded."""

    __tablename__ = "leave_accruals"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_id", "leave_type", "year", "month", name="uq_leave_accrual_month",
        ),
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
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    month: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    accrual_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    # Nominal monthly share of the annual entitlement
    days_accrued: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)
    # Calculator figures as of accrual_date
    total_earned: Mapped[Decimal] = mapped_column(sa.Numeric(8, 2), nullable=False)
    available: Mapped[Decimal] = mapped_column(sa.Numeric(8, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=sa.func.now(),
    )
