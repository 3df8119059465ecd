"""Holiday calendar ORM model."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hr_leave.database import Base


class Holiday(Base):
    __tablename__ = "holidays"
    __table_args__ = (
        sa.UniqueConstraint("date", "name", name="uq_holiday_date_name"),
        sa.Index("ix_holidays_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    holiday_type: Mapped[str] = mapped_column(
        sa.String(30), default="public", server_default="public",
    )
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.true(),
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: dt.datetime.now(dt.timezone.utc),
        server_default=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Holiday {self.date} {self.name}>"
