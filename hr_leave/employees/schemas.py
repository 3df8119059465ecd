"""Employee Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_leave.common.constants import ProbationStatus, UserRole
from hr_leave.leave.schemas import LeaveBalanceEntry


class EmployeeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    first_name: str
    last_name: str
    email: str
    department: Optional[str] = None
    role: UserRole
    reporting_manager_id: Optional[uuid.UUID] = None
    join_date: Optional[date] = None
    employee_type: Optional[str] = None
    is_active: bool
    probation_status: Optional[ProbationStatus] = None
    probation_start_date: Optional[date] = None
    probation_end_date: Optional[date] = None
    probation_duration_days: Optional[int] = None
    probation_completed_at: Optional[datetime] = None


class TeamMemberOut(BaseModel):
    employee: EmployeeOut
    in_probation: bool
    balances: list[LeaveBalanceEntry] = []


# ── Probation actions ───────────────────────────────────────────────


class ProbationExtend(BaseModel):
    additional_days: int = Field(..., gt=0, le=365)


class ProbationUpdate(BaseModel):
    probation_status: Optional[ProbationStatus] = None
    probation_start_date: Optional[date] = None
    probation_end_date: Optional[date] = None
