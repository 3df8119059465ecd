"""Leave Pydantic v2 schemas: request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out / *Result      → response bodies (read)
  - *Brief              → compact embedded representations
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hr_leave.common.constants import (
    HalfDayPeriod,
    LeavePriority,
    LeaveStatus,
    ProbationStatus,
)
from hr_leave.common.pagination import PaginatedResponse


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    first_name: str
    last_name: str
    department: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Policy
# ═════════════════════════════════════════════════════════════════════


class LeavePolicyCreate(BaseModel):
    leave_type: str = Field(..., min_length=1, max_length=30)
    total_days_per_year: Decimal = Field(..., ge=0, le=366)
    employee_type: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    is_paid: bool = True
    requires_approval: bool = True
    is_active: bool = True


class LeavePolicyUpdate(BaseModel):
    total_days_per_year: Optional[Decimal] = Field(default=None, ge=0, le=366)
    description: Optional[str] = None
    is_paid: Optional[bool] = None
    requires_approval: Optional[bool] = None
    is_active: Optional[bool] = None


class LeavePolicyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    leave_type: str
    total_days_per_year: Decimal
    employee_type: Optional[str] = None
    description: Optional[str] = None
    is_paid: bool
    requires_approval: bool
    is_active: bool


# ═════════════════════════════════════════════════════════════════════
# Balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceEntry(BaseModel):
    """Balance for one leave type as of a given day."""

    leave_type: str
    total_days_per_year: Decimal
    total: Decimal
    probation_earned: Decimal
    available: Decimal
    used: Decimal
    pending: Decimal
    remaining: Decimal


class LeaveBalanceOut(BaseModel):
    employee_id: uuid.UUID
    as_of: date
    days_served: Decimal
    probation_status: Optional[ProbationStatus] = None
    in_probation: bool
    balances: list[LeaveBalanceEntry]


# ═════════════════════════════════════════════════════════════════════
# Validation
# ═════════════════════════════════════════════════════════════════════


class LeaveValidationRequest(BaseModel):
    """Proposed leave as checked by the business-rule validator.

    Date order is deliberately not enforced here; the validator reports it
    as a rule failure.
    """

    leave_type: str = Field(..., min_length=1, max_length=30)
    start_date: date
    end_date: date
    is_half_day: bool = False
    half_day_period: Optional[HalfDayPeriod] = None
    short_leave_hours: Optional[Decimal] = Field(default=None, gt=0, le=24)
    reason: str = Field(default="", max_length=2000)

    @model_validator(mode="after")
    def _single_partial_day_kind(self) -> "LeaveValidationRequest":
        if self.is_half_day and self.short_leave_hours is not None:
            raise ValueError("A request cannot be both a half day and a short leave")
        if self.half_day_period is not None and not self.is_half_day:
            raise ValueError("half_day_period is only valid for half-day requests")
        return self


class LeaveRequestCreate(LeaveValidationRequest):
    reason: str = Field(..., min_length=1, max_length=2000)


class SalaryDeductionInfo(BaseModel):
    days: Decimal
    daily_rate: Decimal
    amount: Decimal


class LeaveValidationResult(BaseModel):
    is_valid: bool
    can_submit: bool
    requires_approval: bool = True
    total_days: Decimal = Decimal("0")
    warnings: list[str] = []
    suggestions: list[str] = []
    message: Optional[str] = None
    salary_deduction: Optional[SalaryDeductionInfo] = None
    conflict_with_holidays: list[str] = []
    conflict_with_other_requests: bool = False
    estimated_approval_time: Optional[str] = None
    priority: LeavePriority = LeavePriority.low


# ═════════════════════════════════════════════════════════════════════
# Leave Request
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: str
    start_date: date
    end_date: date
    total_days: Decimal
    reason: str
    is_half_day: bool
    half_day_period: Optional[HalfDayPeriod] = None
    short_leave_hours: Optional[Decimal] = None
    status: LeaveStatus
    priority: LeavePriority
    is_paid: bool
    submitted_at: datetime
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class LeaveRequestWithEmployee(LeaveRequestOut):
    employee: Optional[EmployeeBrief] = None


class LeaveSubmissionOut(BaseModel):
    """Created request plus the advisory output of the validator."""

    request: LeaveRequestOut
    warnings: list[str] = []
    suggestions: list[str] = []
    salary_deduction: Optional[SalaryDeductionInfo] = None
    estimated_approval_time: Optional[str] = None


LeaveRequestListResponse = PaginatedResponse[LeaveRequestOut]
TeamLeaveRequestListResponse = PaginatedResponse[LeaveRequestWithEmployee]


class LeaveRejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)
