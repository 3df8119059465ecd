"""Accrual Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class LeaveAccrualOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: str
    year: int
    month: int
    accrual_date: date
    days_accrued: Decimal
    total_earned: Decimal
    available: Decimal


class AccrualResult(BaseModel):
    employee_id: uuid.UUID
    processed: bool
    message: str
    accruals: list[LeaveAccrualOut] = []


class AccrualRunSummary(BaseModel):
    accrual_date: date
    eligible: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = []


class AccrualRunRequest(BaseModel):
    accrual_date: Optional[date] = None


class NextAccrualOut(BaseModel):
    employee_id: uuid.UUID
    next_accrual_date: Optional[date] = None
