"""Accrual endpoints: history, next accrual date, manual run."""


from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.accrual.schemas import (
    AccrualRunRequest,
    AccrualRunSummary,
    LeaveAccrualOut,
    NextAccrualOut,
)
from hr_leave.accrual.service import AccrualService, get_next_accrual_date
from hr_leave.auth.dependencies import get_current_user, require_role
from hr_leave.common.constants import UserRole
from hr_leave.database import get_db
from hr_leave.employees.models import Employee

router = APIRouter(prefix="", tags=["accrual"])


@router.get("/history", response_model=list[LeaveAccrualOut])
async def accrual_history(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccrualService.get_accrual_history(db, employee.id, year=year)


@router.get("/next-date", response_model=NextAccrualOut)
async def next_accrual_date(employee: Employee = Depends(get_current_user)):
    return NextAccrualOut(
        employee_id=employee.id,
        next_accrual_date=get_next_accrual_date(employee.join_date, date.today()),
    )


@router.post("/run", response_model=AccrualRunSummary)
async def run_accrual(
    body: AccrualRunRequest,
    actor: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Run the accrual job now for the given date (today by default)."""
    return await AccrualService.process_all_eligible(db, body.accrual_date or date.today())
