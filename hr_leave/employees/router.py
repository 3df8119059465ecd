"""Employee endpoints: profile, team roster, probation management."""


import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.auth.dependencies import get_current_user, require_role
from hr_leave.common.constants import UserRole
from hr_leave.database import get_db
from hr_leave.employees.models import Employee
from hr_leave.employees.schemas import (
    EmployeeOut,
    ProbationExtend,
    ProbationUpdate,
    TeamMemberOut,
)
from hr_leave.employees.service import EmployeeService
from hr_leave.leave.service import LeaveService

router = APIRouter(prefix="", tags=["employees"])

_admin_only = require_role(UserRole.admin)


@router.get("/me", response_model=EmployeeOut)
async def me(employee: Employee = Depends(get_current_user)):
    return employee


@router.get("/team", response_model=list[TeamMemberOut])
async def team(
    actor: Employee = Depends(require_role(UserRole.manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Direct reports with their probation flag and current balances."""
    return await LeaveService.get_team_balances(db, actor)


# ── Probation ───────────────────────────────────────────────────────

@router.get("/probation/ending-soon", response_model=list[EmployeeOut])
async def probation_ending_soon(
    days_ahead: int = Query(7, ge=0, le=365),
    actor: Employee = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.get_probation_ending_soon(db, days_ahead=days_ahead)


@router.post("/{employee_id}/probation/complete", response_model=EmployeeOut)
async def complete_probation(
    employee_id: uuid.UUID,
    actor: Employee = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    """Complete probation; earned leave becomes usable immediately."""
    return await EmployeeService.complete_probation(db, employee_id, actor.id)


@router.post("/{employee_id}/probation/extend", response_model=EmployeeOut)
async def extend_probation(
    employee_id: uuid.UUID,
    body: ProbationExtend,
    actor: Employee = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.extend_probation(
        db, employee_id, body.additional_days, actor.id,
    )


@router.post("/{employee_id}/probation/terminate", response_model=EmployeeOut)
async def terminate_probation(
    employee_id: uuid.UUID,
    actor: Employee = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.terminate_probation(db, employee_id, actor.id)


@router.put("/{employee_id}/probation", response_model=EmployeeOut)
async def update_probation(
    employee_id: uuid.UUID,
    body: ProbationUpdate,
    actor: Employee = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.update_probation(db, employee_id, body, actor.id)
