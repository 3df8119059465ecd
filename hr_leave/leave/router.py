"""Leave router: balances, validation, request lifecycle, policies.

All endpoints require authentication. Manager/admin endpoints enforce role
checks; reporting-line checks happen in the service layer.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.auth.dependencies import get_current_user, require_role
from hr_leave.common.constants import LeaveStatus, UserRole
from hr_leave.common.pagination import PaginationParams
from hr_leave.database import get_db
from hr_leave.employees.models import Employee
from hr_leave.employees.service import EmployeeService
from hr_leave.leave.payroll import DailyRateProvider, get_daily_rate_provider
from hr_leave.leave.policies import PolicyService
from hr_leave.leave.schemas import (
    LeaveBalanceOut,
    LeavePolicyCreate,
    LeavePolicyOut,
    LeavePolicyUpdate,
    LeaveRejectRequest,
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestOut,
    LeaveSubmissionOut,
    LeaveValidationRequest,
    LeaveValidationResult,
    TeamLeaveRequestListResponse,
)
from hr_leave.leave.service import LeaveService
from hr_leave.leave.validator import LeaveBalanceService, LeaveValidator

router = APIRouter(prefix="", tags=["leave"])


# ── GET /balance ────────────────────────────────────────────────────

@router.get("/balance", response_model=LeaveBalanceOut)
async def my_balance(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current leave balance of the authenticated user."""
    return await LeaveBalanceService.get_leave_balance(db, employee.id)


@router.get("/balance/{employee_id}", response_model=LeaveBalanceOut)
async def employee_balance(
    employee_id: uuid.UUID,
    actor: Employee = Depends(require_role(UserRole.manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Leave balance of a direct report (any employee for admins)."""
    if employee_id != actor.id:
        target = await EmployeeService.get_employee(db, employee_id)
        EmployeeService.ensure_can_manage(actor, target)
    return await LeaveBalanceService.get_leave_balance(db, employee_id)


# ── POST /validate ──────────────────────────────────────────────────

@router.post("/validate", response_model=LeaveValidationResult)
async def validate_leave(
    body: LeaveValidationRequest,
    strict_balance: Optional[bool] = Query(
        default=None, description="Reject requests exceeding the available balance",
    ),
    employee: Employee = Depends(get_current_user),
    rate_provider: DailyRateProvider = Depends(get_daily_rate_provider),
    db: AsyncSession = Depends(get_db),
):
    """Check a proposed leave against the business rules without saving it."""
    return await LeaveValidator.validate(
        db,
        employee.id,
        body,
        rate_provider=rate_provider,
        strict_balance=strict_balance,
    )


# ── /requests ───────────────────────────────────────────────────────

@router.post("/requests", response_model=LeaveSubmissionOut, status_code=201)
async def create_request(
    body: LeaveRequestCreate,
    employee: Employee = Depends(get_current_user),
    rate_provider: DailyRateProvider = Depends(get_daily_rate_provider),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request. Overlapping pending/approved leave is rejected."""
    return await LeaveService.create_leave_request(
        db, employee.id, body, rate_provider=rate_provider,
    )


@router.get("/requests", response_model=LeaveRequestListResponse)
async def my_requests(
    status: Optional[LeaveStatus] = Query(None),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_my_requests(
        db, employee.id, pagination, status=status, year=year,
    )


@router.get("/requests/team", response_model=TeamLeaveRequestListResponse)
async def team_requests(
    status: Optional[LeaveStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    actor: Employee = Depends(require_role(UserRole.manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Leave requests of the manager's direct reports."""
    return await LeaveService.list_team_requests(db, actor, pagination, status=status)


@router.get("/requests/{request_id}", response_model=LeaveRequestOut)
async def get_request(
    request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_request(db, request_id, employee)


@router.delete("/requests/{request_id}", status_code=204)
async def cancel_request(
    request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a pending request."""
    await LeaveService.cancel_leave_request(db, employee.id, request_id)


@router.put("/requests/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_request(
    request_id: uuid.UUID,
    actor: Employee = Depends(require_role(UserRole.manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.approve_leave_request(db, request_id, actor)


@router.put("/requests/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_request(
    request_id: uuid.UUID,
    body: LeaveRejectRequest,
    actor: Employee = Depends(require_role(UserRole.manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending request; any recorded salary deduction is voided."""
    return await LeaveService.reject_leave_request(db, request_id, actor, body.reason)


# ── /policies ───────────────────────────────────────────────────────

@router.get("/policies", response_model=list[LeavePolicyOut])
async def my_policies(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active leave policies that apply to the authenticated user."""
    return await PolicyService.get_policies_for_employee(db, employee)


@router.get("/policies/all", response_model=list[LeavePolicyOut])
async def all_policies(
    include_inactive: bool = Query(default=False),
    actor: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Every policy across classifications (admin)."""
    return await PolicyService.list_policies(db, include_inactive=include_inactive)


@router.post("/policies", response_model=LeavePolicyOut, status_code=201)
async def create_policy(
    body: LeavePolicyCreate,
    actor: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await PolicyService.create_policy(db, body, actor.id)


@router.put("/policies/{policy_id}", response_model=LeavePolicyOut)
async def update_policy(
    policy_id: uuid.UUID,
    body: LeavePolicyUpdate,
    actor: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await PolicyService.update_policy(db, policy_id, body, actor.id)
