"""Leave policy store: reads for the calculator, admin writes."""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_leave.common.audit import create_audit_entry
from hr_leave.common.exceptions import ConflictError, NotFoundException
from hr_leave.config import settings
from hr_leave.leave.balance import select_policies
from hr_leave.leave.models import LeavePolicy
from hr_leave.leave.schemas import LeavePolicyCreate, LeavePolicyUpdate

logger = logging.getLogger(__name__)


class PolicyService:

    @staticmethod
    async def get_active_policies(
        db: AsyncSession,
        employee_type: Optional[str] = None,
    ) -> Sequence[LeavePolicy]:
        """Active policies, optionally limited to one classification plus unclassified ones."""
        query = (
            select(LeavePolicy)
            .where(LeavePolicy.is_active.is_(True))
            .order_by(LeavePolicy.leave_type, LeavePolicy.created_at.desc())
        )
        if employee_type is not None:
            query = query.where(
                (LeavePolicy.employee_type == employee_type)
                | LeavePolicy.employee_type.is_(None)
            )
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def get_policies_for_employee(db: AsyncSession, employee) -> list[LeavePolicy]:
        policies = await PolicyService.get_active_policies(db, employee.employee_type)
        return select_policies(
            employee, policies, legacy_fallback=settings.LEAVE_POLICY_LEGACY_FALLBACK,
        )

    @staticmethod
    async def get_policy_for_leave_type(
        db: AsyncSession,
        employee,
        leave_type: str,
    ) -> Optional[LeavePolicy]:
        for policy in await PolicyService.get_policies_for_employee(db, employee):
            if policy.leave_type == leave_type:
                return policy
        return None

    @staticmethod
    async def list_policies(
        db: AsyncSession,
        include_inactive: bool = False,
    ) -> Sequence[LeavePolicy]:
        query = select(LeavePolicy).order_by(LeavePolicy.leave_type, LeavePolicy.employee_type)
        if not include_inactive:
            query = query.where(LeavePolicy.is_active.is_(True))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def _ensure_single_active(
        db: AsyncSession,
        leave_type: str,
        employee_type: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(LeavePolicy.id).where(
            LeavePolicy.leave_type == leave_type,
            LeavePolicy.is_active.is_(True),
        )
        if employee_type is None:
            query = query.where(LeavePolicy.employee_type.is_(None))
        else:
            query = query.where(LeavePolicy.employee_type == employee_type)
        if exclude_id is not None:
            query = query.where(LeavePolicy.id != exclude_id)

        if (await db.execute(query)).first() is not None:
            raise ConflictError(
                "leave_type", f"{leave_type}/{employee_type or 'unclassified'}",
            )

    @staticmethod
    async def create_policy(
        db: AsyncSession,
        data: LeavePolicyCreate,
        actor_id: uuid.UUID,
    ) -> LeavePolicy:
        if data.is_active:
            await PolicyService._ensure_single_active(db, data.leave_type, data.employee_type)

        policy = LeavePolicy(**data.model_dump())
        db.add(policy)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_policy",
            entity_id=policy.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info(
            "Leave policy %s/%s created (%s days/year)",
            policy.leave_type, policy.employee_type, policy.total_days_per_year,
        )
        return policy

    @staticmethod
    async def update_policy(
        db: AsyncSession,
        policy_id: uuid.UUID,
        data: LeavePolicyUpdate,
        actor_id: uuid.UUID,
    ) -> LeavePolicy:
        policy = await db.get(LeavePolicy, policy_id)
        if policy is None:
            raise NotFoundException("LeavePolicy", policy_id)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("is_active") and not policy.is_active:
            await PolicyService._ensure_single_active(
                db, policy.leave_type, policy.employee_type, exclude_id=policy.id,
            )

        old_values = {
            key: str(getattr(policy, key)) for key in changes
        }
        for key, value in changes.items():
            setattr(policy, key, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_policy",
            entity_id=policy.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return policy
