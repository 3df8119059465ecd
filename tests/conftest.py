"""Shared test fixtures: async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hr_leave.common.constants import ProbationStatus, UserRole
from hr_leave.config import settings
from hr_leave.database import Base, get_db
from hr_leave.main import create_app

# Import ALL model modules so every table is on Base.metadata
import hr_leave.accrual.models  # noqa: F401
import hr_leave.common.audit  # noqa: F401
import hr_leave.employees.models  # noqa: F401
import hr_leave.holidays.models  # noqa: F401
import hr_leave.leave.models  # noqa: F401
import hr_leave.notifications.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/CHAR ───────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() as a SQLite custom function."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory bound to the test engine, for code that opens its own sessions."""
    return TestSessionFactory


# ── Model factories ─────────────────────────────────────────────────

async def make_employee(
    db: AsyncSession,
    *,
    first_name: str = "Test",
    last_name: str = "User",
    role: UserRole = UserRole.employee,
    join_date: date | None = None,
    employee_type: str | None = "onshore",
    reporting_manager_id: uuid.UUID | None = None,
    probation_status: ProbationStatus | None = ProbationStatus.completed,
    probation_start_date: date | None = None,
    probation_end_date: date | None = None,
    is_active: bool = True,
):
    """Insert and commit an employee; joined 400 days ago unless told otherwise."""
    from hr_leave.employees.models import Employee

    code = uuid.uuid4().hex[:6].upper()
    employee = Employee(
        id=uuid.uuid4(),
        employee_code=f"EMP-{code}",
        first_name=first_name,
        last_name=last_name,
        email=f"{first_name.lower()}.{code.lower()}@example.com",
        department="Engineering",
        role=role,
        reporting_manager_id=reporting_manager_id,
        join_date=join_date if join_date is not None else date.today() - timedelta(days=400),
        employee_type=employee_type,
        is_active=is_active,
        probation_status=probation_status,
        probation_start_date=probation_start_date,
        probation_end_date=probation_end_date,
    )
    db.add(employee)
    await db.commit()
    return employee


async def make_policy(
    db: AsyncSession,
    leave_type: str = "annual",
    total_days_per_year: str = "25",
    *,
    employee_type: str | None = "onshore",
    is_paid: bool = True,
    is_active: bool = True,
):
    from hr_leave.leave.models import LeavePolicy

    policy = LeavePolicy(
        leave_type=leave_type,
        total_days_per_year=Decimal(total_days_per_year),
        employee_type=employee_type,
        is_paid=is_paid,
        is_active=is_active,
    )
    db.add(policy)
    await db.commit()
    return policy


async def make_leave_request(
    db: AsyncSession,
    employee_id: uuid.UUID,
    *,
    leave_type: str = "annual",
    start_date: date,
    end_date: date,
    total_days: str = "1",
    status=None,
):
    from hr_leave.common.constants import LeaveStatus
    from hr_leave.leave.models import LeaveRequest

    leave = LeaveRequest(
        employee_id=employee_id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        total_days=Decimal(total_days),
        reason="Planned time off",
        status=status or LeaveStatus.pending,
        submitted_at=datetime.now(timezone.utc),
    )
    db.add(leave)
    await db.commit()
    return leave


async def make_holiday(db: AsyncSession, name: str, day: date, *, is_active: bool = True):
    from hr_leave.holidays.models import Holiday

    holiday = Holiday(name=name, date=day, is_active=is_active)
    db.add(holiday)
    await db.commit()
    return holiday


def next_weekday(weekday: int, *, after: date | None = None, min_days: int = 1) -> date:
    """First date at least *min_days* after *after* (today) falling on *weekday* (0 = Monday)."""
    day = (after or date.today()) + timedelta(days=min_days)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


# ── Standard cast ───────────────────────────────────────────────────

@pytest.fixture
async def manager(db):
    return await make_employee(db, first_name="Maya", last_name="Manager", role=UserRole.manager)


@pytest.fixture
async def employee(db, manager):
    """Confirmed onshore employee reporting to ``manager``."""
    return await make_employee(
        db, first_name="Eli", last_name="Employee", reporting_manager_id=manager.id,
    )


@pytest.fixture
async def admin(db):
    return await make_employee(db, first_name="Ada", last_name="Admin", role=UserRole.admin)


@pytest.fixture
async def annual_policy(db):
    return await make_policy(db, "annual", "25")


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(employee_id),
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_for(employee) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(employee.id)}"}


@pytest.fixture
async def employee_headers(employee) -> dict[str, str]:
    return auth_for(employee)


@pytest.fixture
async def manager_headers(manager) -> dict[str, str]:
    return auth_for(manager)


@pytest.fixture
async def admin_headers(admin) -> dict[str, str]:
    return auth_for(admin)
