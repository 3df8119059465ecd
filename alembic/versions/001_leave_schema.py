"""001 – Leave schema: employees, policies, requests, deductions, accruals.

Revision ID: 001_leave_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_leave_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["employee", "manager", "admin"]),
    ("probation_status", ["none", "active", "extended", "completed", "terminated"]),
    ("leave_status", ["pending", "approved", "rejected"]),
    ("half_day_period", ["morning", "afternoon"]),
    ("leave_priority", ["low", "medium", "high"]),
    ("notification_type", ["info", "action_required", "approval", "alert"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    # uuid equality inside a GiST exclusion constraint
    op.execute('CREATE EXTENSION IF NOT EXISTS "btree_gist"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                      UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code           VARCHAR(20)  NOT NULL UNIQUE,
            first_name              VARCHAR(100) NOT NULL,
            last_name               VARCHAR(100) NOT NULL,
            email                   VARCHAR(255) NOT NULL UNIQUE,
            department              VARCHAR(100),
            role                    user_role NOT NULL DEFAULT 'employee',
            reporting_manager_id    UUID REFERENCES employees(id),
            join_date               DATE,
            employee_type           VARCHAR(50),
            is_active               BOOLEAN NOT NULL DEFAULT TRUE,
            probation_status        probation_status,
            probation_start_date    DATE,
            probation_end_date      DATE,
            probation_duration_days INTEGER,
            probation_completed_at  TIMESTAMPTZ,
            created_at              TIMESTAMPTZ DEFAULT NOW(),
            updated_at              TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_employees_manager ON employees(reporting_manager_id)")

    # ── 2. leave_policies ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_policies (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            leave_type          VARCHAR(30) NOT NULL,
            total_days_per_year NUMERIC(6,2) NOT NULL,
            employee_type       VARCHAR(50),
            description         TEXT,
            is_paid             BOOLEAN DEFAULT TRUE,
            requires_approval   BOOLEAN DEFAULT TRUE,
            is_active           BOOLEAN DEFAULT TRUE,
            created_at          TIMESTAMPTZ DEFAULT NOW(),
            updated_at          TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_policies_type_class ON leave_policies(leave_type, employee_type)"
    )
    # At most one active policy per leave type and classification
    op.execute("""
        CREATE UNIQUE INDEX uq_leave_policy_active
            ON leave_policies(leave_type, COALESCE(employee_type, ''))
            WHERE is_active = TRUE
    """)

    # ── 3. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id       UUID NOT NULL REFERENCES employees(id),
            leave_type        VARCHAR(30) NOT NULL,
            start_date        DATE NOT NULL,
            end_date          DATE NOT NULL,
            total_days        NUMERIC(6,2) NOT NULL,
            reason            TEXT NOT NULL,
            is_half_day       BOOLEAN DEFAULT FALSE,
            half_day_period   half_day_period,
            short_leave_hours NUMERIC(4,2),
            status            leave_status DEFAULT 'pending',
            priority          leave_priority DEFAULT 'low',
            is_paid           BOOLEAN DEFAULT TRUE,
            submitted_at      TIMESTAMPTZ DEFAULT NOW(),
            approved_by       UUID REFERENCES employees(id),
            approved_at       TIMESTAMPTZ,
            rejection_reason  TEXT,
            CONSTRAINT ck_leave_requests_dates CHECK (end_date >= start_date),
            CONSTRAINT leave_requests_no_overlap EXCLUDE USING gist (
                employee_id WITH =,
                daterange(start_date, end_date, '[]') WITH &&
            ) WHERE (status IN ('pending', 'approved'))
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_employee_dates "
        "ON leave_requests(employee_id, start_date, end_date)"
    )
    op.execute("CREATE INDEX ix_leave_requests_status ON leave_requests(status)")

    # ── 4. salary_deductions ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE salary_deductions (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            leave_request_id UUID NOT NULL UNIQUE
                             REFERENCES leave_requests(id) ON DELETE CASCADE,
            employee_id      UUID NOT NULL REFERENCES employees(id),
            days             NUMERIC(6,2) NOT NULL,
            daily_rate       NUMERIC(12,2) NOT NULL,
            amount           NUMERIC(12,2) NOT NULL,
            is_void          BOOLEAN DEFAULT FALSE,
            created_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 5. holidays ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE holidays (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name         VARCHAR(200) NOT NULL,
            date         DATE NOT NULL,
            holiday_type VARCHAR(30) DEFAULT 'public',
            description  TEXT,
            is_active    BOOLEAN DEFAULT TRUE,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_holiday_date_name UNIQUE (date, name)
        )
    """)
    op.execute("CREATE INDEX ix_holidays_date ON holidays(date)")

    # ── 6. leave_accruals ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_accruals (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id  UUID NOT NULL REFERENCES employees(id),
            leave_type   VARCHAR(30) NOT NULL,
            year         INTEGER NOT NULL,
            month        INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
            accrual_date DATE NOT NULL,
            days_accrued NUMERIC(6,2) NOT NULL,
            total_earned NUMERIC(8,2) NOT NULL,
            available    NUMERIC(8,2) NOT NULL,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_leave_accrual_month UNIQUE (employee_id, leave_type, year, month)
        )
    """)

    # ── 7. notifications ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            recipient_id UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            type         notification_type DEFAULT 'info',
            title        VARCHAR(200) NOT NULL,
            message      TEXT NOT NULL,
            entity_type  VARCHAR(50),
            entity_id    UUID,
            is_read      BOOLEAN DEFAULT FALSE,
            read_at      TIMESTAMPTZ,
            created_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notifications_recipient_read ON notifications(recipient_id, is_read)"
    )

    # ── 8. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID REFERENCES employees(id),
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notifications",
        "leave_accruals",
        "holidays",
        "salary_deductions",
        "leave_requests",
        "leave_policies",
        "employees",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
