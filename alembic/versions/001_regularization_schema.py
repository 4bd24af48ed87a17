"""001 – Regularization schema: attendance records, requests, audit log.

Revision ID: 001_regularization_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_regularization_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("attendance_status", ["present", "absent", "late", "partial"]),
    ("regularization_request_type", ["check_in", "check_out", "full_day"]),
    (
        "regularization_status",
        ["pending", "approved", "rejected", "more_info_required"],
    ),
    (
        "regularization_audit_action",
        ["submitted", "approved", "rejected", "more_info_requested"],
    ),
    ("regularization_actor_type", ["employee", "reviewer"]),
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
    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. attendance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_records (
            id              UUID PRIMARY KEY,
            employee_id     UUID NOT NULL,
            company_id      UUID NOT NULL,
            date            DATE NOT NULL,
            check_in        TIME,
            check_out       TIME,
            work_hours      NUMERIC(5, 2) NOT NULL DEFAULT 0
                            CHECK (work_hours >= 0),
            overtime_hours  NUMERIC(5, 2) NOT NULL DEFAULT 0
                            CHECK (overtime_hours >= 0),
            status          attendance_status NOT NULL DEFAULT 'absent',
            is_regularized  BOOLEAN DEFAULT FALSE,
            source          VARCHAR(50) DEFAULT 'system',
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_attendance_emp_date UNIQUE (employee_id, date)
        )
    """)
    op.create_index(
        "ix_attendance_company_date", "attendance_records", ["company_id", "date"],
    )

    # ── 2. attendance_regularization_requests ─────────────────────────────
    op.execute("""
        CREATE TABLE attendance_regularization_requests (
            id                   UUID PRIMARY KEY,
            employee_id          UUID NOT NULL,
            company_id           UUID NOT NULL,
            attendance_date      DATE NOT NULL,
            request_type         regularization_request_type NOT NULL,
            current_check_in     TIME,
            current_check_out    TIME,
            requested_check_in   TIME,
            requested_check_out  TIME,
            reason               TEXT NOT NULL CHECK (length(trim(reason)) > 0),
            supporting_evidence  JSONB,
            status               regularization_status NOT NULL DEFAULT 'pending',
            reviewed_by          UUID,
            reviewed_at          TIMESTAMPTZ,
            review_notes         TEXT,
            submitted_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.create_index(
        "ix_regularization_employee_date",
        "attendance_regularization_requests",
        ["employee_id", "attendance_date"],
    )
    op.create_index(
        "ix_regularization_company_status",
        "attendance_regularization_requests",
        ["company_id", "status"],
    )
    op.create_index(
        "uq_regularization_pending_per_day",
        "attendance_regularization_requests",
        ["employee_id", "attendance_date"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    # ── 3. attendance_regularization_audit_logs ───────────────────────────
    op.execute("""
        CREATE TABLE attendance_regularization_audit_logs (
            id          UUID PRIMARY KEY,
            request_id  UUID NOT NULL
                        REFERENCES attendance_regularization_requests(id)
                        ON DELETE RESTRICT,
            sequence    INTEGER NOT NULL,
            action      regularization_audit_action NOT NULL,
            actor_id    UUID NOT NULL,
            actor_type  regularization_actor_type NOT NULL,
            ip_address  INET,
            user_agent  TEXT,
            reason      TEXT,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_regularization_audit_seq UNIQUE (request_id, sequence)
        )
    """)
    op.create_index(
        "ix_regularization_audit_created_at",
        "attendance_regularization_audit_logs",
        ["created_at"],
    )
    op.create_index(
        "ix_regularization_audit_actor_id",
        "attendance_regularization_audit_logs",
        ["actor_id"],
    )

    # Audit rows are append-only at the database level too
    op.execute("""
        CREATE OR REPLACE FUNCTION regularization_audit_immutable()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'attendance_regularization_audit_logs is append-only';
        END;
        $$ LANGUAGE plpgsql
    """)
    op.execute("""
        CREATE TRIGGER trg_regularization_audit_immutable
        BEFORE UPDATE OR DELETE ON attendance_regularization_audit_logs
        FOR EACH ROW EXECUTE FUNCTION regularization_audit_immutable()
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    op.execute(
        "DROP TRIGGER IF EXISTS trg_regularization_audit_immutable "
        "ON attendance_regularization_audit_logs"
    )
    op.execute("DROP FUNCTION IF EXISTS regularization_audit_immutable()")

    # Drop tables in reverse dependency order
    tables = [
        "attendance_regularization_audit_logs",
        "attendance_regularization_requests",
        "attendance_records",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
