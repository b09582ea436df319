"""initial case workflow schema

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )

    op.create_table(
        "users",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_users_org_id", "users", ["org_id"])

    op.create_table(
        "bargaining_units",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_bargaining_units_org_id", "bargaining_units", ["org_id"])

    op.create_table(
        "agreements",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("bargaining_unit_id", _uuid(), sa.ForeignKey("bargaining_units.id"), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_agreements_org_id", "agreements", ["org_id"])
    op.create_index("ix_agreements_bargaining_unit_id", "agreements", ["bargaining_unit_id"])

    op.create_table(
        "step_templates",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column(
            "agreement_id",
            _uuid(),
            sa.ForeignKey("agreements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("stage", sa.String(length=20), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("time_limit_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_calendar_days", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("required_participants", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("required_documents", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("type IN ('INDIVIDUAL', 'GROUP', 'POLICY')", name="chk_step_template_type"),
        sa.CheckConstraint("stage IN ('INFORMAL', 'FORMAL')", name="chk_step_template_stage"),
        sa.CheckConstraint("time_limit_days >= 0", name="chk_step_template_time_limit_non_negative"),
        sa.UniqueConstraint("agreement_id", "type", "stage", "step_number", name="uq_step_template_position"),
    )
    op.create_index("idx_step_templates_lookup", "step_templates", ["agreement_id", "type", "step_number"])

    op.create_table(
        "sequence_counters",
        sa.Column("organization_id", _uuid(), sa.ForeignKey("organizations.id"), primary_key=True, nullable=False),
        sa.Column("complaint_seq", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("grievance_seq", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "cases",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("bargaining_unit_id", _uuid(), sa.ForeignKey("bargaining_units.id"), nullable=False),
        sa.Column("agreement_id", _uuid(), sa.ForeignKey("agreements.id"), nullable=True),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="ACTIVE"),
        sa.Column("current_stage", sa.String(length=20), nullable=False),
        sa.Column("current_step_number", sa.Integer(), nullable=False),
        sa.Column("filed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("case_number", sa.String(length=32), nullable=False),
        sa.Column("external_id", sa.String(length=100), nullable=True),
        sa.Column("resolution_details", postgresql.JSONB(), nullable=True),
        sa.Column("estimated_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("actual_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("assigned_to_id", _uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("creator_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("last_updated_by_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint("type IN ('INDIVIDUAL', 'GROUP', 'POLICY')", name="chk_case_type"),
        sa.CheckConstraint("current_stage IN ('INFORMAL', 'FORMAL')", name="chk_case_stage"),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'SETTLED', 'WITHDRAWN', 'RESOLVED_ARBITRATION')",
            name="chk_case_status",
        ),
        sa.UniqueConstraint("org_id", "case_number", name="uq_case_org_number"),
    )
    op.create_index("ix_cases_org_id", "cases", ["org_id"])
    op.create_index("ix_cases_bargaining_unit_id", "cases", ["bargaining_unit_id"])
    op.create_index("ix_cases_assigned_to_id", "cases", ["assigned_to_id"])
    op.create_index("idx_cases_org_created", "cases", ["org_id", "created_at"])

    op.create_table(
        "case_reports",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("grievors", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("work_information", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("statement", sa.Text(), nullable=False, server_default=""),
        sa.Column("settlement_desired", sa.Text(), nullable=False, server_default=""),
        sa.Column("articles_violated", sa.Text(), nullable=True),
    )

    op.create_table(
        "case_steps",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'OVERDUE', 'EXTENDED')",
            name="chk_case_step_status",
        ),
        sa.CheckConstraint("stage IN ('INFORMAL', 'FORMAL')", name="chk_case_step_stage"),
        sa.UniqueConstraint("case_id", "step_number", name="uq_case_step_number"),
    )
    op.create_index("ix_case_steps_case_id", "case_steps", ["case_id"])

    op.create_table(
        "step_outcomes",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(length=20), nullable=False),
        sa.Column("outcomes", sa.Text(), nullable=False),
        sa.Column("recorded_by_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_step_outcomes_case_id", "step_outcomes", ["case_id"])

    op.create_table(
        "case_events",
        sa.Column("seq", sa.BigInteger(), sa.Identity(), primary_key=True, nullable=False),
        sa.Column("id", _uuid(), nullable=False, unique=True),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("previous_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_case_events_event_type", "case_events", ["event_type"])
    op.create_index("ix_case_events_created_at", "case_events", ["created_at"])
    op.create_index("idx_case_events_case_seq", "case_events", ["case_id", "seq"])

    op.create_table(
        "complaints",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("bargaining_unit_id", _uuid(), sa.ForeignKey("bargaining_units.id"), nullable=False),
        sa.Column("agreement_id", _uuid(), sa.ForeignKey("agreements.id"), nullable=True),
        sa.Column("complaint_number", sa.String(length=32), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="INDIVIDUAL"),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="OPEN"),
        sa.Column("complainant_member_number", sa.String(length=100), nullable=True),
        sa.Column("complainant_first_name", sa.String(length=255), nullable=True),
        sa.Column("complainant_last_name", sa.String(length=255), nullable=True),
        sa.Column("complainant_email", sa.String(length=255), nullable=True),
        sa.Column("complainant_phone", sa.String(length=100), nullable=True),
        sa.Column("complainant_address", sa.String(length=512), nullable=True),
        sa.Column("complainant_city", sa.String(length=255), nullable=True),
        sa.Column("complainant_postal_code", sa.String(length=20), nullable=True),
        sa.Column("complainant_position", sa.String(length=255), nullable=True),
        sa.Column("complainant_department", sa.String(length=255), nullable=True),
        sa.Column("complainant_supervisor", sa.String(length=255), nullable=True),
        sa.Column("employees", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("issue", sa.Text(), nullable=False, server_default=""),
        sa.Column("settlement_desired", sa.Text(), nullable=False, server_default=""),
        sa.Column("articles_violated", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id", ondelete="SET NULL"), nullable=True, unique=True),
        sa.Column("created_by_id", _uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('OPEN', 'IN_PROGRESS', 'GRIEVED', 'CLOSED', 'DELETED')",
            name="chk_complaint_status",
        ),
        sa.CheckConstraint("type IN ('INDIVIDUAL', 'GROUP', 'POLICY')", name="chk_complaint_type"),
        sa.UniqueConstraint("org_id", "complaint_number", name="uq_complaint_org_number"),
    )
    op.create_index("ix_complaints_org_id", "complaints", ["org_id"])

    op.create_table(
        "evidence",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("org_id", _uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=True),
        sa.Column("complaint_id", _uuid(), sa.ForeignKey("complaints.id"), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("storage_key", sa.String(length=1024), nullable=False),
        sa.Column("uploaded_by_id", _uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_evidence_org_id", "evidence", ["org_id"])
    op.create_index("ix_evidence_case_id", "evidence", ["case_id"])
    op.create_index("ix_evidence_complaint_id", "evidence", ["complaint_id"])


def downgrade() -> None:
    op.drop_table("evidence")
    op.drop_table("complaints")
    op.drop_table("case_events")
    op.drop_table("step_outcomes")
    op.drop_table("case_steps")
    op.drop_table("case_reports")
    op.drop_table("cases")
    op.drop_table("sequence_counters")
    op.drop_table("step_templates")
    op.drop_table("agreements")
    op.drop_table("bargaining_units")
    op.drop_table("users")
    op.drop_table("organizations")
