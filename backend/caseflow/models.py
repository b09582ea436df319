"""SQLAlchemy models for the case workflow."""
from sqlalchemy import (
    BigInteger, Boolean, Column, String, Integer, Date, DateTime, Text, Numeric,
    ForeignKey, CheckConstraint, Index, UniqueConstraint, event
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import func
import uuid
from .database import Base


CASE_TYPES = ["INDIVIDUAL", "GROUP", "POLICY"]
CASE_STAGES = ["INFORMAL", "FORMAL"]
CASE_STATUSES = ["ACTIVE", "SETTLED", "WITHDRAWN", "RESOLVED_ARBITRATION"]
TERMINAL_CASE_STATUSES = ["SETTLED", "WITHDRAWN", "RESOLVED_ARBITRATION"]
STEP_STATUSES = ["PENDING", "IN_PROGRESS", "COMPLETED", "OVERDUE", "EXTENDED"]
COMPLAINT_STATUSES = ["OPEN", "IN_PROGRESS", "GRIEVED", "CLOSED", "DELETED"]


class Organization(Base):
    """Organization model (multi-tenant support)."""
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class User(Base):
    """Staff member known to the identity provider."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class BargainingUnit(Base):
    __tablename__ = "bargaining_units"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Agreement(Base):
    """Collective agreement; owns the step templates of its grievance procedure."""
    __tablename__ = "agreements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    bargaining_unit_id = Column(UUID(as_uuid=True), ForeignKey("bargaining_units.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    effective_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class StepTemplate(Base):
    """Configured procedural step for (agreement, case type, stage)."""
    __tablename__ = "step_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agreement_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agreements.id", ondelete="CASCADE"),
        nullable=False,
    )
    type = Column(String(20), nullable=False)
    stage = Column(String(20), nullable=False)
    step_number = Column(Integer, nullable=False)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=False, default="")
    time_limit_days = Column(Integer, nullable=False, default=0)
    is_calendar_days = Column(Boolean, nullable=False, default=False)
    required_participants = Column(JSONB, nullable=False, default=list)
    required_documents = Column(JSONB, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(type.in_(CASE_TYPES), name="chk_step_template_type"),
        CheckConstraint(stage.in_(CASE_STAGES), name="chk_step_template_stage"),
        CheckConstraint(time_limit_days >= 0, name="chk_step_template_time_limit_non_negative"),
        UniqueConstraint("agreement_id", "type", "stage", "step_number", name="uq_step_template_position"),
        Index("idx_step_templates_lookup", "agreement_id", "type", "step_number"),
    )


class SequenceCounter(Base):
    """Per-organization number counters; one row per org, created lazily."""
    __tablename__ = "sequence_counters"

    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), primary_key=True)
    complaint_seq = Column(Integer, nullable=False, default=0)
    grievance_seq = Column(Integer, nullable=False, default=0)


class Case(Base):
    """Formal dispute tracked through the step procedure."""
    __tablename__ = "cases"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    bargaining_unit_id = Column(UUID(as_uuid=True), ForeignKey("bargaining_units.id"), nullable=False, index=True)
    agreement_id = Column(UUID(as_uuid=True), ForeignKey("agreements.id"), nullable=True)
    type = Column(String(20), nullable=False)
    category = Column(String(255), nullable=True)
    status = Column(String(30), nullable=False, default="ACTIVE")
    current_stage = Column(String(20), nullable=False)
    current_step_number = Column(Integer, nullable=False)
    filed_at = Column(DateTime(timezone=True), nullable=False)
    case_number = Column(String(32), nullable=False)
    external_id = Column(String(100), nullable=True)
    resolution_details = Column(JSONB, nullable=True)
    estimated_cost = Column(Numeric(12, 2), nullable=True)
    actual_cost = Column(Numeric(12, 2), nullable=True)
    assigned_to_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    last_updated_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(type.in_(CASE_TYPES), name="chk_case_type"),
        CheckConstraint(current_stage.in_(CASE_STAGES), name="chk_case_stage"),
        CheckConstraint(status.in_(CASE_STATUSES), name="chk_case_status"),
        UniqueConstraint("org_id", "case_number", name="uq_case_org_number"),
        Index("idx_cases_org_created", "org_id", "created_at"),
    )


class CaseReport(Base):
    """Narrative payload of a case (one per case)."""
    __tablename__ = "case_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(
        UUID(as_uuid=True),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    grievors = Column(JSONB, nullable=False, default=list)
    work_information = Column(JSONB, nullable=False, default=dict)
    statement = Column(Text, nullable=False, default="")
    settlement_desired = Column(Text, nullable=False, default="")
    articles_violated = Column(Text, nullable=True)


class CaseStep(Base):
    __tablename__ = "case_steps"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(
        UUID(as_uuid=True),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_number = Column(Integer, nullable=False)
    stage = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    due_date = Column(Date, nullable=False)
    completed_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(STEP_STATUSES), name="chk_case_step_status"),
        CheckConstraint(stage.in_(CASE_STAGES), name="chk_case_step_stage"),
        UniqueConstraint("case_id", "step_number", name="uq_case_step_number"),
    )


class StepOutcome(Base):
    """Outcome text recorded when a case moves past a step."""
    __tablename__ = "step_outcomes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(
        UUID(as_uuid=True),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_number = Column(Integer, nullable=False)
    stage = Column(String(20), nullable=False)
    outcomes = Column(Text, nullable=False)
    recorded_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CaseEvent(Base):
    """Append-only audit row. event_type is an open vocabulary (no check constraint).

    ``seq`` is the write order; rows of one transaction share ``created_at``.
    """
    __tablename__ = "case_events"

    seq = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    id = Column(UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4)
    case_id = Column(
        UUID(as_uuid=True),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    event_type = Column(String(64), nullable=False, index=True)
    previous_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        Index("idx_case_events_case_seq", "case_id", "seq"),
    )


@event.listens_for(CaseEvent, "before_update")
def _reject_case_event_update(_mapper, _connection, target):
    raise ValueError(f"Case events are append-only (event {target.id})")


class Evidence(Base):
    """Reference to a stored file; bytes live in external storage."""
    __tablename__ = "evidence"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    case_id = Column(UUID(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=True, index=True)
    complaint_id = Column(UUID(as_uuid=True), ForeignKey("complaints.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    storage_key = Column(String(1024), nullable=False)
    uploaded_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Complaint(Base):
    """Informal complaint that may be elevated to a case."""
    __tablename__ = "complaints"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    bargaining_unit_id = Column(UUID(as_uuid=True), ForeignKey("bargaining_units.id"), nullable=False)
    agreement_id = Column(UUID(as_uuid=True), ForeignKey("agreements.id"), nullable=True)
    complaint_number = Column(String(32), nullable=False)
    type = Column(String(20), nullable=False, default="INDIVIDUAL")
    category = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="OPEN")
    complainant_member_number = Column(String(100), nullable=True)
    complainant_first_name = Column(String(255), nullable=True)
    complainant_last_name = Column(String(255), nullable=True)
    complainant_email = Column(String(255), nullable=True)
    complainant_phone = Column(String(100), nullable=True)
    complainant_address = Column(String(512), nullable=True)
    complainant_city = Column(String(255), nullable=True)
    complainant_postal_code = Column(String(20), nullable=True)
    complainant_position = Column(String(255), nullable=True)
    complainant_department = Column(String(255), nullable=True)
    complainant_supervisor = Column(String(255), nullable=True)
    # Group complaints list affected employees as camelCase grievor dicts.
    employees = Column(JSONB, nullable=False, default=list)
    issue = Column(Text, nullable=False, default="")
    settlement_desired = Column(Text, nullable=False, default="")
    articles_violated = Column(JSONB, nullable=False, default=list)
    case_id = Column(UUID(as_uuid=True), ForeignKey("cases.id", ondelete="SET NULL"), nullable=True, unique=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(COMPLAINT_STATUSES), name="chk_complaint_status"),
        CheckConstraint(type.in_(CASE_TYPES), name="chk_complaint_type"),
        UniqueConstraint("org_id", "complaint_number", name="uq_complaint_org_number"),
    )
