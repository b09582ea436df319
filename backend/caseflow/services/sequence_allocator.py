"""Per-organization case/complaint number allocation."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..models import SequenceCounter


class SequenceKind(str, enum.Enum):
    CASE = "case"
    COMPLAINT = "complaint"


_COUNTER_COLUMNS = {
    SequenceKind.CASE: SequenceCounter.grievance_seq,
    SequenceKind.COMPLAINT: SequenceCounter.complaint_seq,
}

_NUMBER_PREFIXES = {
    SequenceKind.CASE: "G-",
    SequenceKind.COMPLAINT: "C-",
}


@dataclass(frozen=True)
class SequenceSnapshot:
    organization_id: UUID
    case_seq: int
    complaint_seq: int


def _increment(db: Session, org_id: UUID, kind: SequenceKind) -> int | None:
    column = _COUNTER_COLUMNS[kind]
    stmt = (
        update(SequenceCounter)
        .where(SequenceCounter.organization_id == org_id)
        .values({column.key: column + 1})
        .returning(column)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).scalar_one_or_none()


def _ensure_counter_row(db: Session, org_id: UUID) -> None:
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        insert_fn = postgresql.insert
    elif dialect == "sqlite":
        insert_fn = sqlite.insert
    else:
        raise RuntimeError(f"Sequence allocation is not supported on dialect {dialect!r}")

    stmt = (
        insert_fn(SequenceCounter)
        .values(organization_id=org_id, complaint_seq=0, grievance_seq=0)
        .on_conflict_do_nothing(index_elements=[SequenceCounter.organization_id])
    )
    db.execute(stmt)


def allocate_next(db: Session, org_id: UUID, kind: SequenceKind) -> int:
    """Atomically increment and return the counter inside the caller's transaction.

    The increment is a single UPDATE ... RETURNING, so concurrent callers are
    serialized by the row lock and never observe the same value. The row is
    created on first use with INSERT ... ON CONFLICT DO NOTHING, which lets two
    first callers race without either failing.
    """
    kind = SequenceKind(kind)
    value = _increment(db, org_id, kind)
    if value is None:
        _ensure_counter_row(db, org_id)
        value = _increment(db, org_id, kind)
    if value is None:
        raise RuntimeError(f"Sequence counter row missing for organization {org_id}")
    return int(value)


def format_sequence_number(kind: SequenceKind, value: int) -> str:
    # Width 3 is a minimum; 1000 renders as G-1000.
    return f"{_NUMBER_PREFIXES[SequenceKind(kind)]}{value:03d}"


def format_case_number(value: int) -> str:
    return format_sequence_number(SequenceKind.CASE, value)


def format_complaint_number(value: int) -> str:
    return format_sequence_number(SequenceKind.COMPLAINT, value)


def get_sequence_snapshot(db: Session, org_id: UUID) -> SequenceSnapshot:
    """Current counter values; zeros when the org has never allocated."""
    row = db.query(SequenceCounter).filter(SequenceCounter.organization_id == org_id).first()
    if not row:
        return SequenceSnapshot(organization_id=org_id, case_seq=0, complaint_seq=0)
    return SequenceSnapshot(
        organization_id=org_id,
        case_seq=row.grievance_seq or 0,
        complaint_seq=row.complaint_seq or 0,
    )
