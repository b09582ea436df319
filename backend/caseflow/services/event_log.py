"""Append-only case audit trail."""
from __future__ import annotations

import enum
import json
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ..models import CaseEvent, User


class EventType(str, enum.Enum):
    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ASSIGNEE_CHANGED = "ASSIGNEE_CHANGED"
    STATEMENT_UPDATED = "STATEMENT_UPDATED"
    STEP_COMPLETED = "STEP_COMPLETED"
    COST_UPDATED = "COST_UPDATED"
    CATEGORY_CHANGED = "CATEGORY_CHANGED"
    AGREEMENT_CHANGED = "AGREEMENT_CHANGED"
    EVIDENCE_ADDED = "EVIDENCE_ADDED"
    EVIDENCE_REMOVED = "EVIDENCE_REMOVED"
    GRIEVANCE_SETTLED = "GRIEVANCE_SETTLED"
    GRIEVANCE_WITHDRAWN = "GRIEVANCE_WITHDRAWN"


def parse_event_type(raw: str) -> EventType | str:
    """Known values become EventType; anything else is kept as the stored string."""
    try:
        return EventType(raw)
    except ValueError:
        return raw


def encode_optional_value(value: Any) -> str:
    # Historical rows store "no value" (e.g. unassigned) as the empty string.
    if value is None:
        return ""
    return str(value)


def decode_optional_value(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    return value


def encode_json_value(payload: dict[str, Any]) -> str:
    return json.dumps(payload, default=str, sort_keys=True)


def append_event(
    db: Session,
    *,
    case_id: UUID,
    user_id: UUID,
    event_type: EventType | str,
    previous_value: str | None = None,
    new_value: str | None = None,
) -> CaseEvent:
    """Stage an event row in the caller's transaction. Never commits."""
    event = CaseEvent(
        case_id=case_id,
        user_id=user_id,
        event_type=event_type.value if isinstance(event_type, EventType) else str(event_type),
        previous_value=previous_value,
        new_value=new_value,
    )
    db.add(event)
    return event


def list_case_events(db: Session, case_id: UUID) -> list[CaseEvent]:
    return (
        db.query(CaseEvent)
        .filter(CaseEvent.case_id == case_id)
        .order_by(CaseEvent.seq.asc())
        .all()
    )


def fetch_creators(db: Session, case_ids: list[UUID]) -> dict[UUID, User]:
    """Resolve each case's creator from its first CREATED event in one query."""
    if not case_ids:
        return {}

    rows = (
        db.query(CaseEvent, User)
        .join(User, CaseEvent.user_id == User.id)
        .filter(
            CaseEvent.case_id.in_(case_ids),
            CaseEvent.event_type == EventType.CREATED.value,
        )
        .order_by(CaseEvent.seq.asc())
        .all()
    )
    creators: dict[UUID, User] = {}
    for event, user in rows:
        creators.setdefault(event.case_id, user)
    return creators
