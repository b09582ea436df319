"""Case field, assignee and status update use-cases."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth import Actor, require_actor
from ..domain_errors import NotFoundError, ValidationError
from ..models import CASE_STAGES, CASE_STATUSES, Case, CaseReport, User
from ..schemas import ResolutionDetails
from ..security import require_org_entity
from ..services import search_indexing
from ..services.due_dates import now_utc
from ..services.event_log import EventType, append_event, encode_optional_value
from ..services.resolution import merge_resolution
from .case_lifecycle import get_case_or_404

logger = logging.getLogger(__name__)

REPORT_FIELDS = ("statement", "articles_violated", "settlement_desired")
COST_FIELDS = ("estimated_cost", "actual_cost")


@dataclass(frozen=True)
class FieldChange:
    previous: Any
    new: Any


def _get_report_or_404(*, db: Session, case_id: UUID) -> CaseReport:
    report = db.query(CaseReport).filter(CaseReport.case_id == case_id).first()
    if not report:
        raise NotFoundError(code="CASE_REPORT_NOT_FOUND", message="Case report not found")
    return report


def _normalize_resolution(
    incoming: dict[str, Any] | ResolutionDetails | None, actor: Actor
) -> dict[str, Any] | None:
    """Validate incoming details; resolver and date are filled in when missing."""
    if incoming is None:
        return None
    if isinstance(incoming, ResolutionDetails):
        return incoming.to_store()
    payload = dict(incoming)
    payload.setdefault("resolvedBy", str(actor.user_id))
    payload.setdefault("resolutionDate", now_utc().isoformat())
    try:
        return ResolutionDetails.model_validate(payload).to_store()
    except ValueError as exc:
        raise ValidationError(
            code="RESOLUTION_DETAILS_INVALID",
            message="Resolution details need a resolution type, date and resolver",
            details={"error": str(exc)},
        )


def change_assignee_use_case(
    *, db: Session, actor: Actor | None, case_id: UUID, assigned_to_id: UUID | None
) -> Case:
    actor = require_actor(actor)
    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id)
    if assigned_to_id is not None:
        require_org_entity(
            db,
            User,
            entity_id=assigned_to_id,
            org_id=actor.org_id,
            code="USER_NOT_FOUND",
            not_found="Assignee not found",
        )

    previous = case.assigned_to_id
    case.assigned_to_id = assigned_to_id
    case.last_updated_by_id = actor.user_id
    append_event(
        db,
        case_id=case.id,
        user_id=actor.user_id,
        event_type=EventType.ASSIGNEE_CHANGED,
        previous_value=encode_optional_value(previous),
        new_value=encode_optional_value(assigned_to_id),
    )
    db.commit()
    search_indexing.request_case_reindex(case.id)
    return case


def update_status_use_case(
    *,
    db: Session,
    actor: Actor | None,
    case_id: UUID,
    new_status: str,
    new_stage: str | None = None,
    outcomes: str | None = None,
    resolution_details: dict[str, Any] | ResolutionDetails | None = None,
    extra_event: EventType | None = None,
    extra_event_value: str | None = None,
) -> Case:
    """Change status (and optionally stage), merging outcomes into resolution details."""
    actor = require_actor(actor)
    if new_status not in CASE_STATUSES:
        raise ValidationError(code="CASE_STATUS_INVALID", message=f"Unknown case status: {new_status}")
    if new_stage is not None and new_stage not in CASE_STAGES:
        raise ValidationError(code="CASE_STAGE_INVALID", message=f"Unknown case stage: {new_stage}")

    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id, for_update=True)

    previous_status = case.status
    case.resolution_details = merge_resolution(
        existing=case.resolution_details,
        outcomes=outcomes,
        incoming=_normalize_resolution(resolution_details, actor),
        actor_id=actor.user_id,
        new_status=new_status,
    )
    case.status = new_status
    if new_stage is not None:
        case.current_stage = new_stage
    case.last_updated_by_id = actor.user_id

    append_event(
        db,
        case_id=case.id,
        user_id=actor.user_id,
        event_type=EventType.STATUS_CHANGED,
        previous_value=previous_status,
        new_value=new_status,
    )
    if extra_event is not None:
        append_event(
            db,
            case_id=case.id,
            user_id=actor.user_id,
            event_type=extra_event,
            previous_value=previous_status,
            new_value=extra_event_value,
        )
    db.commit()

    logger.info("Case %s status %s -> %s", case.id, previous_status, new_status)
    search_indexing.request_case_reindex(case.id)
    return case


def _close_with_resolution(
    *, db: Session, actor: Actor | None, case_id: UUID, details: str, status: str, event_type: EventType
) -> Case:
    actor = require_actor(actor)
    if not details or not details.strip():
        raise ValidationError(
            code="RESOLUTION_DETAILS_REQUIRED",
            message=f"Details are required when a case is {status.lower()}",
        )
    resolution = {
        "resolutionType": status,
        "resolutionDate": now_utc().isoformat(),
        "resolvedBy": str(actor.user_id),
        "details": details,
        "outcomes": details,
    }
    return update_status_use_case(
        db=db,
        actor=actor,
        case_id=case_id,
        new_status=status,
        resolution_details=resolution,
        extra_event=event_type,
        extra_event_value=details,
    )


def settle_case_use_case(*, db: Session, actor: Actor | None, case_id: UUID, details: str) -> Case:
    return _close_with_resolution(
        db=db,
        actor=actor,
        case_id=case_id,
        details=details,
        status="SETTLED",
        event_type=EventType.GRIEVANCE_SETTLED,
    )


def withdraw_case_use_case(*, db: Session, actor: Actor | None, case_id: UUID, details: str) -> Case:
    return _close_with_resolution(
        db=db,
        actor=actor,
        case_id=case_id,
        details=details,
        status="WITHDRAWN",
        event_type=EventType.GRIEVANCE_WITHDRAWN,
    )


def _field_event_value(field: str, value: str | None) -> str | None:
    # STATEMENT_UPDATED covers every report field; non-statement values carry their field name.
    if field == "statement" or value is None:
        return value
    return f"{field}={value}"


def update_field_use_case(
    *,
    db: Session,
    actor: Actor | None,
    case_id: UUID,
    field: str,
    value: str | None,
    record_event: bool = False,
) -> FieldChange:
    """Update one narrative field of the case report and return old/new values."""
    actor = require_actor(actor)
    if field not in REPORT_FIELDS:
        raise ValidationError(
            code="CASE_FIELD_NOT_EDITABLE",
            message=f"Field {field} cannot be updated",
            details={"allowed": list(REPORT_FIELDS)},
        )
    if value is None and field != "articles_violated":
        value = ""

    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id)
    report = _get_report_or_404(db=db, case_id=case.id)

    previous = getattr(report, field)
    setattr(report, field, value)
    case.last_updated_by_id = actor.user_id
    if record_event:
        append_event(
            db,
            case_id=case.id,
            user_id=actor.user_id,
            event_type=EventType.STATEMENT_UPDATED,
            previous_value=_field_event_value(field, previous),
            new_value=_field_event_value(field, value),
        )
    db.commit()
    search_indexing.request_case_reindex(case.id)
    return FieldChange(previous=previous, new=value)


def update_cost_use_case(
    *, db: Session, actor: Actor | None, case_id: UUID, field: str, value: Decimal | None
) -> Case:
    actor = require_actor(actor)
    if field not in COST_FIELDS:
        raise ValidationError(code="CASE_COST_FIELD_INVALID", message=f"Unknown cost field: {field}")
    if value is not None and value < 0:
        raise ValidationError(code="CASE_COST_NEGATIVE", message="Cost cannot be negative")

    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id)
    previous = getattr(case, field)
    setattr(case, field, value)
    case.last_updated_by_id = actor.user_id
    append_event(
        db,
        case_id=case.id,
        user_id=actor.user_id,
        event_type=EventType.COST_UPDATED,
        previous_value=None if previous is None else f"{field}={previous}",
        new_value=None if value is None else f"{field}={value}",
    )
    db.commit()
    return case


def update_category_use_case(
    *, db: Session, actor: Actor | None, case_id: UUID, category: str | None
) -> Case:
    actor = require_actor(actor)
    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id)
    category = category.strip() if category else None

    previous = case.category
    case.category = category or None
    case.last_updated_by_id = actor.user_id
    append_event(
        db,
        case_id=case.id,
        user_id=actor.user_id,
        event_type=EventType.CATEGORY_CHANGED,
        previous_value=previous,
        new_value=case.category,
    )
    db.commit()
    search_indexing.request_case_reindex(case.id)
    return case
