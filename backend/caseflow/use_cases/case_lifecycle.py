"""Case creation and deletion use-cases."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Actor, require_actor
from ..domain_errors import DomainError, ValidationError
from ..models import (
    Agreement,
    BargainingUnit,
    Case,
    CaseEvent,
    CaseReport,
    CaseStep,
    Complaint,
    Evidence,
    StepOutcome,
    User,
)
from ..schemas import CaseCreate
from ..security import require_org_entity
from ..services import search_indexing
from ..services.due_dates import due_date, now_utc
from ..services.event_log import EventType, append_event
from ..services.sequence_allocator import SequenceKind, allocate_next, format_case_number
from ..services.step_templates import resolve_initial_template

logger = logging.getLogger(__name__)


def get_case_or_404(*, db: Session, case_id: UUID, org_id: UUID, for_update: bool = False) -> Case:
    return require_org_entity(
        db,
        Case,
        entity_id=case_id,
        org_id=org_id,
        code="CASE_NOT_FOUND",
        not_found="Case not found",
        for_update=for_update,
    )


def _create_case_in_session(
    *,
    db: Session,
    actor: Actor,
    data: CaseCreate,
    created_note: str | None = None,
    now: datetime | None = None,
) -> Case:
    """Stage a case with its report, first step and CREATED event. Never commits."""
    if not data.agreement_id:
        raise ValidationError(code="CASE_AGREEMENT_REQUIRED", message="Collective agreement is required")
    if not data.bargaining_unit_id:
        raise ValidationError(code="CASE_BARGAINING_UNIT_REQUIRED", message="Bargaining unit is required")

    require_org_entity(
        db,
        Agreement,
        entity_id=data.agreement_id,
        org_id=actor.org_id,
        code="AGREEMENT_NOT_FOUND",
        not_found="Collective agreement not found",
    )
    require_org_entity(
        db,
        BargainingUnit,
        entity_id=data.bargaining_unit_id,
        org_id=actor.org_id,
        code="BARGAINING_UNIT_NOT_FOUND",
        not_found="Bargaining unit not found",
    )
    if data.assigned_to_id:
        require_org_entity(
            db,
            User,
            entity_id=data.assigned_to_id,
            org_id=actor.org_id,
            code="USER_NOT_FOUND",
            not_found="Assignee not found",
        )

    resolved = resolve_initial_template(db, data.agreement_id, data.type, data.stage)
    case_number = format_case_number(allocate_next(db, actor.org_id, SequenceKind.CASE))

    now = now or now_utc()
    filed_at = data.filed_at or now
    case = Case(
        id=uuid.uuid4(),
        org_id=actor.org_id,
        bargaining_unit_id=data.bargaining_unit_id,
        agreement_id=data.agreement_id,
        type=data.type,
        category=data.category,
        status="ACTIVE",
        current_stage=resolved.stage,
        current_step_number=resolved.step_number,
        filed_at=filed_at,
        case_number=case_number,
        external_id=data.external_id,
        estimated_cost=data.estimated_cost,
        assigned_to_id=data.assigned_to_id,
        creator_id=actor.user_id,
        last_updated_by_id=actor.user_id,
    )
    db.add(case)
    db.flush()

    db.add(
        CaseReport(
            case_id=case.id,
            grievors=[grievor.to_store() for grievor in data.grievors],
            work_information=data.work_information.to_store(),
            statement=data.statement,
            settlement_desired=data.settlement_desired,
            articles_violated=data.articles_violated,
        )
    )
    db.add(
        CaseStep(
            case_id=case.id,
            step_number=resolved.step_number,
            stage=resolved.stage,
            status="PENDING",
            due_date=due_date(filed_at, resolved.time_limit_days, resolved.is_calendar_days),
            notes=resolved.description,
        )
    )
    append_event(
        db,
        case_id=case.id,
        user_id=actor.user_id,
        event_type=EventType.CREATED,
        new_value=created_note or case_number,
    )
    return case


def create_case_use_case(*, db: Session, actor: Actor | None, data: CaseCreate) -> Case:
    """Create a case atomically: number, report, first step and CREATED event."""
    actor = require_actor(actor)
    try:
        case = _create_case_in_session(db=db, actor=actor, data=data)
        db.commit()
    except DomainError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create case in org %s", actor.org_id)
        raise DomainError(
            code="CASE_CREATE_FAILED",
            http_status=500,
            message="The case could not be saved and no changes were made. Please try again.",
        )

    logger.info("Created case %s (%s) in org %s", case.id, case.case_number, actor.org_id)
    search_indexing.request_case_reindex(case.id)
    return case


def delete_case_use_case(*, db: Session, actor: Actor | None, case_id: UUID) -> None:
    """Delete a case and everything it owns in one transaction."""
    actor = require_actor(actor)
    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id, for_update=True)

    try:
        db.query(Evidence).filter(Evidence.case_id == case.id).delete(synchronize_session=False)
        db.query(CaseEvent).filter(CaseEvent.case_id == case.id).delete(synchronize_session=False)
        db.query(StepOutcome).filter(StepOutcome.case_id == case.id).delete(synchronize_session=False)
        db.query(CaseStep).filter(CaseStep.case_id == case.id).delete(synchronize_session=False)
        db.query(CaseReport).filter(CaseReport.case_id == case.id).delete(synchronize_session=False)
        db.query(Complaint).filter(Complaint.case_id == case.id).update(
            {Complaint.case_id: None},
            synchronize_session=False,
        )
        db.delete(case)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to delete case %s", case_id)
        raise DomainError(
            code="CASE_DELETE_FAILED",
            http_status=500,
            message="The case could not be deleted and nothing was removed. Please try again.",
        )

    logger.info("Deleted case %s in org %s", case_id, actor.org_id)
    search_indexing.request_case_reindex(case_id)
