"""Case step use-cases: add, update and advance."""
from __future__ import annotations

import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Actor, require_actor
from ..domain_errors import ConfigurationMissingError, ConflictError, NotFoundError, ValidationError
from ..models import Case, CaseStep, StepOutcome
from ..services import search_indexing
from ..services.due_dates import due_date, now_utc
from ..services.event_log import EventType, append_event, encode_json_value
from ..services.step_templates import resolve_next_template
from .case_lifecycle import get_case_or_404

logger = logging.getLogger(__name__)


def _get_step_or_404(*, db: Session, step_id: UUID, org_id: UUID) -> tuple[CaseStep, Case]:
    row = (
        db.query(CaseStep, Case)
        .join(Case, CaseStep.case_id == Case.id)
        .filter(
            CaseStep.id == step_id,
            Case.org_id == org_id,
        )
        .first()
    )
    if not row:
        raise NotFoundError(code="STEP_NOT_FOUND", message="Step not found", details={"id": str(step_id)})
    return row[0], row[1]


def advance_step_use_case(
    *,
    db: Session,
    actor: Actor | None,
    case_id: UUID,
    step_number: int,
    stage: str,
    due: date,
    notes: str | None = None,
) -> CaseStep:
    """Insert a new PENDING step. The previous step is left as it is."""
    actor = require_actor(actor)
    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id)

    existing = db.query(CaseStep).filter(
        CaseStep.case_id == case.id,
        CaseStep.step_number == step_number,
    ).first()
    if existing:
        raise ConflictError(
            code="STEP_ALREADY_EXISTS",
            message=f"Step {step_number} already exists for this case",
        )

    step = CaseStep(
        case_id=case.id,
        step_number=step_number,
        stage=stage,
        status="PENDING",
        due_date=due,
        notes=notes,
    )
    db.add(step)
    case.last_updated_by_id = actor.user_id
    try:
        db.commit()
    except IntegrityError:
        # Concurrent insert of the same step number.
        db.rollback()
        raise ConflictError(
            code="STEP_ALREADY_EXISTS",
            message=f"Step {step_number} already exists for this case",
        )
    return step


def update_step_use_case(
    *,
    db: Session,
    actor: Actor | None,
    step_id: UUID,
    status: str | None = None,
    notes: str | None = None,
    completed_date: datetime | None = None,
) -> CaseStep:
    """Update step status/notes.

    COMPLETED without an explicit date stamps the current time once; calling
    it again keeps the first timestamp. Any other status clears the completion
    date, even when one is supplied. A date without a status corrects the
    recorded completion date.
    """
    actor = require_actor(actor)
    step, case = _get_step_or_404(db=db, step_id=step_id, org_id=actor.org_id)

    if status is not None:
        if status == "COMPLETED":
            if completed_date is not None:
                step.completed_date = completed_date
            elif step.status != "COMPLETED" or step.completed_date is None:
                step.completed_date = now_utc()
        else:
            step.completed_date = None
        step.status = status
    elif completed_date is not None:
        step.completed_date = completed_date
    if notes is not None:
        step.notes = notes

    case.last_updated_by_id = actor.user_id
    db.commit()
    return step


def advance_to_next_step_use_case(
    *,
    db: Session,
    actor: Actor | None,
    case_id: UUID,
    outcomes: str,
) -> Case:
    """Record the current step's outcome and open the next configured step."""
    actor = require_actor(actor)
    if not outcomes or not outcomes.strip():
        raise ValidationError(code="STEP_OUTCOMES_REQUIRED", message="Outcomes are required to advance the step")

    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id, for_update=True)
    if case.status != "ACTIVE":
        raise ValidationError(
            code="CASE_NOT_ACTIVE",
            message="Only active cases can move to the next step",
            details={"status": case.status},
        )

    next_template = resolve_next_template(db, case.agreement_id, case.type, case.current_step_number)
    if next_template is None:
        raise ConfigurationMissingError(
            code="NEXT_STEP_NOT_CONFIGURED",
            message="This case is already at the last step configured for its agreement",
            details={"currentStep": case.current_step_number},
        )

    previous_step = case.current_step_number
    now = now_utc()
    db.add(
        StepOutcome(
            case_id=case.id,
            step_number=previous_step,
            stage=case.current_stage,
            outcomes=outcomes,
            recorded_by_id=actor.user_id,
        )
    )
    db.add(
        CaseStep(
            case_id=case.id,
            step_number=next_template.step_number,
            stage=next_template.stage,
            status="PENDING",
            due_date=due_date(now, next_template.time_limit_days or 0, bool(next_template.is_calendar_days)),
            notes=next_template.description,
        )
    )
    # The new step row is staged before current_step_number moves to it.
    case.current_step_number = next_template.step_number
    case.current_stage = next_template.stage
    case.last_updated_by_id = actor.user_id
    append_event(
        db,
        case_id=case.id,
        user_id=actor.user_id,
        event_type=EventType.STEP_COMPLETED,
        previous_value=str(previous_step),
        new_value=encode_json_value(
            {
                "previousStep": previous_step,
                "newStep": next_template.step_number,
                "outcomes": outcomes,
            }
        ),
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            code="STEP_ALREADY_EXISTS",
            message=f"Step {next_template.step_number} already exists for this case",
        )

    logger.info("Case %s advanced from step %s to %s", case.id, previous_step, next_template.step_number)
    search_indexing.request_case_reindex(case.id)
    return case
