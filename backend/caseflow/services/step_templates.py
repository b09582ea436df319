"""Step template resolution for an agreement's grievance procedure."""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import ConfigurationMissingError
from ..models import StepTemplate


@dataclass(frozen=True)
class ResolvedStep:
    """Template chosen for a new case, carrying the stage the case will report."""

    template: StepTemplate
    step_number: int
    stage: str
    time_limit_days: int
    is_calendar_days: bool
    description: str


def resolve_initial_template(db: Session, agreement_id: UUID, case_type: str, stage: str) -> ResolvedStep:
    templates = (
        db.query(StepTemplate)
        .filter(
            StepTemplate.agreement_id == agreement_id,
            StepTemplate.type == case_type,
            StepTemplate.stage == stage,
        )
        .order_by(StepTemplate.step_number.asc())
        .all()
    )
    if not templates:
        # Agreements often configure only one stage; start at the lowest step of any stage.
        templates = (
            db.query(StepTemplate)
            .filter(
                StepTemplate.agreement_id == agreement_id,
                StepTemplate.type == case_type,
            )
            .order_by(StepTemplate.step_number.asc())
            .all()
        )
    if not templates:
        raise ConfigurationMissingError(
            code="STEP_TEMPLATES_MISSING",
            message=(
                f"No grievance steps are set up for the {case_type.lower()} grievance type. "
                "Ask an administrator to configure the agreement's grievance procedure."
            ),
            details={"agreementId": str(agreement_id), "type": case_type},
        )

    template = templates[0]
    # The case reports the requested stage even when the template came from another stage.
    return ResolvedStep(
        template=template,
        step_number=template.step_number,
        stage=stage,
        time_limit_days=template.time_limit_days or 0,
        is_calendar_days=bool(template.is_calendar_days),
        description=template.description or "",
    )


def resolve_next_template(
    db: Session, agreement_id: UUID | None, case_type: str, current_step_number: int
) -> StepTemplate | None:
    """Template for step current+1 of the same type, any stage."""
    if agreement_id is None:
        return None
    return (
        db.query(StepTemplate)
        .filter(
            StepTemplate.agreement_id == agreement_id,
            StepTemplate.type == case_type,
            StepTemplate.step_number == current_step_number + 1,
        )
        .order_by(StepTemplate.stage.asc())
        .first()
    )


def has_next_step(db: Session, agreement_id: UUID | None, case_type: str, current_step_number: int) -> bool:
    return resolve_next_template(db, agreement_id, case_type, current_step_number) is not None


def list_agreement_steps(db: Session, agreement_id: UUID, case_type: str) -> list[StepTemplate]:
    return (
        db.query(StepTemplate)
        .filter(
            StepTemplate.agreement_id == agreement_id,
            StepTemplate.type == case_type,
        )
        .order_by(StepTemplate.step_number.asc(), StepTemplate.stage.asc())
        .all()
    )
