"""Agreement step template endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
from ..auth import Actor, get_current_actor
from ..database import get_db
from ..models import Agreement
from ..schemas import CASE_STAGE_PATTERN, CASE_TYPE_PATTERN, ResolvedStepResponse, StepTemplateResponse
from ..security import require_org_entity
from ..services.step_templates import list_agreement_steps, resolve_initial_template

router = APIRouter(prefix="/agreements", tags=["agreements"])


def _require_agreement(db: Session, agreement_id: UUID, actor: Actor) -> Agreement:
    return require_org_entity(
        db,
        Agreement,
        entity_id=agreement_id,
        org_id=actor.org_id,
        code="AGREEMENT_NOT_FOUND",
        not_found="Collective agreement not found",
    )


@router.get("/{agreement_id}/step-templates", response_model=list[StepTemplateResponse])
def get_step_templates(
    agreement_id: UUID,
    case_type: str = Query(..., alias="type", pattern=CASE_TYPE_PATTERN),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """All configured steps for a case type, in step order."""
    agreement = _require_agreement(db, agreement_id, actor)
    return list_agreement_steps(db, agreement.id, case_type)


@router.get("/{agreement_id}/step-templates/initial", response_model=ResolvedStepResponse)
def get_initial_step_template(
    agreement_id: UUID,
    case_type: str = Query(..., alias="type", pattern=CASE_TYPE_PATTERN),
    stage: str = Query(..., pattern=CASE_STAGE_PATTERN),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Step a new case of this type and stage would start at."""
    agreement = _require_agreement(db, agreement_id, actor)
    resolved = resolve_initial_template(db, agreement.id, case_type, stage)
    return ResolvedStepResponse(
        template=StepTemplateResponse.model_validate(resolved.template),
        step_number=resolved.step_number,
        stage=resolved.stage,
        time_limit_days=resolved.time_limit_days,
        is_calendar_days=resolved.is_calendar_days,
    )
