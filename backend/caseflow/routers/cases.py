"""Case endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional
from ..auth import Actor, get_current_actor
from ..config import settings
from ..database import get_db
from ..schemas import (
    AdvanceStepRequest,
    AssigneeUpdate,
    CaseCreate,
    CaseDetailResponse,
    CaseEventResponse,
    CaseListResponse,
    CaseReportResponse,
    CaseResponse,
    CaseStepResponse,
    CategoryUpdate,
    CostUpdate,
    FieldChangeResponse,
    ReportFieldUpdate,
    ResolutionRequest,
    StatusUpdate,
    StepCreate,
    StepUpdate,
)
from ..services.case_response_builder import build_case_response_context, case_to_response, cases_to_response
from ..services.event_log import list_case_events
from ..use_cases.case_lifecycle import create_case_use_case, delete_case_use_case, get_case_or_404
from ..use_cases.case_listing import CaseFilters, get_case_detail, list_cases_page
from ..use_cases.case_steps import (
    advance_step_use_case,
    advance_to_next_step_use_case,
    update_step_use_case,
)
from ..use_cases.case_updates import (
    change_assignee_use_case,
    settle_case_use_case,
    update_category_use_case,
    update_cost_use_case,
    update_field_use_case,
    update_status_use_case,
    withdraw_case_use_case,
)

router = APIRouter(prefix="/cases", tags=["cases"])


def _case_response(db: Session, case, actor: Actor) -> CaseResponse:
    return cases_to_response(db, [case], actor)[0]


@router.get("", response_model=CaseListResponse)
def list_cases(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=settings.CASE_LIST_MAX_PAGE_SIZE),
    search: Optional[str] = None,
    status: Optional[str] = None,
    case_type: Optional[str] = Query(None, alias="type"),
    bargaining_unit_id: Optional[UUID] = None,
    assigned_to_id: Optional[UUID] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get a page of cases, newest first."""
    result = list_cases_page(
        db=db,
        actor=actor,
        page=page,
        page_size=page_size,
        filters=CaseFilters(
            search=search,
            status=status,
            case_type=case_type,
            bargaining_unit_id=bargaining_unit_id,
            assigned_to_id=assigned_to_id,
        ),
    )
    return CaseListResponse(
        items=cases_to_response(db, result.items, actor),
        total_count=result.total_count,
        page=result.page,
        page_size=result.page_size,
    )


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def create_case(
    data: CaseCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Create case with its first step."""
    case = create_case_use_case(db=db, actor=actor, data=data)
    return _case_response(db, case, actor)


@router.get("/{case_id}", response_model=CaseDetailResponse)
def get_case(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get case with report and steps."""
    detail = get_case_detail(db=db, actor=actor, case_id=case_id)
    context = build_case_response_context(db, [detail.case], actor)
    base = case_to_response(detail.case, context)
    return CaseDetailResponse(
        **base.model_dump(),
        report=CaseReportResponse.model_validate(detail.report) if detail.report else None,
        steps=[CaseStepResponse.model_validate(step) for step in detail.steps],
    )


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_case(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Delete case with report, steps, events and evidence."""
    delete_case_use_case(db=db, actor=actor, case_id=case_id)


@router.post("/{case_id}/steps", response_model=CaseStepResponse, status_code=status.HTTP_201_CREATED)
def add_step(
    case_id: UUID,
    data: StepCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Add a step to the case."""
    return advance_step_use_case(
        db=db,
        actor=actor,
        case_id=case_id,
        step_number=data.step_number,
        stage=data.stage,
        due=data.due_date,
        notes=data.notes,
    )


@router.post("/{case_id}/steps/advance", response_model=CaseResponse)
def advance_to_next_step(
    case_id: UUID,
    data: AdvanceStepRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Record outcomes and move to the next configured step."""
    case = advance_to_next_step_use_case(db=db, actor=actor, case_id=case_id, outcomes=data.outcomes)
    return _case_response(db, case, actor)


@router.patch("/steps/{step_id}", response_model=CaseStepResponse)
def update_step(
    step_id: UUID,
    data: StepUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Update step status or notes."""
    return update_step_use_case(
        db=db,
        actor=actor,
        step_id=step_id,
        status=data.status,
        notes=data.notes,
        completed_date=data.completed_date,
    )


@router.put("/{case_id}/assignee", response_model=CaseResponse)
def change_assignee(
    case_id: UUID,
    data: AssigneeUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Assign or unassign the case."""
    case = change_assignee_use_case(db=db, actor=actor, case_id=case_id, assigned_to_id=data.assigned_to_id)
    return _case_response(db, case, actor)


@router.put("/{case_id}/status", response_model=CaseResponse)
def update_status(
    case_id: UUID,
    data: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Change case status, merging resolution outcomes."""
    case = update_status_use_case(
        db=db,
        actor=actor,
        case_id=case_id,
        new_status=data.status,
        new_stage=data.stage,
        outcomes=data.outcomes,
        resolution_details=data.resolution_details,
    )
    return _case_response(db, case, actor)


@router.post("/{case_id}/settlement", response_model=CaseResponse)
def settle_case(
    case_id: UUID,
    data: ResolutionRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    case = settle_case_use_case(db=db, actor=actor, case_id=case_id, details=data.details)
    return _case_response(db, case, actor)


@router.post("/{case_id}/withdrawal", response_model=CaseResponse)
def withdraw_case(
    case_id: UUID,
    data: ResolutionRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    case = withdraw_case_use_case(db=db, actor=actor, case_id=case_id, details=data.details)
    return _case_response(db, case, actor)


@router.patch("/{case_id}/report", response_model=FieldChangeResponse)
def update_report_field(
    case_id: UUID,
    data: ReportFieldUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Update statement, settlement desired or articles violated."""
    change = update_field_use_case(
        db=db,
        actor=actor,
        case_id=case_id,
        field=data.field,
        value=data.value,
        record_event=data.record_event,
    )
    return FieldChangeResponse(field=data.field, previous_value=change.previous, new_value=change.new)


@router.put("/{case_id}/cost", response_model=CaseResponse)
def update_cost(
    case_id: UUID,
    data: CostUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    case = update_cost_use_case(db=db, actor=actor, case_id=case_id, field=data.field, value=data.value)
    return _case_response(db, case, actor)


@router.put("/{case_id}/category", response_model=CaseResponse)
def update_category(
    case_id: UUID,
    data: CategoryUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    case = update_category_use_case(db=db, actor=actor, case_id=case_id, category=data.category)
    return _case_response(db, case, actor)


@router.get("/{case_id}/events", response_model=list[CaseEventResponse])
def get_case_events(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Audit trail of the case in append order."""
    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id)
    return list_case_events(db, case.id)
