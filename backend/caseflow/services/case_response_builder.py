"""Case response serialization helpers with batched relation loading."""
from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth import Actor
from ..models import BargainingUnit, Case, CaseStep, StepTemplate, User
from ..schemas import BargainingUnitBrief, CaseResponse, StepInfo, UserBrief
from .due_dates import display_overdue, now_utc
from .event_log import fetch_creators


def _pick_template(
    templates_by_key: dict[tuple[UUID, str, int], list[StepTemplate]],
    case: Case,
    step_number: int,
) -> StepTemplate | None:
    candidates = templates_by_key.get((case.agreement_id, case.type, step_number), [])
    for template in candidates:
        if template.stage == case.current_stage:
            return template
    return candidates[0] if candidates else None


def build_case_response_context(db: Session, cases: list[Case], actor: Actor) -> dict:
    """Preload creators, assignees, units, current steps and templates for a case page.

    Issues a fixed number of queries regardless of page size.
    """
    if not cases:
        return {
            "creators_by_case_id": {},
            "users_by_id": {},
            "units_by_id": {},
            "steps_by_case_id": {},
            "templates_by_key": {},
        }

    case_ids = [case.id for case in cases]
    assignee_ids = {case.assigned_to_id for case in cases if case.assigned_to_id}
    unit_ids = {case.bargaining_unit_id for case in cases if case.bargaining_unit_id}
    agreement_ids = {case.agreement_id for case in cases if case.agreement_id}
    step_numbers: set[int] = set()
    for case in cases:
        step_numbers.add(case.current_step_number)
        step_numbers.add(case.current_step_number + 1)

    creators_by_case_id = fetch_creators(db, case_ids)

    users_by_id: dict[UUID, User] = {}
    if assignee_ids:
        users = (
            db.query(User)
            .filter(
                User.org_id == actor.org_id,
                User.id.in_(assignee_ids),
            )
            .all()
        )
        users_by_id = {user.id: user for user in users}

    units_by_id: dict[UUID, BargainingUnit] = {}
    if unit_ids:
        units = (
            db.query(BargainingUnit)
            .filter(
                BargainingUnit.org_id == actor.org_id,
                BargainingUnit.id.in_(unit_ids),
            )
            .all()
        )
        units_by_id = {unit.id: unit for unit in units}

    current_numbers = {case.id: case.current_step_number for case in cases}
    steps = (
        db.query(CaseStep)
        .filter(
            CaseStep.case_id.in_(case_ids),
            CaseStep.step_number.in_(set(current_numbers.values())),
        )
        .all()
    )
    steps_by_case_id: dict[UUID, CaseStep] = {}
    for step in steps:
        if current_numbers.get(step.case_id) == step.step_number:
            steps_by_case_id[step.case_id] = step

    templates_by_key: dict[tuple[UUID, str, int], list[StepTemplate]] = {}
    if agreement_ids:
        templates = (
            db.query(StepTemplate)
            .filter(
                StepTemplate.agreement_id.in_(agreement_ids),
                StepTemplate.step_number.in_(step_numbers),
            )
            .order_by(StepTemplate.step_number.asc(), StepTemplate.stage.asc())
            .all()
        )
        for template in templates:
            key = (template.agreement_id, template.type, template.step_number)
            templates_by_key.setdefault(key, []).append(template)

    return {
        "creators_by_case_id": creators_by_case_id,
        "users_by_id": users_by_id,
        "units_by_id": units_by_id,
        "steps_by_case_id": steps_by_case_id,
        "templates_by_key": templates_by_key,
    }


def build_step_info(case: Case, context: dict, today: date) -> StepInfo:
    step = context["steps_by_case_id"].get(case.id)
    current_template = _pick_template(context["templates_by_key"], case, case.current_step_number)
    next_template = _pick_template(context["templates_by_key"], case, case.current_step_number + 1)

    time_limit_days = current_template.time_limit_days if current_template else 0
    due = step.due_date if step else None
    overdue = (
        case.status == "ACTIVE"
        and (step is None or step.status != "COMPLETED")
        and display_overdue(due, today, time_limit_days)
    )
    return StepInfo(
        step_name=(current_template.name or current_template.description) if current_template else None,
        stage=step.stage if step else case.current_stage,
        time_limit_days=time_limit_days or 0,
        is_calendar_days=bool(current_template.is_calendar_days) if current_template else False,
        due_date=due,
        is_overdue=overdue,
        next_step_name=(next_template.name or next_template.description) if next_template else None,
        has_next_step=next_template is not None,
    )


def case_to_response(case: Case, context: dict, today: date | None = None) -> CaseResponse:
    today = today or now_utc().date()
    creator = context["creators_by_case_id"].get(case.id)
    assignee = context["users_by_id"].get(case.assigned_to_id) if case.assigned_to_id else None
    unit = context["units_by_id"].get(case.bargaining_unit_id)

    return CaseResponse(
        id=case.id,
        case_number=case.case_number,
        type=case.type,
        category=case.category,
        status=case.status,
        current_stage=case.current_stage,
        current_step_number=case.current_step_number,
        filed_at=case.filed_at,
        external_id=case.external_id,
        agreement_id=case.agreement_id,
        resolution_details=case.resolution_details,
        estimated_cost=case.estimated_cost,
        actual_cost=case.actual_cost,
        bargaining_unit=BargainingUnitBrief.model_validate(unit) if unit else None,
        assigned_to=UserBrief.model_validate(assignee) if assignee else None,
        creator=UserBrief.model_validate(creator) if creator else None,
        step_info=build_step_info(case, context, today),
        created_at=case.created_at,
        updated_at=case.updated_at,
    )


def cases_to_response(db: Session, cases: list[Case], actor: Actor) -> list[CaseResponse]:
    context = build_case_response_context(db, cases, actor)
    today = now_utc().date()
    return [case_to_response(case, context, today) for case in cases]
