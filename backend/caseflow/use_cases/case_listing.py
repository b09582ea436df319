"""Case list and detail read use-cases."""
from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import String, cast, or_, select
from sqlalchemy.orm import Session

from ..auth import Actor, require_actor
from ..config import settings
from ..domain_errors import ValidationError
from ..models import CASE_STATUSES, Case, CaseEvent, CaseReport, CaseStep, User
from ..services.event_log import EventType
from .case_lifecycle import get_case_or_404


@dataclass
class CaseFilters:
    search: str | None = None
    status: str | None = None
    case_type: str | None = None
    bargaining_unit_id: UUID | None = None
    assigned_to_id: UUID | None = None


@dataclass
class CaseListPage:
    items: list[Case]
    total_count: int
    page: int
    page_size: int


@dataclass
class CaseDetail:
    case: Case
    report: CaseReport | None
    steps: list[CaseStep] = field(default_factory=list)


def _matching_statuses(term: str) -> list[str]:
    needle = term.strip().upper().replace(" ", "_")
    return [status for status in CASE_STATUSES if status == needle or needle in status]


def _search_clause(search: str):
    pattern = f"%{search.strip()}%"

    assignee_match = (
        select(User.id)
        .where(
            User.id == Case.assigned_to_id,
            User.name.ilike(pattern),
        )
        .exists()
    )
    creator_match = (
        select(CaseEvent.id)
        .join(User, CaseEvent.user_id == User.id)
        .where(
            CaseEvent.case_id == Case.id,
            CaseEvent.event_type == EventType.CREATED.value,
            User.name.ilike(pattern),
        )
        .exists()
    )
    grievor_match = (
        select(CaseReport.id)
        .where(
            CaseReport.case_id == Case.id,
            cast(CaseReport.grievors, String).ilike(pattern),
        )
        .exists()
    )

    clauses = [
        Case.case_number.ilike(pattern),
        Case.category.ilike(pattern),
        assignee_match,
        creator_match,
        grievor_match,
    ]
    statuses = _matching_statuses(search)
    if statuses:
        clauses.append(Case.status.in_(statuses))
    return or_(*clauses)


def list_cases_page(
    *,
    db: Session,
    actor: Actor | None,
    page: int = 1,
    page_size: int = 20,
    filters: CaseFilters | None = None,
) -> CaseListPage:
    """Offset page of the actor's organization cases, newest first."""
    actor = require_actor(actor)
    if page < 1:
        raise ValidationError(code="PAGE_INVALID", message="Page must be 1 or greater")
    if page_size < 1 or page_size > settings.CASE_LIST_MAX_PAGE_SIZE:
        raise ValidationError(
            code="PAGE_SIZE_INVALID",
            message=f"Page size must be between 1 and {settings.CASE_LIST_MAX_PAGE_SIZE}",
        )
    filters = filters or CaseFilters()

    query = db.query(Case).filter(Case.org_id == actor.org_id)
    if filters.status:
        query = query.filter(Case.status == filters.status)
    if filters.case_type:
        query = query.filter(Case.type == filters.case_type)
    if filters.bargaining_unit_id:
        query = query.filter(Case.bargaining_unit_id == filters.bargaining_unit_id)
    if filters.assigned_to_id:
        query = query.filter(Case.assigned_to_id == filters.assigned_to_id)
    if filters.search and filters.search.strip():
        query = query.filter(_search_clause(filters.search))

    total = query.count()
    items = (
        query.order_by(Case.created_at.desc(), Case.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return CaseListPage(items=items, total_count=total, page=page, page_size=page_size)


def get_case_detail(*, db: Session, actor: Actor | None, case_id: UUID) -> CaseDetail:
    actor = require_actor(actor)
    case = get_case_or_404(db=db, case_id=case_id, org_id=actor.org_id)
    report = db.query(CaseReport).filter(CaseReport.case_id == case.id).first()
    steps = (
        db.query(CaseStep)
        .filter(CaseStep.case_id == case.id)
        .order_by(CaseStep.step_number.asc())
        .all()
    )
    return CaseDetail(case=case, report=report, steps=steps)
