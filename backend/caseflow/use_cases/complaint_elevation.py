"""Idempotent elevation of an informal complaint to a formal case."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Actor, require_actor
from ..config import settings
from ..domain_errors import ConfigurationMissingError, DomainError
from ..models import Complaint, Evidence
from ..schemas import CaseCreate, Grievor, WorkInformation
from ..security import require_org_entity
from ..services import search_indexing
from .case_lifecycle import _create_case_in_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElevationResult:
    case_id: UUID
    is_new: bool


def _grievor_from_complainant(complaint: Complaint) -> Grievor:
    return Grievor(
        member_number=complaint.complainant_member_number or "",
        last_name=complaint.complainant_last_name or "",
        first_name=complaint.complainant_first_name or "",
        address=complaint.complainant_address or "",
        city=complaint.complainant_city or "",
        postal_code=complaint.complainant_postal_code or "",
        email=complaint.complainant_email or "",
        phone_number=complaint.complainant_phone or "",
    )


def _grievor_from_employee(employee: dict) -> Grievor:
    return Grievor(
        member_number=employee.get("memberNumber") or "",
        last_name=employee.get("lastName") or "",
        first_name=employee.get("firstName") or "",
        address=employee.get("address") or "",
        city=employee.get("city") or "",
        postal_code=employee.get("postalCode") or "",
        email=employee.get("email") or "",
        phone_number=employee.get("phoneNumber") or "",
    )


def build_case_data_from_complaint(complaint: Complaint, stage: str) -> CaseCreate:
    """Map complaint fields onto a case creation request."""
    if complaint.type == "GROUP" and complaint.employees:
        grievors = [_grievor_from_employee(employee) for employee in complaint.employees]
    else:
        grievors = [_grievor_from_complainant(complaint)]

    articles = complaint.articles_violated or []
    if isinstance(articles, str):
        articles_violated = articles or None
    else:
        articles_violated = ", ".join(str(article) for article in articles) or None

    return CaseCreate(
        bargaining_unit_id=complaint.bargaining_unit_id,
        agreement_id=complaint.agreement_id,
        type=complaint.type or "INDIVIDUAL",
        stage=stage,
        category=complaint.category,
        grievors=grievors,
        work_information=WorkInformation(
            employer="",
            supervisor=complaint.complainant_supervisor or "",
            job_title=complaint.complainant_position or "",
            work_location=complaint.complainant_department or "",
            employment_status="",
        ),
        statement=complaint.issue or "",
        settlement_desired=complaint.settlement_desired or "",
        articles_violated=articles_violated,
    )


def convert_complaint_use_case(*, db: Session, actor: Actor | None, complaint_id: UUID) -> ElevationResult:
    """Elevate a complaint to a case at most once.

    The complaint row is locked for the transaction, so concurrent calls see
    the back-reference written by the first one and return the same case.
    """
    actor = require_actor(actor)
    complaint = require_org_entity(
        db,
        Complaint,
        entity_id=complaint_id,
        org_id=actor.org_id,
        code="COMPLAINT_NOT_FOUND",
        not_found="Complaint not found",
        for_update=True,
    )

    if complaint.case_id:
        db.rollback()
        return ElevationResult(case_id=complaint.case_id, is_new=False)

    if not complaint.agreement_id:
        db.rollback()
        raise ConfigurationMissingError(
            code="COMPLAINT_AGREEMENT_MISSING",
            message=(
                "Complaint must have an associated collective agreement before it can be "
                "converted to a grievance. Edit the complaint to select an agreement."
            ),
            details={"complaintId": str(complaint.id)},
        )

    data = build_case_data_from_complaint(complaint, settings.DEFAULT_ELEVATION_STAGE)
    try:
        case = _create_case_in_session(
            db=db,
            actor=actor,
            data=data,
            created_note=f"Converted from complaint {complaint.complaint_number}",
        )
        db.query(Evidence).filter(Evidence.complaint_id == complaint.id).update(
            {Evidence.case_id: case.id, Evidence.complaint_id: None},
            synchronize_session=False,
        )
        complaint.status = "GRIEVED"
        complaint.case_id = case.id
        db.commit()
    except DomainError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to convert complaint %s", complaint_id)
        raise DomainError(
            code="COMPLAINT_CONVERT_FAILED",
            http_status=500,
            message="The complaint could not be converted and was left unchanged. Please try again.",
        )

    logger.info("Complaint %s elevated to case %s", complaint.id, case.id)
    search_indexing.request_case_reindex(case.id)
    return ElevationResult(case_id=case.id, is_new=True)
