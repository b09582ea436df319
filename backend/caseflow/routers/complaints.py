"""Complaint endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from uuid import UUID
from ..auth import Actor, get_current_actor
from ..database import get_db
from ..schemas import ElevationResponse
from ..use_cases.complaint_elevation import convert_complaint_use_case

router = APIRouter(prefix="/complaints", tags=["complaints"])


@router.post("/{complaint_id}/convert", response_model=ElevationResponse)
def convert_complaint(
    complaint_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Elevate complaint to a case; repeated calls return the same case."""
    result = convert_complaint_use_case(db=db, actor=actor, complaint_id=complaint_id)
    if result.is_new:
        response.status_code = status.HTTP_201_CREATED
    return ElevationResponse(case_id=result.case_id, is_new=result.is_new)
