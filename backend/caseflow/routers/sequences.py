"""Sequence counter endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging
from ..auth import Actor, get_current_actor
from ..database import get_db
from ..domain_errors import DomainError
from ..schemas import SequenceAllocationResponse, SequenceSnapshotResponse
from ..services.sequence_allocator import (
    SequenceKind,
    allocate_next,
    format_sequence_number,
    get_sequence_snapshot,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sequences", tags=["sequences"])


@router.get("", response_model=SequenceSnapshotResponse)
def get_sequences(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Current counter values for the actor's organization."""
    return get_sequence_snapshot(db, actor.org_id)


@router.post("/{kind}/next", response_model=SequenceAllocationResponse)
def allocate_sequence(
    kind: SequenceKind,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Reserve the next number of a kind (used for complaints created elsewhere)."""
    try:
        value = allocate_next(db, actor.org_id, kind)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to allocate %s number for org %s", kind.value, actor.org_id)
        raise DomainError(
            code="SEQUENCE_ALLOCATION_FAILED",
            http_status=500,
            message="Could not reserve the next number. Please try again.",
        )
    return SequenceAllocationResponse(kind=kind.value, value=value, formatted=format_sequence_number(kind, value))
