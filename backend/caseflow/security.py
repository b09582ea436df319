"""Multi-tenant scoping helpers."""

from __future__ import annotations

from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from .domain_errors import NotFoundError

T = TypeVar("T")


def require_org_entity(
    db: Session,
    model: type[T],
    *,
    entity_id: UUID,
    org_id: UUID,
    code: str,
    not_found: str,
    for_update: bool = False,
) -> T:
    """Load an entity by (id, org_id) or raise NotFoundError.

    ``for_update`` takes a row lock for the rest of the transaction.
    """
    query = db.query(model).filter(  # type: ignore[arg-type]
        getattr(model, "id") == entity_id,  # noqa: B009
        getattr(model, "org_id") == org_id,  # noqa: B009
    )
    if for_update:
        query = query.with_for_update()
    entity = query.first()
    if not entity:
        raise NotFoundError(code=code, message=not_found, details={"id": str(entity_id)})
    return entity

