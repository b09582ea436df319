"""Merging of resolution outcomes into a case's resolution details."""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from .due_dates import now_utc


def merge_resolution(
    *,
    existing: dict[str, Any] | None,
    outcomes: str | None,
    incoming: dict[str, Any] | None,
    actor_id: UUID,
    new_status: str,
    at: datetime | None = None,
) -> dict[str, Any] | None:
    """Return the resolution details to persist for a status change.

    With outcomes and no structured details anywhere, a fresh record is
    synthesized from the status change. With outcomes and existing or incoming
    details, only ``outcomes`` and ``resolutionDate`` are overlaid so the
    original resolution type and resolver are kept. Without outcomes the
    incoming value is used as given, and None clears the field.
    """
    if not outcomes:
        return dict(incoming) if incoming is not None else None

    stamp = (at or now_utc()).isoformat()
    base = incoming if incoming is not None else existing
    if base is None:
        return {
            "schemaVersion": 1,
            "resolutionType": new_status,
            "resolutionDate": stamp,
            "resolvedBy": str(actor_id),
            "details": outcomes,
            "outcomes": outcomes,
        }

    merged = dict(base)
    merged["outcomes"] = outcomes
    merged["resolutionDate"] = stamp
    return merged
