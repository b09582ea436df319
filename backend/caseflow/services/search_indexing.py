"""Post-commit search reindex signal."""
from __future__ import annotations

import logging
from uuid import UUID

logger = logging.getLogger(__name__)


def request_case_reindex(case_id: UUID) -> None:
    """Enqueue a reindex. Failures are logged and never reach the caller."""
    try:
        from ..celery_app import reindex_case

        reindex_case.delay(str(case_id))
    except Exception:
        logger.exception("Failed to enqueue search reindex for case %s", case_id)
