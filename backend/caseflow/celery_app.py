"""
Celery worker for best-effort search index maintenance.
"""
from celery import Celery
import requests
import logging
from .config import settings
from .database import SessionLocal
from .models import Case, CaseReport

logger = logging.getLogger(__name__)

celery_app = Celery(
    "caseflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


def build_index_document(case: Case, report: CaseReport | None) -> dict:
    """Flatten a case into the document shape the search indexer expects."""
    grievor_names = []
    if report is not None:
        for grievor in report.grievors or []:
            name = " ".join(
                part for part in (grievor.get("firstName"), grievor.get("lastName")) if part
            )
            if name:
                grievor_names.append(name)

    return {
        "id": str(case.id),
        "orgId": str(case.org_id),
        "caseNumber": case.case_number,
        "type": case.type,
        "status": case.status,
        "stage": case.current_stage,
        "category": case.category,
        "grievors": grievor_names,
        "statement": report.statement if report is not None else "",
        "settlementDesired": report.settlement_desired if report is not None else "",
        "articlesViolated": report.articles_violated if report is not None else None,
    }


def send_to_indexer(case_id: str, document: dict | None) -> tuple[bool, str | None]:
    """Upsert (document) or remove (None) a case in the search index."""
    if not settings.SEARCH_INDEXER_URL:
        return False, "SEARCH_INDEXER_URL not configured"

    url = f"{settings.SEARCH_INDEXER_URL.rstrip('/')}/cases/{case_id}"
    try:
        if document is None:
            response = requests.delete(url, timeout=settings.SEARCH_INDEXER_TIMEOUT_SECONDS)
        else:
            response = requests.put(url, json=document, timeout=settings.SEARCH_INDEXER_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        return False, f"EXCEPTION: {e}"

    if response.status_code in (200, 201, 202, 204, 404):
        return True, None
    return False, f"HTTP_{response.status_code}: {response.text[:200]}"


@celery_app.task(name="reindex_case")
def reindex_case(case_id: str):
    """Push the current state of a case (or its removal) to the search indexer."""
    db = SessionLocal()

    try:
        case = db.query(Case).filter(Case.id == case_id).first()
        document = None
        if case is not None:
            report = db.query(CaseReport).filter(CaseReport.case_id == case.id).first()
            document = build_index_document(case, report)
    except Exception as e:
        db.rollback()
        logger.error("Error loading case %s for reindex: %s", case_id, e, exc_info=True)
        raise
    finally:
        db.close()

    success, error = send_to_indexer(case_id, document)
    if success:
        logger.info("Reindexed case %s (removed=%s)", case_id, document is None)
    else:
        logger.warning("Reindex of case %s skipped: %s", case_id, error)
    return {"case_id": case_id, "indexed": success, "error": error}
