import logging
from typing import Any, Dict, List, Optional

from celery import shared_task
from pydantic import ValidationError

from a11y_insights.features.analytics.schemas.records import PageRef
from a11y_insights.features.analytics.services.bigquery_writer import get_analytics_writer
from a11y_insights.features.analytics.services.ingestion import PageResultsIngestor
from a11y_insights.features.heuristics.schemas.issue import CheckTiming, EvaluationResult, Issue
from a11y_insights.platform.celery_app import celery_app  # noqa: F401
from a11y_insights.platform.config import settings

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name="a11y_insights.features.analytics.workers.tasks.record_page_results",
    rate_limit=settings.ANALYTICS_TASK_RATE_LIMIT,
)
def record_page_results(
    self,
    page: Dict[str, Any],
    issues: List[Dict[str, Any]],
    check_timings: List[Dict[str, Any]],
    scan: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Write one page's issues, summary row and check timings to the warehouse.

    Args:
        page: project_id, run_id, page_id and optionally organisation_id, page_url
        issues: normalized issues as dicts
        check_timings: {check, duration_ms, issues, error} dicts
        scan: extra summary fields (scan_started_at, status, http_status, ...)

    Returns:
        Per-step results. Failures are reported here, never raised, so a
        warehouse outage cannot fail the scan pipeline.
    """
    try:
        ref = PageRef.model_validate(page)
        issue_models = [Issue.model_validate(item) for item in issues or []]
        timing_models = [CheckTiming.model_validate(item) for item in check_timings or []]
    except ValidationError as e:
        logger.error(f"Rejected analytics payload for page {page.get('page_id')}: {e}")
        return {"ok": False, "error": f"Invalid payload: {e.error_count()} validation errors"}

    logger.info(f"[{ref.run_id}/{ref.page_id}] Recording {len(issue_models)} issues")
    results = PageResultsIngestor(get_analytics_writer()).ingest(ref, issue_models, timing_models, scan)
    return {"ok": all(step.get("ok") for step in results.values()), "results": results}


def enqueue_page_results(
    ref: PageRef,
    evaluation: EvaluationResult,
    scan: Optional[Dict[str, Any]] = None,
):
    """Queue an evaluation for ingestion on the analytics queue."""
    scan = dict(scan or {})
    scan.setdefault("engines", [evaluation.engine])
    return record_page_results.delay(
        ref.model_dump(mode="json"),
        [issue.model_dump(mode="json") for issue in evaluation.issues],
        [timing.model_dump(mode="json") for timing in evaluation.check_timings],
        scan,
    )
