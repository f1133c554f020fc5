import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from a11y_insights.features.analytics.exceptions import AnalyticsError
from a11y_insights.features.analytics.schemas.records import (
    CheckTimingsPayload,
    IssuesPayload,
    PageRef,
    PageScanPayload,
    WriteResult,
)
from a11y_insights.features.analytics.services.bigquery_writer import AnalyticsWriter
from a11y_insights.features.heuristics.schemas.issue import CheckTiming, Issue

logger = logging.getLogger(__name__)


class PageResultsIngestor:
    """
    Records one page's evaluation in the warehouse.

    Order is issues, then the summary row (derived from the same issue list),
    then check timings. A failed step is logged and reported in the returned
    mapping; later steps still run and nothing is raised to the caller.
    """

    def __init__(self, writer: AnalyticsWriter):
        self.writer = writer

    def ingest(
        self,
        ref: PageRef,
        issues: List[Issue],
        check_timings: List[CheckTiming],
        scan_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Dict[str, Any]]:
        base = ref.model_dump()
        scan_fields = dict(scan_fields or {})
        if scan_fields.get("core_total_duration_ms") is None and check_timings:
            scan_fields["core_total_duration_ms"] = sum(t.duration_ms for t in check_timings)

        results = {}
        results["issues"] = self._run(
            "issues", ref, lambda: self.writer.insert_issues(IssuesPayload(**base, issues=issues))
        )
        results["page_scan"] = self._run(
            "page_scan", ref, lambda: self.writer.insert_page_scan(
                PageScanPayload.from_issues(issues, **{**base, **scan_fields})
            )
        )
        results["check_timings"] = self._run(
            "check_timings", ref, lambda: self.writer.insert_core_check_timings(
                CheckTimingsPayload(
                    **base,
                    scan_started_at=scan_fields.get("scan_started_at"),
                    scan_finished_at=scan_fields.get("scan_finished_at"),
                    checks=check_timings,
                )
            )
        )
        return results

    @staticmethod
    def _run(step: str, ref: PageRef, write) -> Dict[str, Any]:
        try:
            result: WriteResult = write()
        except (AnalyticsError, ValidationError) as e:
            logger.error(f"[{ref.run_id}/{ref.page_id}] Analytics {step} write failed: {e}")
            return {"ok": False, "error": str(e), "inserted": getattr(e, "inserted", None)}

        if result.skipped:
            logger.info(f"[{ref.run_id}/{ref.page_id}] Analytics {step} write skipped: {result.reason}")
        return result.model_dump(exclude_none=True)
