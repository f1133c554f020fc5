from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from a11y_insights.features.heuristics.schemas.issue import CheckTiming, Issue, SeveritySummary

Timestamp = Union[datetime, str]


class PageRef(BaseModel):
    """Logical keys shared by every row written for one scanned page."""
    project_id: str
    organisation_id: Optional[str] = None
    run_id: str
    page_id: str
    page_url: Optional[str] = None
    ingested_at: Optional[Timestamp] = None


class PageScanPayload(PageRef):
    scan_started_at: Optional[Timestamp] = None
    scan_finished_at: Optional[Timestamp] = None
    action: Optional[str] = None
    status: str = "scanned"
    http_status: Optional[int] = None
    issues_total: int = 0
    summary: SeveritySummary = Field(default_factory=SeveritySummary)
    engines: List[str] = Field(default_factory=list)
    core_total_duration_ms: Optional[float] = None
    used_puppeteer: bool = False
    error: Optional[str] = None

    @classmethod
    def from_issues(cls, issues: List[Issue], **fields) -> "PageScanPayload":
        """
        Build the summary row from the exact issue list that is written with
        insert_issues, so totals and severity counts always agree. Caller-supplied
        issues_total or summary values are ignored.
        """
        fields.pop("issues_total", None)
        fields.pop("summary", None)
        engines = fields.pop("engines", None)
        if engines is None:
            engines = sorted({issue.engine for issue in issues})
        return cls(
            issues_total=len(issues),
            summary=SeveritySummary.from_issues(issues),
            engines=engines,
            **fields,
        )


class IssuesPayload(PageRef):
    issues: List[Issue] = Field(default_factory=list)


class CheckTimingsPayload(PageRef):
    scan_started_at: Optional[Timestamp] = None
    scan_finished_at: Optional[Timestamp] = None
    checks: List[CheckTiming] = Field(default_factory=list)


class WriteResult(BaseModel):
    ok: bool
    skipped: bool = False
    reason: Optional[str] = None
    insert_id: Optional[str] = None
    inserted: Optional[int] = None


class ConnectionReport(BaseModel):
    ok: bool
    stage: Literal["config", "dataset", "auth_or_api", "done"]
    config: dict = Field(default_factory=dict)
    config_errors: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    dataset_id: Optional[str] = None
    location: Optional[str] = None
