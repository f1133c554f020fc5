"""
Row builders for the analytics tables.

Every builder returns (insert_id, row) pairs. Insert ids are derived only from
a row's logical keys (plus a content hash for issues), so resubmitting the same
payload produces the same ids and the warehouse drops the duplicates.
"""
import hashlib
import json
import math
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence, Tuple, TypeVar

from a11y_insights.features.analytics.schemas.records import (
    CheckTimingsPayload,
    IssuesPayload,
    PageRef,
    PageScanPayload,
)
from a11y_insights.features.heuristics.schemas.issue import Issue

T = TypeVar("T")

KeyedRow = Tuple[str, dict]

DEFAULT_STRING_LIMIT = 2048
URL_LIMIT = 4096
TEXT_LIMIT = 4096
ISSUE_HASH_LENGTH = 16
UNKNOWN_CHECK = "unknown_check"


def safe_string(value: Any, limit: int = DEFAULT_STRING_LIMIT) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text[:limit] if len(text) > limit else text


def to_iso(value: Any) -> Optional[str]:
    """datetimes become ISO-8601 (naive values are taken as UTC); strings pass through."""
    if not value:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, str):
        return value
    return None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def chunk(items: Sequence[T], size: int) -> List[Sequence[T]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


def _string_list(values: Iterable[Any], max_items: int, limit: int) -> List[str]:
    out = []
    for value in list(values or [])[:max_items]:
        text = safe_string(value, limit)
        if text:
            out.append(text)
    return out


def build_issue_hash(issue: Issue) -> str:
    """Short sha1 over the fields that identify a finding."""
    payload = json.dumps(
        {
            "impact": issue.impact or None,
            "engine": issue.engine or None,
            "ruleId": issue.rule_id or None,
            "message": issue.message or None,
            "selector": issue.selector or None,
            "target": list(issue.target or []),
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:ISSUE_HASH_LENGTH]


def page_key(ref: PageRef) -> str:
    return f"{ref.project_id}:{ref.run_id}:{ref.page_id}"


def _ref_columns(ref: PageRef, ingested_at: str) -> dict:
    return {
        "ingested_at": ingested_at,
        "project_id": ref.project_id,
        "organisation_id": ref.organisation_id or None,
        "run_id": ref.run_id,
        "page_id": ref.page_id,
        "page_url": safe_string(ref.page_url, URL_LIMIT),
    }


def page_scan_row(payload: PageScanPayload) -> KeyedRow:
    ingested_at = to_iso(payload.ingested_at) or utc_now_iso()
    duration = payload.core_total_duration_ms
    row = {
        **_ref_columns(payload, ingested_at),
        "scan_started_at": to_iso(payload.scan_started_at),
        "scan_finished_at": to_iso(payload.scan_finished_at),
        "action": safe_string(payload.action or None, 64),
        "status": safe_string(payload.status or "scanned", 32),
        "http_status": payload.http_status,
        "issues_total": payload.issues_total,
        "critical": payload.summary.critical,
        "serious": payload.summary.serious,
        "moderate": payload.summary.moderate,
        "minor": payload.summary.minor,
        "engines": _string_list(payload.engines, 20, 128),
        "core_total_duration_ms": round(duration) if duration is not None and math.isfinite(duration) else None,
        "used_puppeteer": bool(payload.used_puppeteer),
        "error": safe_string(payload.error or None, TEXT_LIMIT),
    }
    return f"{page_key(payload)}:scan", row


def issue_rows(payload: IssuesPayload) -> List[KeyedRow]:
    ingested_at = to_iso(payload.ingested_at) or utc_now_iso()
    base = _ref_columns(payload, ingested_at)
    rows = []
    for index, issue in enumerate(payload.issues):
        row = {
            **base,
            "issue_index": index,
            "impact": safe_string(issue.impact or None, 32),
            "engine": safe_string(issue.engine or None, 64),
            "rule_id": safe_string(issue.rule_id or None, 128),
            "message": safe_string(issue.message or None, TEXT_LIMIT),
            "selector": safe_string(issue.selector or None, TEXT_LIMIT),
            "help_url": safe_string(issue.help_url or None, 1024),
            "confidence": issue.confidence,
            "needs_review": issue.needs_review,
            "decision": safe_string(issue.decision or None, 64),
            "failure_summary": safe_string(issue.failure_summary or None, TEXT_LIMIT),
            "ai_how_to_fix": safe_string(issue.ai_how_to_fix or None, TEXT_LIMIT),
            "has_html": bool(issue.html),
            "tags": _string_list(issue.tags, 50, 128),
            "evidence": _string_list(issue.evidence, 20, 512),
            "target": _string_list(issue.target, 20, 512),
        }
        rows.append((f"{page_key(payload)}:{index}:{build_issue_hash(issue)}", row))
    return rows


def check_timing_rows(payload: CheckTimingsPayload) -> List[KeyedRow]:
    ingested_at = to_iso(payload.ingested_at) or utc_now_iso()
    base = {
        **_ref_columns(payload, ingested_at),
        "scan_started_at": to_iso(payload.scan_started_at),
        "scan_finished_at": to_iso(payload.scan_finished_at),
    }
    rows = []
    for index, timing in enumerate(payload.checks):
        check_name = safe_string(timing.check, 256) or UNKNOWN_CHECK
        duration_ms = int(round(timing.duration_ms))
        row = {
            **base,
            "check_name": check_name,
            "duration_ms": duration_ms,
            "issues_count": timing.issues,
            "error": safe_string(timing.error or None, TEXT_LIMIT),
        }
        rows.append((f"{page_key(payload)}:{index}:{check_name}:{duration_ms}", row))
    return rows
