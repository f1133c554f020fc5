from datetime import datetime, timezone

import pytest

from a11y_insights.features.analytics.schemas.records import (
    CheckTimingsPayload,
    IssuesPayload,
    PageScanPayload,
)
from a11y_insights.features.analytics.services.rows import (
    build_issue_hash,
    check_timing_rows,
    chunk,
    issue_rows,
    page_scan_row,
    safe_string,
    to_iso,
)
from a11y_insights.features.heuristics.schemas.issue import CheckTiming, Issue

PAGE = {"project_id": "proj", "run_id": "run-1", "page_id": "page-1", "page_url": "https://example.com/"}


def abbreviation_issue(**overrides):
    fields = {
        "impact": "minor",
        "engine": "ai-heuristics",
        "rule_id": "wcag-3.1.4",
        "message": "Possible abbreviation without expansion",
        "selector": "main > p:nth-of-type(2)",
    }
    fields.update(overrides)
    return Issue(**fields)


class TestHelpers:
    def test_safe_string(self):
        assert safe_string(None) is None
        assert safe_string(42) == "42"
        assert safe_string("x" * 3000) == "x" * 2048
        assert safe_string("abcdef", 3) == "abc"

    def test_to_iso(self):
        assert to_iso(None) is None
        assert to_iso("2024-05-01T10:00:00Z") == "2024-05-01T10:00:00Z"
        assert to_iso(datetime(2024, 5, 1, 10, 0)) == "2024-05-01T10:00:00+00:00"
        assert to_iso(datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)) == "2024-05-01T10:00:00+00:00"
        assert to_iso(12345) is None

    def test_chunk(self):
        assert [len(c) for c in chunk(list(range(1200)), 500)] == [500, 500, 200]
        assert chunk([], 500) == []
        with pytest.raises(ValueError):
            chunk([1], 0)


class TestIssueHash:
    def test_known_value(self):
        assert build_issue_hash(abbreviation_issue()) == "1ad98122e23798f4"

    def test_ignores_non_identity_fields(self):
        base = build_issue_hash(abbreviation_issue())
        assert build_issue_hash(abbreviation_issue(confidence=0.9, evidence=["HR"], html="<p>HR</p>")) == base

    def test_changes_with_identity_fields(self):
        base = build_issue_hash(abbreviation_issue())
        assert build_issue_hash(abbreviation_issue(message="Other")) != base
        assert build_issue_hash(abbreviation_issue(target=["#main"])) != base
        assert build_issue_hash(abbreviation_issue(engine="ai-model")) != base


class TestPageScanRow:
    def test_insert_id_and_columns(self):
        issues = [abbreviation_issue(), abbreviation_issue(impact="critical", message="Other")]
        payload = PageScanPayload.from_issues(
            issues,
            **PAGE,
            ingested_at="2024-05-01T10:00:00Z",
            core_total_duration_ms=12.6,
            http_status=200,
        )

        insert_id, row = page_scan_row(payload)

        assert insert_id == "proj:run-1:page-1:scan"
        assert row["ingested_at"] == "2024-05-01T10:00:00Z"
        assert row["status"] == "scanned"
        assert row["issues_total"] == 2
        assert (row["critical"], row["serious"], row["moderate"], row["minor"]) == (1, 0, 0, 1)
        assert row["engines"] == ["ai-heuristics"]
        assert row["core_total_duration_ms"] == 13
        assert row["http_status"] == 200
        assert row["used_puppeteer"] is False

    def test_fields_are_capped(self):
        payload = PageScanPayload(
            **{**PAGE, "page_url": "https://example.com/" + "p" * 5000},
            action="a" * 100,
            error="e" * 5000,
            engines=[f"engine-{i}" for i in range(30)],
        )

        _, row = page_scan_row(payload)

        assert len(row["page_url"]) == 4096
        assert len(row["action"]) == 64
        assert len(row["error"]) == 4096
        assert len(row["engines"]) == 20

    def test_ingested_at_defaults_to_now(self):
        _, row = page_scan_row(PageScanPayload(**PAGE))
        assert row["ingested_at"].endswith("+00:00")
        assert row["scan_started_at"] is None


class TestIssueRows:
    def test_insert_ids(self):
        payload = IssuesPayload(**PAGE, issues=[abbreviation_issue(), abbreviation_issue(message="Other")])

        rows = issue_rows(payload)

        assert rows[0][0] == "proj:run-1:page-1:0:1ad98122e23798f4"
        assert rows[1][0].startswith("proj:run-1:page-1:1:")
        assert rows[0][1]["issue_index"] == 0
        assert rows[1][1]["issue_index"] == 1

    def test_columns(self):
        issue = abbreviation_issue(
            html="<p>HR</p>",
            tags=["t"] * 60,
            evidence=["e" * 600] * 25,
            help_url="https://example.com/help",
        )

        _, row = issue_rows(IssuesPayload(**PAGE, issues=[issue]))[0]

        assert row["has_html"] is True
        assert row["needs_review"] is True
        assert row["confidence"] == 0.5
        assert row["rule_id"] == "wcag-3.1.4"
        assert row["help_url"] == "https://example.com/help"
        assert len(row["tags"]) == 50
        assert len(row["evidence"]) == 20
        assert all(len(e) == 512 for e in row["evidence"])
        assert row["target"] == []

    def test_resubmission_yields_same_ids(self):
        payload = IssuesPayload(**PAGE, issues=[abbreviation_issue()])
        assert issue_rows(payload)[0][0] == issue_rows(payload)[0][0]


class TestCheckTimingRows:
    def test_insert_ids_and_columns(self):
        payload = CheckTimingsPayload(
            **PAGE,
            scan_started_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
            checks=[
                CheckTiming(check="abbreviations", duration_ms=12, issues=2),
                CheckTiming(check="ai_model", duration_ms=800, error="AI API failed: 500"),
            ],
        )

        rows = check_timing_rows(payload)

        assert [insert_id for insert_id, _ in rows] == [
            "proj:run-1:page-1:0:abbreviations:12",
            "proj:run-1:page-1:1:ai_model:800",
        ]
        assert rows[0][1]["issues_count"] == 2
        assert rows[0][1]["scan_started_at"] == "2024-05-01T10:00:00+00:00"
        assert rows[1][1]["error"] == "AI API failed: 500"

    def test_blank_check_name(self):
        payload = CheckTimingsPayload(**PAGE, checks=[CheckTiming(check="", duration_ms=1)])
        assert check_timing_rows(payload)[0][1]["check_name"] == "unknown_check"
