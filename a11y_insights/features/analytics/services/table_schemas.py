"""
Column layout of the three append-only analytics tables.

All tables are day-partitioned on ingested_at and clustered on the keys their
dashboards filter by.
"""
from dataclasses import dataclass
from typing import List, Tuple

from google.cloud import bigquery

TABLE_PAGE_SCANS = "page_scans"
TABLE_SCAN_ISSUES = "scan_issues"
TABLE_CORE_CHECK_TIMINGS = "core_check_timings"

PARTITION_FIELD = "ingested_at"

# (name, type, mode)
Column = Tuple[str, str, str]


@dataclass(frozen=True)
class TableSpec:
    name: str
    columns: List[Column]
    clustering: List[str]

    def schema(self) -> List[bigquery.SchemaField]:
        return [bigquery.SchemaField(name, field_type, mode=mode) for name, field_type, mode in self.columns]

    def build_table(self, table_id: str) -> bigquery.Table:
        table = bigquery.Table(table_id, schema=self.schema())
        table.time_partitioning = bigquery.TimePartitioning(
            type_=bigquery.TimePartitioningType.DAY,
            field=PARTITION_FIELD,
        )
        table.clustering_fields = list(self.clustering)
        return table


PAGE_SCANS = TableSpec(
    name=TABLE_PAGE_SCANS,
    columns=[
        ("ingested_at", "TIMESTAMP", "REQUIRED"),
        ("scan_started_at", "TIMESTAMP", "NULLABLE"),
        ("scan_finished_at", "TIMESTAMP", "NULLABLE"),
        ("project_id", "STRING", "REQUIRED"),
        ("organisation_id", "STRING", "NULLABLE"),
        ("run_id", "STRING", "REQUIRED"),
        ("page_id", "STRING", "REQUIRED"),
        ("page_url", "STRING", "NULLABLE"),
        ("action", "STRING", "NULLABLE"),
        ("status", "STRING", "REQUIRED"),
        ("http_status", "INT64", "NULLABLE"),
        ("issues_total", "INT64", "NULLABLE"),
        ("critical", "INT64", "NULLABLE"),
        ("serious", "INT64", "NULLABLE"),
        ("moderate", "INT64", "NULLABLE"),
        ("minor", "INT64", "NULLABLE"),
        ("engines", "STRING", "REPEATED"),
        ("core_total_duration_ms", "INT64", "NULLABLE"),
        ("used_puppeteer", "BOOL", "NULLABLE"),
        ("error", "STRING", "NULLABLE"),
    ],
    clustering=["project_id", "run_id", "page_id"],
)

SCAN_ISSUES = TableSpec(
    name=TABLE_SCAN_ISSUES,
    columns=[
        ("ingested_at", "TIMESTAMP", "REQUIRED"),
        ("project_id", "STRING", "REQUIRED"),
        ("organisation_id", "STRING", "NULLABLE"),
        ("run_id", "STRING", "REQUIRED"),
        ("page_id", "STRING", "REQUIRED"),
        ("page_url", "STRING", "NULLABLE"),
        ("issue_index", "INT64", "REQUIRED"),
        ("impact", "STRING", "NULLABLE"),
        ("engine", "STRING", "NULLABLE"),
        ("rule_id", "STRING", "NULLABLE"),
        ("message", "STRING", "NULLABLE"),
        ("selector", "STRING", "NULLABLE"),
        ("help_url", "STRING", "NULLABLE"),
        ("confidence", "FLOAT64", "NULLABLE"),
        ("needs_review", "BOOL", "NULLABLE"),
        ("decision", "STRING", "NULLABLE"),
        ("failure_summary", "STRING", "NULLABLE"),
        ("ai_how_to_fix", "STRING", "NULLABLE"),
        ("has_html", "BOOL", "NULLABLE"),
        ("tags", "STRING", "REPEATED"),
        ("evidence", "STRING", "REPEATED"),
        ("target", "STRING", "REPEATED"),
    ],
    clustering=["project_id", "run_id", "page_id", "impact"],
)

CORE_CHECK_TIMINGS = TableSpec(
    name=TABLE_CORE_CHECK_TIMINGS,
    columns=[
        ("ingested_at", "TIMESTAMP", "REQUIRED"),
        ("scan_started_at", "TIMESTAMP", "NULLABLE"),
        ("scan_finished_at", "TIMESTAMP", "NULLABLE"),
        ("project_id", "STRING", "REQUIRED"),
        ("organisation_id", "STRING", "NULLABLE"),
        ("run_id", "STRING", "REQUIRED"),
        ("page_id", "STRING", "REQUIRED"),
        ("page_url", "STRING", "NULLABLE"),
        ("check_name", "STRING", "REQUIRED"),
        ("duration_ms", "INT64", "REQUIRED"),
        ("issues_count", "INT64", "NULLABLE"),
        ("error", "STRING", "NULLABLE"),
    ],
    clustering=["project_id", "run_id", "page_id"],
)

ALL_TABLES = (PAGE_SCANS, SCAN_ISSUES, CORE_CHECK_TIMINGS)
