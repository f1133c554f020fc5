import logging
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.exceptions import GoogleAuthError
from google.cloud import bigquery

from a11y_insights.features.analytics.exceptions import (
    AnalyticsConfigError,
    AnalyticsConnectivityError,
    AnalyticsError,
    DatasetNotFoundError,
    PartialIngestionError,
)
from a11y_insights.features.analytics.schemas.records import (
    CheckTimingsPayload,
    ConnectionReport,
    IssuesPayload,
    PageScanPayload,
    WriteResult,
)
from a11y_insights.features.analytics.services.rows import (
    KeyedRow,
    check_timing_rows,
    chunk,
    issue_rows,
    page_scan_row,
)
from a11y_insights.features.analytics.services.table_schemas import (
    ALL_TABLES,
    TABLE_CORE_CHECK_TIMINGS,
    TABLE_PAGE_SCANS,
    TABLE_SCAN_ISSUES,
)
from a11y_insights.platform.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

DISABLED_REASON = "disabled"

LATEST_SCANS_QUERY = """
    SELECT
      ingested_at,
      project_id,
      run_id,
      page_id,
      page_url,
      status,
      issues_total,
      critical,
      serious,
      moderate,
      minor
    FROM `{table}`
    ORDER BY ingested_at DESC
    LIMIT @limit
"""


@dataclass(frozen=True)
class AnalyticsConfig:
    enabled: bool = False
    project_id: Optional[str] = None
    dataset: Optional[str] = None
    location: Optional[str] = None
    insert_chunk_size: int = 500

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "AnalyticsConfig":
        config = config or default_settings
        return cls(
            enabled=config.BQ_ENABLED,
            project_id=config.BQ_PROJECT_ID,
            dataset=config.BQ_DATASET,
            location=config.BQ_LOCATION,
            insert_chunk_size=config.BQ_INSERT_CHUNK_SIZE,
        )

    def validate(self) -> List[str]:
        errors = []
        if not self.enabled:
            errors.append("BQ_ENABLED is not set to 1")
        if not self.project_id:
            errors.append("BQ_PROJECT_ID (or GCLOUD_PROJECT) is missing")
        if not self.dataset:
            errors.append("BQ_DATASET is missing")
        return errors

    @property
    def dataset_id(self) -> str:
        return f"{self.project_id}.{self.dataset}"

    def table_id(self, table: str) -> str:
        return f"{self.dataset_id}.{table}"

    def describe(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "project_id": self.project_id,
            "dataset": self.dataset,
            "location": self.location,
        }


@dataclass
class WriterState:
    """Outcome of the one-time bootstrap; reused for the writer's lifetime."""
    enabled: bool
    client: Optional[bigquery.Client] = None
    tables: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    config_errors: List[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        if self.error:
            return self.error
        if self.config_errors:
            return "; ".join(self.config_errors)
        return DISABLED_REASON


ClientFactory = Callable[[AnalyticsConfig], bigquery.Client]


def default_client_factory(config: AnalyticsConfig) -> bigquery.Client:
    return bigquery.Client(project=config.project_id, location=config.location)


class AnalyticsWriter:
    """
    Idempotent writer for page scans, issues and check timings.

    Bootstrap runs once on first use: it checks the dataset exists and creates
    any of the three tables that are missing. Datasets are never created here.
    A writer that could not bootstrap reports every write as skipped instead
    of raising, so callers need no separate feature-flag check.
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None, client_factory: Optional[ClientFactory] = None):
        self.config = config or AnalyticsConfig.from_settings()
        self._client_factory = client_factory or default_client_factory
        self._state: Optional[WriterState] = None
        self._lock = threading.Lock()

    def init_writer(self) -> WriterState:
        if self._state is not None:
            return self._state
        with self._lock:
            if self._state is None:
                self._state = self._bootstrap()
        return self._state

    def _bootstrap(self) -> WriterState:
        if not self.config.enabled:
            logger.info("Analytics ingestion disabled (BQ_ENABLED is not set)")
            return WriterState(enabled=False)

        config_errors = self.config.validate()
        if config_errors:
            logger.warning(f"Analytics ingestion misconfigured: {'; '.join(config_errors)}")
            return WriterState(enabled=False, config_errors=config_errors)

        try:
            client = self._client_factory(self.config)
            self._ensure_dataset_and_tables(client)
        except (DatasetNotFoundError, GoogleAPIError, GoogleAuthError) as e:
            logger.error(f"Analytics writer bootstrap failed: {e}")
            return WriterState(enabled=False, error=str(e))

        logger.info(f"Analytics writer ready for dataset {self.config.dataset_id}")
        return WriterState(
            enabled=True,
            client=client,
            tables={spec.name: self.config.table_id(spec.name) for spec in ALL_TABLES},
        )

    def _ensure_dataset_and_tables(self, client: bigquery.Client) -> None:
        try:
            client.get_dataset(self.config.dataset_id)
        except NotFound as e:
            raise DatasetNotFoundError(f"Dataset {self.config.dataset_id} not found") from e

        for spec in ALL_TABLES:
            table_id = self.config.table_id(spec.name)
            try:
                client.get_table(table_id)
                continue
            except NotFound:
                pass
            logger.info(f"Creating analytics table {table_id}")
            client.create_table(spec.build_table(table_id), exists_ok=True)

    def _insert(self, state: WriterState, table: str, keyed_rows: List[KeyedRow]) -> int:
        """
        Stream rows chunk by chunk.

        Raises PartialIngestionError when the warehouse rejects rows and
        AnalyticsConnectivityError on auth/transport failures. Both carry the
        number of rows committed by earlier chunks.
        """
        table_id = state.tables[table]
        inserted = 0
        for chunk_index, batch in enumerate(chunk(keyed_rows, self.config.insert_chunk_size)):
            try:
                errors = state.client.insert_rows_json(
                    table_id,
                    [row for _, row in batch],
                    row_ids=[insert_id for insert_id, _ in batch],
                    ignore_unknown_values=True,
                    skip_invalid_rows=False,
                )
            except (GoogleAPIError, GoogleAuthError) as e:
                logger.error(f"Insert into {table} failed after {inserted} rows: {e}")
                raise AnalyticsConnectivityError(
                    f"Insert into {table} failed: {e}", table=table, inserted=inserted, cause=e
                ) from e

            if errors:
                logger.error(f"{table} rejected rows in chunk {chunk_index}: {errors}")
                raise PartialIngestionError(
                    f"{len(errors)} rows rejected by {table} in chunk {chunk_index}",
                    table=table,
                    inserted=inserted,
                    chunk_index=chunk_index,
                    errors=errors,
                )
            inserted += len(batch)
        return inserted

    def insert_page_scan(self, payload: PageScanPayload) -> WriteResult:
        state = self.init_writer()
        if not state.enabled:
            return WriteResult(ok=False, skipped=True, reason=state.reason)

        insert_id, row = page_scan_row(payload)
        self._insert(state, TABLE_PAGE_SCANS, [(insert_id, row)])
        return WriteResult(ok=True, insert_id=insert_id)

    def insert_issues(self, payload: IssuesPayload) -> WriteResult:
        state = self.init_writer()
        if not state.enabled:
            return WriteResult(ok=False, skipped=True, reason=state.reason)
        if not payload.issues:
            return WriteResult(ok=True, inserted=0)

        inserted = self._insert(state, TABLE_SCAN_ISSUES, issue_rows(payload))
        return WriteResult(ok=True, inserted=inserted)

    def insert_core_check_timings(self, payload: CheckTimingsPayload) -> WriteResult:
        state = self.init_writer()
        if not state.enabled:
            return WriteResult(ok=False, skipped=True, reason=state.reason)
        if not payload.checks:
            return WriteResult(ok=True, inserted=0)

        inserted = self._insert(state, TABLE_CORE_CHECK_TIMINGS, check_timing_rows(payload))
        return WriteResult(ok=True, inserted=inserted)

    def test_connection(self) -> ConnectionReport:
        """
        Staged diagnostic: config, then dataset lookup, then done.

        Read-only; it never creates datasets or tables.
        """
        described = self.config.describe()
        config_errors = self.config.validate()
        if config_errors:
            return ConnectionReport(ok=False, stage="config", config=described, config_errors=config_errors)

        try:
            client = self._client_factory(self.config)
            try:
                dataset = client.get_dataset(self.config.dataset_id)
            except NotFound:
                return ConnectionReport(
                    ok=False,
                    stage="dataset",
                    config=described,
                    error=f"Dataset {self.config.dataset_id} not found",
                )
        except (GoogleAPIError, GoogleAuthError) as e:
            return ConnectionReport(ok=False, stage="auth_or_api", config=described, error=str(e))

        return ConnectionReport(
            ok=True,
            stage="done",
            config=described,
            dataset_id=getattr(dataset, "full_dataset_id", None) or f"{self.config.project_id}:{self.config.dataset}",
            location=getattr(dataset, "location", None) or self.config.location,
        )

    def query_latest_scans(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent page_scans rows, newest first."""
        state = self.init_writer()
        if state.config_errors:
            raise AnalyticsConfigError(state.config_errors)
        if not state.enabled:
            raise AnalyticsError(f"Analytics writer unavailable: {state.reason}")

        job_config = bigquery.QueryJobConfig(
            query_parameters=[bigquery.ScalarQueryParameter("limit", "INT64", limit)]
        )
        query = LATEST_SCANS_QUERY.format(table=state.tables[TABLE_PAGE_SCANS])
        try:
            rows = state.client.query(query, job_config=job_config, location=self.config.location).result()
        except (GoogleAPIError, GoogleAuthError) as e:
            raise AnalyticsConnectivityError(f"Query failed: {e}", table=TABLE_PAGE_SCANS, cause=e) from e
        return [dict(row.items()) for row in rows]


@lru_cache()
def get_analytics_writer() -> AnalyticsWriter:
    """Process-wide writer built from the environment settings."""
    return AnalyticsWriter(AnalyticsConfig.from_settings())
