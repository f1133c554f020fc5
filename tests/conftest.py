"""
Test configuration and fixtures for the A11y Insights service.

Provides an in-memory BigQuery stand-in that honours insert ids the way the
streaming API does, plus settings and snapshot builders shared by the
feature tests.
"""

from types import SimpleNamespace
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import NotFound

from a11y_insights.features.analytics.services.bigquery_writer import AnalyticsConfig, AnalyticsWriter
from a11y_insights.features.analytics.services.table_schemas import ALL_TABLES
from a11y_insights.features.heuristics.schemas.page_context import DomSnapshot
from a11y_insights.platform.config import Settings


class FakeBigQueryClient:
    """Keeps rows per table keyed by insert id; a repeated id is dropped."""

    def __init__(self, dataset_exists: bool = True, existing_tables=(), location: str = "EU"):
        self.dataset_exists = dataset_exists
        self.location = location
        self.tables = set(existing_tables)
        self.created_tables = []
        self.insert_calls = []
        self.queries = []
        self.query_rows = []
        self.rows = {}
        # call number (1-based) -> list of row errors, or an exception to raise
        self.insert_failures = {}

    def get_dataset(self, dataset_id):
        if not self.dataset_exists:
            raise NotFound(f"Not found: Dataset {dataset_id}")
        return SimpleNamespace(full_dataset_id=dataset_id.replace(".", ":", 1), location=self.location)

    def get_table(self, table_id):
        if table_id not in self.tables:
            raise NotFound(f"Not found: Table {table_id}")
        return SimpleNamespace(table_id=table_id)

    def create_table(self, table, exists_ok=False):
        self.created_tables.append(table)
        self.tables.add(f"{table.project}.{table.dataset_id}.{table.table_id}")
        return table

    def insert_rows_json(self, table, json_rows, row_ids=None, ignore_unknown_values=False, skip_invalid_rows=False):
        self.insert_calls.append({
            "table": table,
            "rows": list(json_rows),
            "row_ids": list(row_ids or []),
            "ignore_unknown_values": ignore_unknown_values,
            "skip_invalid_rows": skip_invalid_rows,
        })
        failure = self.insert_failures.get(len(self.insert_calls))
        if isinstance(failure, Exception):
            raise failure
        if failure:
            return failure

        stored = self.rows.setdefault(table, {})
        for row_id, row in zip(row_ids, json_rows):
            stored.setdefault(row_id, row)
        return []

    def query(self, sql, job_config=None, location=None):
        self.queries.append({"sql": sql, "job_config": job_config, "location": location})
        return SimpleNamespace(result=lambda: list(self.query_rows))

    def table_rows(self, table_name: str):
        for table_id, rows in self.rows.items():
            if table_id.endswith(f".{table_name}"):
                return list(rows.values())
        return []


@pytest.fixture
def make_fake_bigquery():
    return FakeBigQueryClient


@pytest.fixture
def analytics_config() -> AnalyticsConfig:
    return AnalyticsConfig(enabled=True, project_id="proj", dataset="a11y", location="EU")


@pytest.fixture
def fake_bigquery(analytics_config) -> FakeBigQueryClient:
    """Dataset present and all tables already created."""
    return FakeBigQueryClient(
        existing_tables={analytics_config.table_id(spec.name) for spec in ALL_TABLES}
    )


@pytest.fixture
def writer(analytics_config, fake_bigquery) -> AnalyticsWriter:
    return AnalyticsWriter(analytics_config, client_factory=lambda config: fake_bigquery)


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's .env file."""
    return Settings(
        _env_file=None,
        AI_API_KEY="test-key",
        AI_MAX_RETRIES=2,
        AI_RETRY_BACKOFF_SEC=1.0,
        AI_REQUEST_TIMEOUT_SEC=5,
    )


@pytest.fixture
def make_snapshot():
    def _make(**overrides) -> DomSnapshot:
        return DomSnapshot.model_validate(overrides)
    return _make


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from a11y_insights.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    with TestClient(test_app) as test_client:
        yield test_client
