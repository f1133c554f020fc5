from unittest.mock import MagicMock

from a11y_insights.features.analytics.schemas.records import ConnectionReport
from a11y_insights.features.analytics.services.bigquery_writer import AnalyticsWriter
from a11y_insights.features.analytics.services.connection_validator import ConnectionValidator

CONFIG = {"enabled": True, "project_id": "proj", "dataset": "a11y", "location": None}


def test_validate_delegates_to_writer(writer):
    report = ConnectionValidator(writer).validate()

    assert report.ok is True
    assert report.stage == "done"


def test_ok_report_lines():
    report = ConnectionReport(ok=True, stage="done", config=CONFIG, dataset_id="proj:a11y", location="EU")

    assert ConnectionValidator.format_report(report) == [
        "BigQuery connection OK",
        "- project: proj",
        "- dataset: a11y",
        "- location: EU",
    ]
    assert ConnectionValidator.exit_code(report) == 0


def test_ok_report_without_location():
    report = ConnectionReport(ok=True, stage="done", config=CONFIG)
    assert ConnectionValidator.format_report(report)[-1] == "- location: (unknown)"


def test_config_failure_lines():
    report = ConnectionReport(
        ok=False,
        stage="config",
        config={**CONFIG, "enabled": False, "dataset": None},
        config_errors=["BQ_ENABLED is not set to 1", "BQ_DATASET is missing"],
    )

    lines = ConnectionValidator.format_report(report)

    assert lines[:4] == [
        "BigQuery connection FAILED",
        "- stage: config",
        "  • BQ_ENABLED is not set to 1",
        "  • BQ_DATASET is missing",
    ]
    assert lines[-1].startswith("- cfg: ")
    assert ConnectionValidator.exit_code(report) == 1


def test_api_failure_lines():
    writer = MagicMock(spec=AnalyticsWriter)
    writer.test_connection.return_value = ConnectionReport(
        ok=False, stage="auth_or_api", config=CONFIG, error="403 Access Denied"
    )
    validator = ConnectionValidator(writer)

    report = validator.validate()

    assert "- error: 403 Access Denied" in validator.format_report(report)
    assert validator.exit_code(report) == 1
