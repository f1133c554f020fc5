from typing import List, Optional

from a11y_insights.features.analytics.schemas.records import ConnectionReport
from a11y_insights.features.analytics.services.bigquery_writer import AnalyticsWriter, get_analytics_writer


class ConnectionValidator:
    """Runs the staged warehouse diagnostic and renders it for operators."""

    def __init__(self, writer: Optional[AnalyticsWriter] = None):
        self.writer = writer or get_analytics_writer()

    def validate(self) -> ConnectionReport:
        return self.writer.test_connection()

    @staticmethod
    def format_report(report: ConnectionReport) -> List[str]:
        config = report.config
        if report.ok:
            return [
                "BigQuery connection OK",
                f"- project: {config.get('project_id')}",
                f"- dataset: {config.get('dataset')}",
                f"- location: {report.location or '(unknown)'}",
            ]

        lines = ["BigQuery connection FAILED", f"- stage: {report.stage}"]
        lines.extend(f"  • {error}" for error in report.config_errors)
        if report.error:
            lines.append(f"- error: {report.error}")
        lines.append(f"- cfg: {config}")
        return lines

    @staticmethod
    def exit_code(report: ConnectionReport) -> int:
        return 0 if report.ok else 1
