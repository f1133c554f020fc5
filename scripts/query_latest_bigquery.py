#!/usr/bin/env python3
"""
Print the most recent page_scans rows.

Usage:
    python scripts/query_latest_bigquery.py [--limit 20]
"""

import argparse
import json
import sys

from a11y_insights.features.analytics.exceptions import AnalyticsError
from a11y_insights.features.analytics.services.bigquery_writer import get_analytics_writer
from a11y_insights.platform.config import settings
from a11y_insights.platform.logger import get_logger

logger = get_logger("scripts.query_latest_bigquery")

SUMMARY_COLUMNS = ("ingested_at", "project_id", "run_id", "page_id", "status", "issues_total")


def main() -> int:
    parser = argparse.ArgumentParser(description="Show the latest page_scans rows")
    parser.add_argument("--limit", type=int, default=settings.BQ_QUERY_LIMIT, help="Rows to fetch")
    args = parser.parse_args()

    try:
        rows = get_analytics_writer().query_latest_scans(args.limit)
    except AnalyticsError as e:
        logger.error(f"BigQuery query FAILED: {e}")
        return 1

    print(f"Latest page_scans rows ({len(rows)})")
    for row in rows:
        print(json.dumps({column: row.get(column) for column in SUMMARY_COLUMNS}, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
