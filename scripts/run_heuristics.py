#!/usr/bin/env python3
"""
Evaluate one URL and print the findings as JSON.

Usage:
    python scripts/run_heuristics.py https://example.com [--screenshot] [--ingest --project-id P --run-id R --page-id PG]

With --ingest the result is queued for warehouse ingestion on the
analytics.ingestion Celery queue.
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone

from selenium.common.exceptions import WebDriverException

from a11y_insights.features.analytics.schemas.records import PageRef
from a11y_insights.features.analytics.workers.tasks import enqueue_page_results
from a11y_insights.features.heuristics.exceptions import ModelError
from a11y_insights.features.heuristics.services.engine import AccessibilityHeuristicsEngine
from a11y_insights.features.heuristics.services.page_loader import PageLoaderService
from a11y_insights.platform.logger import get_logger

logger = get_logger("scripts.run_heuristics")


async def evaluate(url: str, include_screenshot: bool):
    driver = await asyncio.to_thread(PageLoaderService.load_page, url)
    try:
        engine = AccessibilityHeuristicsEngine(driver, include_screenshot=include_screenshot)
        return await engine.run_all()
    finally:
        driver.quit()


def main() -> int:
    parser = argparse.ArgumentParser(description="Run accessibility heuristics against a URL")
    parser.add_argument("url")
    parser.add_argument("--screenshot", action="store_true", help="Attach a screenshot to the model request")
    parser.add_argument("--ingest", action="store_true", help="Queue the result for analytics ingestion")
    parser.add_argument("--project-id")
    parser.add_argument("--run-id")
    parser.add_argument("--page-id")
    args = parser.parse_args()

    if args.ingest and not (args.project_id and args.run_id and args.page_id):
        parser.error("--ingest requires --project-id, --run-id and --page-id")

    started_at = datetime.now(timezone.utc)
    try:
        result = asyncio.run(evaluate(args.url, args.screenshot))
    except (WebDriverException, ModelError) as e:
        logger.error(f"Evaluation of {args.url} failed: {e}")
        return 1
    finished_at = datetime.now(timezone.utc)

    print(json.dumps(result.model_dump(mode="json"), indent=2))

    if args.ingest:
        ref = PageRef(
            project_id=args.project_id,
            run_id=args.run_id,
            page_id=args.page_id,
            page_url=args.url,
        )
        async_result = enqueue_page_results(
            ref,
            result,
            scan={
                "scan_started_at": started_at.isoformat(),
                "scan_finished_at": finished_at.isoformat(),
                "action": "scan",
            },
        )
        logger.info(f"Queued analytics ingestion task {async_result.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
