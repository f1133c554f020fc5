import logging
import time
from typing import Optional

from a11y_insights.features.heuristics.constants import HEURISTICS_ENGINE, MODEL_ENGINE
from a11y_insights.features.heuristics.exceptions import ModelError
from a11y_insights.features.heuristics.schemas.issue import CheckTiming, EvaluationResult
from a11y_insights.features.heuristics.services.checks import HeuristicEvaluator
from a11y_insights.features.heuristics.services.model_analyzer import ModelAssistedAnalyzer
from a11y_insights.features.heuristics.services.page_context import PageContextExtractor, PageHandle
from a11y_insights.platform.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

MODEL_CHECK_NAME = "ai_model"


class AccessibilityHeuristicsEngine:
    """
    Evaluates one rendered page.

    Flow:
    1. Read the page once (PageContextExtractor)
    2. If a model key is configured, ask the model; a non-empty answer
       replaces the heuristic battery for this page
    3. Otherwise run the six heuristic checks

    A model request failure (ModelError) aborts the evaluation unless
    AI_FALLBACK_ON_MODEL_ERROR is set, in which case the heuristics run and
    the error is reported on the result.
    """

    def __init__(
        self,
        page: PageHandle,
        config: Optional[Settings] = None,
        model_analyzer: Optional[ModelAssistedAnalyzer] = None,
        include_screenshot: Optional[bool] = None,
    ):
        self.config = config or default_settings
        self.extractor = PageContextExtractor(page)
        self.model_analyzer = model_analyzer or ModelAssistedAnalyzer(self.config)
        self.include_screenshot = (
            self.config.AI_INCLUDE_SCREENSHOT if include_screenshot is None else include_screenshot
        )

    async def run_all(self) -> EvaluationResult:
        snapshot = await self.extractor.collect_snapshot()
        timings = []
        model_error = None

        if self.model_analyzer.enabled:
            context = self.extractor.build_context(snapshot)
            screenshot_data_url = None
            if self.include_screenshot:
                capture = await self.extractor.capture_screenshot()
                if capture.ok:
                    screenshot_data_url = capture.data_url
                else:
                    logger.info(f"Model request sent without screenshot: {capture.error}")

            started = time.perf_counter()
            try:
                model_issues = await self.model_analyzer.analyze(context, screenshot_data_url)
            except ModelError as e:
                duration_ms = round((time.perf_counter() - started) * 1000)
                if not self.config.AI_FALLBACK_ON_MODEL_ERROR:
                    logger.error(f"Model analysis failed, aborting page evaluation: {e}")
                    raise
                logger.warning(f"Model analysis failed, falling back to heuristics: {e}")
                model_error = str(e)
                timings.append(CheckTiming(check=MODEL_CHECK_NAME, duration_ms=duration_ms, error=model_error))
            else:
                duration_ms = round((time.perf_counter() - started) * 1000)
                timings.append(
                    CheckTiming(check=MODEL_CHECK_NAME, duration_ms=duration_ms, issues=len(model_issues))
                )
                if model_issues:
                    return EvaluationResult(
                        issues=model_issues,
                        engine=MODEL_ENGINE,
                        used_model=True,
                        check_timings=timings,
                    )
                logger.info("Model returned no issues, running heuristic checks")

        evaluator = HeuristicEvaluator(snapshot, max_findings_per_rule=self.config.AI_MAX_FINDINGS_PER_RULE)
        issues, check_timings = evaluator.run_all()
        timings.extend(check_timings)

        return EvaluationResult(
            issues=issues,
            engine=HEURISTICS_ENGINE,
            used_model=False,
            check_timings=timings,
            model_error=model_error,
        )
