from unittest.mock import AsyncMock, MagicMock

import pytest

from a11y_insights.features.heuristics.exceptions import ModelError
from a11y_insights.features.heuristics.schemas.issue import Issue
from a11y_insights.features.heuristics.services.engine import AccessibilityHeuristicsEngine
from a11y_insights.platform.config import Settings

SNAPSHOT = {
    "body_text": "Sign in. Complete the captcha to continue.",
    "text_elements": [{"tag": "p", "text": "Ask HR for access", "selector": "main > p:nth-of-type(1)"}],
    "has_password_input": True,
    "form_count": 1,
}


@pytest.fixture
def mock_driver():
    driver = MagicMock(spec=["execute_script", "get_screenshot_as_base64", "execute_cdp_cmd"])
    driver.execute_script.return_value = SNAPSHOT
    driver.execute_cdp_cmd.return_value = {"data": "c2hvdA=="}
    return driver


@pytest.fixture
def model_analyzer():
    analyzer = MagicMock()
    analyzer.enabled = True
    analyzer.analyze = AsyncMock(return_value=[])
    return analyzer


def model_issue():
    return Issue(message="Expand HR", rule_id="wcag-3.1.4", impact="minor", engine="ai-model", confidence=0.6)


class TestModelPath:
    @pytest.mark.asyncio
    async def test_model_findings_replace_heuristics(self, test_settings, mock_driver, model_analyzer):
        model_analyzer.analyze.return_value = [model_issue()]

        result = await AccessibilityHeuristicsEngine(mock_driver, test_settings, model_analyzer).run_all()

        assert result.engine == "ai-model"
        assert result.used_model is True
        assert [i.message for i in result.issues] == ["Expand HR"]
        assert [t.check for t in result.check_timings] == ["ai_model"]
        assert result.check_timings[0].issues == 1

    @pytest.mark.asyncio
    async def test_empty_model_result_falls_back(self, test_settings, mock_driver, model_analyzer):
        result = await AccessibilityHeuristicsEngine(mock_driver, test_settings, model_analyzer).run_all()

        assert result.engine == "ai-heuristics"
        assert result.used_model is False
        assert result.check_timings[0].check == "ai_model"
        assert len(result.check_timings) == 7
        assert {"wcag-3.1.4", "wcag-3.3.5", "wcag-3.3.8"} <= {i.rule_id for i in result.issues}
        assert all(i.engine == "ai-heuristics" for i in result.issues)

    @pytest.mark.asyncio
    async def test_model_error_aborts_by_default(self, test_settings, mock_driver, model_analyzer):
        model_analyzer.analyze.side_effect = ModelError("AI API failed", status_code=500, body="oops")

        with pytest.raises(ModelError):
            await AccessibilityHeuristicsEngine(mock_driver, test_settings, model_analyzer).run_all()

    @pytest.mark.asyncio
    async def test_model_error_falls_back_when_configured(self, mock_driver, model_analyzer):
        config = Settings(_env_file=None, AI_API_KEY="k", AI_FALLBACK_ON_MODEL_ERROR=True)
        model_analyzer.analyze.side_effect = ModelError("AI API failed", status_code=500, body="oops")

        result = await AccessibilityHeuristicsEngine(mock_driver, config, model_analyzer).run_all()

        assert result.engine == "ai-heuristics"
        assert result.model_error == "AI API failed: 500 - oops"
        assert result.check_timings[0].error == "AI API failed: 500 - oops"
        assert result.issues

    @pytest.mark.asyncio
    async def test_screenshot_is_attached_when_enabled(self, test_settings, mock_driver, model_analyzer):
        engine = AccessibilityHeuristicsEngine(mock_driver, test_settings, model_analyzer, include_screenshot=True)

        await engine.run_all()

        context, screenshot = model_analyzer.analyze.await_args.args
        assert context.page_text == SNAPSHOT["body_text"]
        assert screenshot == "data:image/jpeg;base64,c2hvdA=="

    @pytest.mark.asyncio
    async def test_screenshot_failure_still_calls_model(self, test_settings, mock_driver, model_analyzer):
        mock_driver.execute_cdp_cmd.return_value = {}
        mock_driver.get_screenshot_as_base64.return_value = ""
        engine = AccessibilityHeuristicsEngine(mock_driver, test_settings, model_analyzer, include_screenshot=True)

        await engine.run_all()

        assert model_analyzer.analyze.await_args.args[1] is None


class TestHeuristicsOnly:
    @pytest.mark.asyncio
    async def test_disabled_model_is_not_called(self, test_settings, mock_driver, model_analyzer):
        model_analyzer.enabled = False

        result = await AccessibilityHeuristicsEngine(mock_driver, test_settings, model_analyzer).run_all()

        model_analyzer.analyze.assert_not_awaited()
        assert result.engine == "ai-heuristics"
        assert len(result.check_timings) == 6
        assert result.total_duration_ms == sum(t.duration_ms for t in result.check_timings)

    @pytest.mark.asyncio
    async def test_page_is_read_once(self, test_settings, mock_driver, model_analyzer):
        await AccessibilityHeuristicsEngine(mock_driver, test_settings, model_analyzer).run_all()

        assert mock_driver.execute_script.call_count == 1
