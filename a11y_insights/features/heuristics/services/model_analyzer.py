import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from a11y_insights.features.heuristics.constants import MODEL_ENGINE, MODEL_SC_WHITELIST
from a11y_insights.features.heuristics.exceptions import ModelError
from a11y_insights.features.heuristics.schemas.issue import Issue
from a11y_insights.features.heuristics.schemas.page_context import PageContext
from a11y_insights.features.heuristics.services.normalizer import normalize_issues
from a11y_insights.platform.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTIONS = " ".join([
    "You are an accessibility analyst.",
    'Return only valid JSON with shape: {"issues": [{"sc": "3.1.4", "message": "...", "confidence": 0.7, '
    '"evidence": ["..."], "selector": "...", "html": "...", "impact": "moderate", "howToFix": "...", '
    '"fixedCode": "..."}] }.',
    "If the issue is tied to a specific element, include selector and html.",
    "Use only the SCs from this list:",
    f"{MODEL_SC_WHITELIST}.",
    "If unsure, return an empty issues array.",
])

HELP_AVAILABILITY_SC = "3.3.5"


@dataclass
class ModelParseResult:
    """Issues found in a model response, or why none could be read."""
    issues: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def normalize_sc_to_rule_id(sc: Any) -> Optional[str]:
    if not sc:
        return None
    trimmed = str(sc).strip()
    if not trimmed:
        return None
    if trimmed.startswith("wcag-"):
        return trimmed
    return f"wcag-{trimmed}"


def build_tags_from_sc(sc: Any) -> List[str]:
    if not sc:
        return []
    digits = re.sub(r"[^0-9]", "", str(sc))
    return [f"wcag{digits}"] if digits else []


def extract_issues_from_response(response: Any) -> ModelParseResult:
    """Read {"issues": [...]} out of the first output_text block."""
    if response is None:
        return ModelParseResult(error="Empty model response")
    if hasattr(response, "model_dump"):
        response = response.model_dump()
    if not isinstance(response, dict):
        return ModelParseResult(error=f"Unexpected response type {type(response).__name__}")

    output = response.get("output")
    for item in output if isinstance(output, list) else []:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        for block in content if isinstance(content, list) else []:
            if not isinstance(block, dict) or block.get("type") != "output_text" or not block.get("text"):
                continue
            try:
                parsed = json.loads(block["text"])
            except json.JSONDecodeError as e:
                return ModelParseResult(error=f"Model returned invalid JSON: {e}")
            if not isinstance(parsed, dict) or not isinstance(parsed.get("issues"), list):
                return ModelParseResult(error="Model JSON has no issues array")
            return ModelParseResult(issues=[i for i in parsed["issues"] if isinstance(i, dict)])

    return ModelParseResult(error="No output_text block in model response")


def enrich_issues_with_context(issues: List[Dict[str, Any]], context: PageContext) -> List[Dict[str, Any]]:
    """Point element-less help-availability findings at an unlabeled submit input."""
    form_inputs = context.form_inputs()
    if not form_inputs:
        return issues

    enriched = []
    for issue in issues:
        if issue.get("selector") or issue.get("html") or HELP_AVAILABILITY_SC not in str(issue.get("sc") or ""):
            enriched.append(issue)
            continue
        empty_submit = next(
            (f for f in form_inputs if (f.input_type or "").lower() == "submit" and not f.label),
            None,
        )
        if empty_submit:
            issue = {**issue, "selector": empty_submit.selector, "html": empty_submit.html}
        enriched.append(issue)
    return enriched


class ModelAssistedAnalyzer:
    """
    Single structured-JSON model call over the page context.

    The call has an explicit timeout and a small bounded retry with
    exponential backoff. Cancelling the awaiting task aborts the in-flight
    request and any pending backoff.
    """

    def __init__(self, config: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.config = config or default_settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.config.AI_API_KEY)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.AI_API_KEY,
                base_url=self.config.AI_API_BASE_URL,
                timeout=self.config.AI_REQUEST_TIMEOUT_SEC,
                max_retries=0,
            )
        return self._client

    def build_request(self, context: PageContext, screenshot_data_url: Optional[str] = None) -> Dict[str, Any]:
        user_content: List[Dict[str, Any]] = [
            {"type": "input_text", "text": json.dumps({"context": context.model_dump()})}
        ]
        if screenshot_data_url:
            user_content.append({"type": "input_image", "image_url": screenshot_data_url})

        return {
            "model": self.config.AI_MODEL,
            "input": [
                {"role": "system", "content": [{"type": "input_text", "text": SYSTEM_INSTRUCTIONS}]},
                {"role": "user", "content": user_content},
            ],
            "text": {"format": {"type": "json_object"}},
        }

    @staticmethod
    def _is_retryable(exc: Exception) -> bool:
        # APITimeoutError is a subclass of APIConnectionError
        return isinstance(exc, (APIConnectionError, RateLimitError, InternalServerError))

    async def call_model(self, request: Dict[str, Any]) -> Any:
        client = self._get_client()
        max_retries = self.config.AI_MAX_RETRIES
        backoff = self.config.AI_RETRY_BACKOFF_SEC

        for attempt in range(max_retries + 1):
            try:
                return await client.responses.create(**request, timeout=self.config.AI_REQUEST_TIMEOUT_SEC)
            except (APIStatusError, APIConnectionError) as e:
                if self._is_retryable(e) and attempt < max_retries:
                    wait_time = backoff * (2 ** attempt)
                    logger.warning(
                        f"Model call failed (attempt {attempt + 1}/{max_retries + 1}): {e}. "
                        f"Retrying in {wait_time} seconds..."
                    )
                    await asyncio.sleep(wait_time)
                    continue

                if isinstance(e, APIStatusError):
                    raise ModelError(
                        "AI API failed",
                        status_code=e.status_code,
                        body=_response_body(e),
                        cause=e,
                    ) from e
                raise ModelError(f"AI API unreachable: {e}", cause=e) from e

        raise ModelError("AI API failed without a response")

    async def analyze(self, context: PageContext, screenshot_data_url: Optional[str] = None) -> List[Issue]:
        """
        Ask the model for findings and normalize them.

        Returns an empty list when the model reports nothing or its output
        cannot be parsed, so the caller can fall back to the heuristics.
        Raises ModelError when the request itself fails.
        """
        response = await self.call_model(self.build_request(context, screenshot_data_url))

        parsed = extract_issues_from_response(response)
        if not parsed.ok:
            logger.warning(f"Ignoring unreadable model output: {parsed.error}")
            return []

        raws = []
        for raw in enrich_issues_with_context(parsed.issues, context):
            sc = raw.get("sc")
            raws.append({
                "impact": raw.get("impact"),
                "rule_id": normalize_sc_to_rule_id(sc),
                "message": raw.get("message"),
                "description": raw.get("description"),
                "selector": raw.get("selector"),
                "html": raw.get("html"),
                "tags": build_tags_from_sc(sc),
                "evidence": raw.get("evidence") if isinstance(raw.get("evidence"), list) else [],
                "confidence": raw.get("confidence"),
                "ai_how_to_fix": raw.get("howToFix"),
            })
        issues = normalize_issues(raws, MODEL_ENGINE)

        logger.info(f"Model analysis returned {len(issues)} issues")
        return issues


def _response_body(error: APIStatusError) -> Optional[str]:
    try:
        return error.response.text or None
    except httpx.ResponseNotRead:
        return str(error.body) if error.body is not None else None
