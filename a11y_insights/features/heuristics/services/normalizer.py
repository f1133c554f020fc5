import math
from typing import Any, Dict, List

from a11y_insights.features.heuristics.constants import (
    DEFAULT_CONFIDENCE,
    DEFAULT_IMPACT,
    EVIDENCE_ITEM_LIMIT,
    IMPACTS,
)
from a11y_insights.features.heuristics.schemas.issue import Issue


def clamp_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, float(value)))


def normalize_impact(value: Any) -> str:
    impact = str(value).strip().lower() if value else ""
    return impact if impact in IMPACTS else DEFAULT_IMPACT


def _string_list(value: Any, item_limit: int = EVIDENCE_ITEM_LIMIT) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item)[:item_limit] for item in value if item is not None and str(item) != ""]


def _optional_str(value: Any):
    if value is None or value == "":
        return None
    return str(value)


def normalize_issue(raw: Dict[str, Any], engine: str) -> Issue:
    """
    Map a raw finding from either analysis path onto the canonical Issue.

    Pure: fills defaults, clamps confidence, stamps the engine and always
    marks the finding for review.
    """
    return Issue(
        impact=normalize_impact(raw.get("impact")),
        message=str(raw.get("message") or "Potential accessibility issue"),
        selector=_optional_str(raw.get("selector")),
        rule_id=_optional_str(raw.get("rule_id")),
        description=_optional_str(raw.get("description")),
        tags=_string_list(raw.get("tags")),
        html=_optional_str(raw.get("html")),
        evidence=_string_list(raw.get("evidence")),
        confidence=clamp_confidence(raw.get("confidence")),
        needs_review=True,
        engine=engine,
        ai_how_to_fix=_optional_str(raw.get("ai_how_to_fix")),
        help_url=_optional_str(raw.get("help_url")),
        failure_summary=_optional_str(raw.get("failure_summary")),
        decision=_optional_str(raw.get("decision")),
        target=_string_list(raw.get("target")),
    )


def normalize_issues(raws: List[Dict[str, Any]], engine: str) -> List[Issue]:
    return [normalize_issue(raw, engine) for raw in raws if isinstance(raw, dict)]
