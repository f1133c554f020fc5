"""
Issue Schemas

Canonical accessibility findings produced by either analysis path, plus the
per-page evaluation result handed back to the scan pipeline.
"""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Impact = Literal["critical", "serious", "moderate", "minor"]


class Issue(BaseModel):
    impact: Impact = "moderate"
    message: str
    selector: Optional[str] = None
    rule_id: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    html: Optional[str] = None
    evidence: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    needs_review: bool = True
    engine: str
    ai_how_to_fix: Optional[str] = None

    # Optional fields carried through to the warehouse when other engines set them
    help_url: Optional[str] = None
    failure_summary: Optional[str] = None
    decision: Optional[str] = None
    target: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "impact": "minor",
                "message": "Possible abbreviation without expansion",
                "selector": "main > p:nth-of-type(2)",
                "rule_id": "wcag-3.1.4",
                "description": "Provide expansions for abbreviations the first time they appear.",
                "tags": ["wcag2aaa", "wcag314"],
                "html": "<p>Contact HR for details.</p>",
                "evidence": ["Contact HR for details."],
                "confidence": 0.4,
                "needs_review": True,
                "engine": "ai-heuristics",
                "ai_how_to_fix": None,
            }
        }


class CheckTiming(BaseModel):
    """Duration of one named check execution on one page."""
    check: str
    duration_ms: int
    issues: Optional[int] = None
    error: Optional[str] = None


class SeveritySummary(BaseModel):
    critical: int = 0
    serious: int = 0
    moderate: int = 0
    minor: int = 0

    @classmethod
    def from_issues(cls, issues: List[Issue]) -> "SeveritySummary":
        counts: Dict[str, int] = {}
        for issue in issues:
            counts[issue.impact] = counts.get(issue.impact, 0) + 1
        return cls(**counts)


class EvaluationResult(BaseModel):
    issues: List[Issue] = Field(default_factory=list)
    engine: str
    used_model: bool = False
    check_timings: List[CheckTiming] = Field(default_factory=list)
    model_error: Optional[str] = None

    @property
    def total_duration_ms(self) -> int:
        return sum(timing.duration_ms for timing in self.check_timings)
