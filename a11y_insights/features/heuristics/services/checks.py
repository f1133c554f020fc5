import logging
import re
import time
from typing import Callable, List, Tuple

from a11y_insights.features.heuristics.constants import (
    EVIDENCE_TEXT_LIMIT,
    HEURISTICS_ENGINE,
    MAX_FINDINGS_PER_RULE,
    READING_LEVEL_MAX_GRADE,
    READING_LEVEL_MIN_WORDS,
)
from a11y_insights.features.heuristics.schemas.issue import CheckTiming, Issue
from a11y_insights.features.heuristics.schemas.page_context import DomSnapshot
from a11y_insights.features.heuristics.services.normalizer import normalize_issue
from a11y_insights.features.heuristics.services.text_metrics import compute_readability

logger = logging.getLogger(__name__)

SENSORY_PATTERNS = (
    re.compile(r"\bclick the (red|green|blue|left|right)\b", re.IGNORECASE),
    re.compile(r"\bsee (above|below|left|right)\b", re.IGNORECASE),
    re.compile(r"\bto the (left|right)\b", re.IGNORECASE),
    re.compile(r"\bshown in (red|green|blue)\b", re.IGNORECASE),
    re.compile(r"\b(use|select) the (circle|square|triangle)\b", re.IGNORECASE),
)
SENSORY_TAGS = frozenset({"p", "li", "label", "span", "button", "a"})

ABBREVIATION_PATTERN = re.compile(r"\b[A-Z]{2,}\b")
ABBREVIATION_TAGS = frozenset({"p", "li", "span", "label"})

SITEMAP_TERMS = ("sitemap", "site map")
HELP_TERMS = ("help", "support", "contact", "faq")

OTP_PATTERNS = (
    re.compile(r"one-time"),
    re.compile(r"\botp\b"),
    re.compile(r"verification code"),
)


class HeuristicEvaluator:
    """
    Rule-based checks for success criteria that automated engines rarely cover.

    Every check is a read-only function of the page snapshot and returns zero
    or more normalized issues. run_all() times each check and isolates
    failures so one broken check never hides the others.
    """

    def __init__(self, snapshot: DomSnapshot, max_findings_per_rule: int = MAX_FINDINGS_PER_RULE):
        self.snapshot = snapshot
        self.max_findings = max_findings_per_rule

    def checks(self) -> List[Tuple[str, Callable[[], List[Issue]]]]:
        return [
            ("sensory_characteristics", self.check_sensory_characteristics),
            ("multiple_ways", self.check_multiple_ways),
            ("abbreviations", self.check_abbreviations),
            ("reading_level", self.check_reading_level),
            ("help_availability", self.check_help_availability),
            ("accessible_authentication", self.check_accessible_authentication),
        ]

    def run_all(self) -> Tuple[List[Issue], List[CheckTiming]]:
        issues: List[Issue] = []
        timings: List[CheckTiming] = []

        for name, check in self.checks():
            started = time.perf_counter()
            try:
                found = check()
            except Exception as e:
                duration_ms = round((time.perf_counter() - started) * 1000)
                logger.exception(f"Heuristic check {name} failed")
                timings.append(CheckTiming(check=name, duration_ms=duration_ms, issues=None, error=str(e)))
                continue

            duration_ms = round((time.perf_counter() - started) * 1000)
            timings.append(CheckTiming(check=name, duration_ms=duration_ms, issues=len(found)))
            issues.extend(found)

        logger.info(f"Heuristic checks produced {len(issues)} issues")
        return issues, timings

    @staticmethod
    def _issue(**fields) -> Issue:
        return normalize_issue(fields, HEURISTICS_ENGINE)

    def check_sensory_characteristics(self) -> List[Issue]:
        matches = []
        for element in self.snapshot.text_elements:
            if element.tag not in SENSORY_TAGS:
                continue
            text = element.text.strip()
            if text and (element.sensory_match or any(p.search(text) for p in SENSORY_PATTERNS)):
                matches.append(element)
            if len(matches) >= self.max_findings:
                break

        return [
            self._issue(
                impact="moderate",
                rule_id="wcag-1.3.3",
                message="Instruction may rely on sensory characteristics",
                description="Instructions should not rely solely on shape, size, visual location, or orientation.",
                selector=element.selector,
                html=element.html,
                tags=["wcag2a", "wcag133"],
                evidence=[element.text.strip()[:EVIDENCE_TEXT_LIMIT]],
                confidence=0.55,
            )
            for element in matches
        ]

    def check_multiple_ways(self) -> List[Issue]:
        if self.snapshot.has_search or self.snapshot.has_sitemap_link:
            return []

        return [
            self._issue(
                impact="moderate",
                rule_id="wcag-2.4.5",
                message="Multiple ways to locate content not detected",
                description="Provide more than one way to locate content (e.g., search or sitemap).",
                tags=["wcag2aa", "wcag245"],
                evidence=["No search form or sitemap link found"],
                confidence=0.45,
            )
        ]

    def check_abbreviations(self) -> List[Issue]:
        issues = []
        for element in self.snapshot.text_elements:
            if element.tag not in ABBREVIATION_TAGS or element.has_titled_abbr:
                continue
            text = element.text.strip()
            abbreviation = element.abbreviation
            if not abbreviation:
                match = ABBREVIATION_PATTERN.search(text)
                if not match:
                    continue
                abbreviation = match.group(0)
            issues.append(
                self._issue(
                    impact="minor",
                    rule_id="wcag-3.1.4",
                    message="Possible abbreviation without expansion",
                    description="Provide expansions for abbreviations the first time they appear.",
                    selector=element.selector,
                    html=element.html,
                    tags=["wcag2aaa", "wcag314"],
                    evidence=[text[:EVIDENCE_TEXT_LIMIT], f"Abbreviation: {abbreviation}"],
                    confidence=0.4,
                )
            )
            if len(issues) >= self.max_findings:
                break
        return issues

    def check_reading_level(self) -> List[Issue]:
        metrics = compute_readability(self.snapshot.body_text)

        if metrics.word_count < READING_LEVEL_MIN_WORDS:
            return []
        if metrics.flesch_kincaid_grade <= READING_LEVEL_MAX_GRADE:
            return []

        return [
            self._issue(
                impact="minor",
                rule_id="wcag-3.1.5",
                message="Reading level may be advanced",
                description="Consider providing supplemental content for complex text.",
                tags=["wcag2aaa", "wcag315"],
                evidence=[
                    f"Estimated grade level: {metrics.flesch_kincaid_grade}",
                    f"Word count: {metrics.word_count}",
                ],
                confidence=0.35,
            )
        ]

    def check_help_availability(self) -> List[Issue]:
        if self.snapshot.form_count <= 0 or self.snapshot.has_help_control:
            return []

        return [
            self._issue(
                impact="moderate",
                rule_id="wcag-3.3.5",
                message="Help option not detected near forms",
                description="Provide help or instructions for users who need assistance with forms.",
                tags=["wcag2aa", "wcag335"],
                evidence=["Forms present, no help/support link detected"],
                confidence=0.4,
            )
        ]

    def check_accessible_authentication(self) -> List[Issue]:
        if not self.snapshot.has_password_input:
            return []

        text = self.snapshot.body_text.lower()
        signals = [
            ("CAPTCHA detected", "captcha" in text or self.snapshot.has_captcha_element),
            ("OTP/verification code detected", any(p.search(text) for p in OTP_PATTERNS)),
            ("Security question detected", "security question" in text),
        ]
        evidence = [label for label, present in signals if present]
        if not evidence:
            return []

        return [
            self._issue(
                impact="moderate",
                rule_id="wcag-3.3.8",
                message="Authentication may require cognitive or sensory steps",
                description="Ensure accessible authentication with alternatives to memory or sensory tasks.",
                tags=["wcag2aa", "wcag338"],
                evidence=evidence,
                confidence=0.4,
            )
        ]
