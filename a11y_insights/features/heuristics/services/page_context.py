import asyncio
import logging
import re
from typing import Any, Dict, Optional, Protocol

from selenium.common.exceptions import WebDriverException

from a11y_insights.features.heuristics import constants as c
from a11y_insights.features.heuristics.schemas.page_context import (
    DomSnapshot,
    FormEntry,
    FormInputEntry,
    HeadingEntry,
    LinkEntry,
    MediaEntry,
    MediaTrack,
    PageContext,
    ScreenshotCapture,
)
from a11y_insights.features.heuristics.services.checks import (
    ABBREVIATION_PATTERN,
    ABBREVIATION_TAGS,
    HELP_TERMS,
    SENSORY_PATTERNS,
    SENSORY_TAGS,
    SITEMAP_TERMS,
)
from a11y_insights.features.heuristics.services.dom_scripts import PAGE_SNAPSHOT_SCRIPT

logger = logging.getLogger(__name__)


class PageHandle(Protocol):
    """The slice of a Selenium WebDriver the engine relies on."""

    def execute_script(self, script: str, *args: Any) -> Any: ...

    def get_screenshot_as_base64(self) -> str: ...


def truncate(value: Any, limit: int) -> str:
    if value is None:
        return ""
    text = str(value)
    return text[:limit] if len(text) > limit else text


def truncate_optional(value: Any, limit: int) -> Optional[str]:
    if value is None or value == "":
        return None
    return truncate(value, limit)


SNAPSHOT_LIMITS: Dict[str, int] = {
    "body_text": c.BODY_TEXT_LIMIT,
    "max_headings": c.MAX_HEADINGS,
    "max_forms": c.MAX_FORMS,
    "max_form_inputs": c.MAX_FORM_INPUTS,
    "max_links": c.MAX_LINKS,
    "max_media": c.MAX_MEDIA,
    "max_text_elements": c.MAX_TEXT_ELEMENTS,
    "element_text": c.ELEMENT_TEXT_LIMIT,
    "heading_text": c.HEADING_TEXT_LIMIT,
    "label": c.LABEL_LIMIT,
    "link_text": c.LINK_TEXT_LIMIT,
    "url": c.URL_LIMIT,
    "html": c.HTML_SNIPPET_LIMIT,
}


def js_pattern(pattern: re.Pattern) -> Dict[str, str]:
    return {"source": pattern.pattern, "flags": "i" if pattern.flags & re.IGNORECASE else ""}


SNAPSHOT_PATTERNS: Dict[str, Any] = {
    "sensory": [js_pattern(p) for p in SENSORY_PATTERNS],
    "sensory_tags": sorted(SENSORY_TAGS),
    "abbreviation": js_pattern(ABBREVIATION_PATTERN),
    "abbreviation_tags": sorted(ABBREVIATION_TAGS),
    "help_terms": list(HELP_TERMS),
    "sitemap_terms": list(SITEMAP_TERMS),
}


class PageContextExtractor:
    """
    Reads a rendered page once and turns the result into the structures the
    checks and the model prompt consume.

    The page is never mutated; every method is a read.
    """

    def __init__(self, page: PageHandle):
        self.page = page

    async def collect_snapshot(self) -> DomSnapshot:
        # Selenium calls block, so keep them off the event loop
        raw = await asyncio.to_thread(
            self.page.execute_script, PAGE_SNAPSHOT_SCRIPT, SNAPSHOT_LIMITS, SNAPSHOT_PATTERNS
        )
        return DomSnapshot.model_validate(raw or {})

    @staticmethod
    def build_context(snapshot: DomSnapshot) -> PageContext:
        """Apply every PageContext bound, whatever the page script returned."""
        headings = [
            HeadingEntry(
                level=str(item.get("level") or "h1"),
                text=truncate(item.get("text"), c.HEADING_TEXT_LIMIT),
                selector=item.get("selector") or str(item.get("level") or "h1"),
                html=truncate_optional(item.get("html"), c.HTML_SNIPPET_LIMIT),
            )
            for item in snapshot.headings[: c.MAX_HEADINGS]
        ]

        forms = []
        for form in snapshot.forms[: c.MAX_FORMS]:
            inputs = [
                FormInputEntry(
                    type=str(field.get("type") or "input"),
                    input_type=field.get("input_type") or None,
                    label=truncate(field.get("label"), c.LABEL_LIMIT).strip(),
                    selector=field.get("selector") or str(field.get("type") or "input"),
                    html=truncate_optional(field.get("html"), c.HTML_SNIPPET_LIMIT),
                )
                for field in (form.get("inputs") or [])[: c.MAX_FORM_INPUTS]
            ]
            forms.append(FormEntry(inputs=inputs))

        links = [
            LinkEntry(
                text=truncate(item.get("text"), c.LINK_TEXT_LIMIT),
                href=truncate(item.get("href"), c.URL_LIMIT),
                selector=item.get("selector") or "a",
                html=truncate_optional(item.get("html"), c.HTML_SNIPPET_LIMIT),
            )
            for item in snapshot.links[: c.MAX_LINKS]
        ]

        media = [
            MediaEntry(
                tag=str(item.get("tag") or "video"),
                autoplay=bool(item.get("autoplay")),
                controls=bool(item.get("controls")),
                src=truncate(item.get("src"), c.URL_LIMIT),
                tracks=[MediaTrack(**track) for track in item.get("tracks") or []],
            )
            for item in snapshot.media[: c.MAX_MEDIA]
        ]

        return PageContext(
            page_text=truncate(snapshot.body_text, c.PAGE_TEXT_LIMIT),
            headings=headings,
            forms=forms,
            links=links,
            media=media,
        )

    async def extract(self) -> PageContext:
        snapshot = await self.collect_snapshot()
        return self.build_context(snapshot)

    async def capture_screenshot(self) -> ScreenshotCapture:
        """
        Capture a compressed full-page screenshot as a data URL.

        Chrome exposes JPEG capture through the DevTools protocol; other
        drivers fall back to the WebDriver PNG screenshot.
        """
        try:
            return await asyncio.to_thread(self._capture_screenshot)
        except WebDriverException as e:
            logger.warning(f"Screenshot capture failed: {e.msg or e}")
            return ScreenshotCapture(error=str(e.msg or e))

    def _capture_screenshot(self) -> ScreenshotCapture:
        cdp = getattr(self.page, "execute_cdp_cmd", None)
        if callable(cdp):
            shot = cdp(
                "Page.captureScreenshot",
                {"format": "jpeg", "quality": 60, "captureBeyondViewport": True},
            )
            data = (shot or {}).get("data")
            if data:
                return ScreenshotCapture(data_url=f"data:image/jpeg;base64,{data}")

        data = self.page.get_screenshot_as_base64()
        if not data:
            return ScreenshotCapture(error="Driver returned an empty screenshot")
        return ScreenshotCapture(data_url=f"data:image/png;base64,{data}")
