from typing import List, Optional

from pydantic import BaseModel, Field


class HeadingEntry(BaseModel):
    level: str
    text: str = ""
    selector: str
    html: Optional[str] = None


class FormInputEntry(BaseModel):
    type: str  # tag name: input, select, textarea
    input_type: Optional[str] = None
    label: str = ""
    selector: str
    html: Optional[str] = None


class FormEntry(BaseModel):
    inputs: List[FormInputEntry] = Field(default_factory=list)


class LinkEntry(BaseModel):
    text: str = ""
    href: str = ""
    selector: str = "a"
    html: Optional[str] = None


class MediaTrack(BaseModel):
    kind: str = ""
    srclang: str = ""


class MediaEntry(BaseModel):
    tag: str
    autoplay: bool = False
    controls: bool = False
    src: str = ""
    tracks: List[MediaTrack] = Field(default_factory=list)


class PageContext(BaseModel):
    """Bounded, structured summary of a rendered page."""
    page_text: str = ""
    headings: List[HeadingEntry] = Field(default_factory=list)
    forms: List[FormEntry] = Field(default_factory=list)
    links: List[LinkEntry] = Field(default_factory=list)
    media: List[MediaEntry] = Field(default_factory=list)

    def form_inputs(self) -> List[FormInputEntry]:
        return [field for form in self.forms for field in form.inputs]


class TextElement(BaseModel):
    """
    A text-bearing element the page flagged as a check candidate.

    text is clipped; sensory_match and abbreviation were computed in the page
    over the element's full text.
    """
    tag: str
    text: str
    selector: str
    html: Optional[str] = None
    has_titled_abbr: bool = False
    sensory_match: bool = False
    abbreviation: Optional[str] = None


class DomSnapshot(BaseModel):
    """
    Everything read from the page in a single script evaluation.

    Lives only for the duration of one page evaluation and is never persisted.
    """
    body_text: str = ""
    headings: List[dict] = Field(default_factory=list)
    forms: List[dict] = Field(default_factory=list)
    links: List[dict] = Field(default_factory=list)
    media: List[dict] = Field(default_factory=list)
    text_elements: List[TextElement] = Field(default_factory=list)
    has_help_control: bool = False
    has_sitemap_link: bool = False
    has_search: bool = False
    has_password_input: bool = False
    has_captcha_element: bool = False
    form_count: int = 0


class ScreenshotCapture(BaseModel):
    """Outcome of a screenshot attempt; exactly one of data_url/error is set."""
    data_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data_url is not None
