"""Shared limits and tags for the heuristics feature."""

HEURISTICS_ENGINE = "ai-heuristics"
MODEL_ENGINE = "ai-model"

IMPACTS = ("critical", "serious", "moderate", "minor")
DEFAULT_IMPACT = "moderate"
DEFAULT_CONFIDENCE = 0.5

# PageContext bounds (protect warehouse rows and the model prompt size)
PAGE_TEXT_LIMIT = 8000
MAX_HEADINGS = 40
MAX_FORMS = 10
MAX_FORM_INPUTS = 20
MAX_LINKS = 50
MAX_MEDIA = 10
HEADING_TEXT_LIMIT = 200
LABEL_LIMIT = 120
LINK_TEXT_LIMIT = 120
URL_LIMIT = 200
HTML_SNIPPET_LIMIT = 300

# Snapshot bounds for the check inputs
BODY_TEXT_LIMIT = 200_000
ELEMENT_TEXT_LIMIT = 2000
MAX_TEXT_ELEMENTS = 1500

LOCATOR_MAX_DEPTH = 4
EVIDENCE_TEXT_LIMIT = 240
EVIDENCE_ITEM_LIMIT = 512
MAX_FINDINGS_PER_RULE = 10

READING_LEVEL_MIN_WORDS = 120
READING_LEVEL_MAX_GRADE = 12

# Success criteria the model is allowed to report on
MODEL_SC_WHITELIST = (
    "1.2.1-1.2.9, 1.3.3, 1.4.7, 1.4.8, 2.4.5, 2.4.8, 3.1.3, 3.1.4, 3.1.5, 3.1.6, "
    "3.2.5, 3.3.4, 3.3.5, 3.3.6, 3.3.7, 3.3.8, 3.3.9"
)
