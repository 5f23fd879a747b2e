"""
Text Normalizer

Turns an email body (plain text or HTML) into one flat string
suitable for chunking. Best effort: never raises.
"""

import re

import structlog

log = structlog.get_logger()

NO_TEXT_PLACEHOLDER = "(No text content)"
EXTRACTION_ERROR_PLACEHOLDER = "(Error extracting text content)"

HTML_ENTITIES = {
    "nbsp": " ",
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "#39": "'",
}

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_BREAK_RE = re.compile(r"<(?:br|/p|p)\b[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_ENTITY_RE = re.compile(r"&(#?\w+);")


def decode_html_entities(text: str) -> str:
    """Decode the fixed entity table; unknown entities stay verbatim."""
    return _ENTITY_RE.sub(lambda m: HTML_ENTITIES.get(m.group(1), m.group(0)), text)


def extract_text_from_html(html: str) -> str:
    """
    Flatten HTML to text.

    Drops script/style blocks, turns <br>, <p>, </p> into newlines,
    strips the remaining tags, collapses whitespace and decodes entities.
    Returns EXTRACTION_ERROR_PLACEHOLDER on any failure.
    """
    try:
        text = _SCRIPT_RE.sub("", html)
        text = _STYLE_RE.sub("", text)
        text = _BREAK_RE.sub("\n", text)
        text = _TAG_RE.sub("", text)
        text = _WHITESPACE_RE.sub(" ", text).strip()
        return decode_html_entities(text)
    except Exception as e:
        # Malformed bodies must never abort delivery
        log.warning("html_extraction_failed", error=str(e), error_type=type(e).__name__)
        return EXTRACTION_ERROR_PLACEHOLDER


class TextNormalizer:
    """Picks the plain-text body when present, otherwise flattens HTML."""

    def normalize(self, text: str | None, html: str | None) -> str:
        """
        Flat text for an email body.

        Plain text is returned unchanged. When neither body yields any
        text, NO_TEXT_PLACEHOLDER is returned.
        """
        if text:
            return text
        if html:
            flattened = extract_text_from_html(html)
            if flattened:
                return flattened
        return NO_TEXT_PLACEHOLDER
