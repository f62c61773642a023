"""Context windows around keywords and values in full document text.

Used to keep synthesis prompts small (a window around each corrected value
instead of the whole PDF text) and to populate extraction log rows.
"""

import re
from dataclasses import dataclass

from app.core.schemas_patterns import MetadataField

# Label searched for when logging an extraction attempt for each field
FIELD_KEYWORDS: dict[MetadataField, str] = {
    MetadataField.ASSIGNEE: "Assignee",
    MetadataField.INVENTORS: "Inventor",
    MetadataField.FILING_DATE: "Filed:",
    MetadataField.ISSUE_DATE: "Date of Patent",
    MetadataField.PATENT_NUMBER: "Patent No",
    MetadataField.APPLICATION_NUMBER: "Appl",
    MetadataField.PATENT_CLASSIFICATION: "CPC",
}


@dataclass(frozen=True)
class TextContext:
    before: str
    after: str
    full: str
    start: int
    end: int


def _window(
    text: str, start: int, end: int, before: int, after: int, full: int
) -> TextContext:
    return TextContext(
        before=text[max(0, start - before):start].strip(),
        after=text[end:min(len(text), end + after)].strip(),
        full=text[max(0, start - full):min(len(text), end + full)].strip(),
        start=start,
        end=end,
    )


def extract_context(
    full_text: str,
    search_term: str,
    window_before: int = 200,
    window_after: int = 200,
    full_window: int = 500,
) -> TextContext | None:
    """
    Find a keyword (case-insensitive, literal) and cut windows around it.

    Args:
        full_text: Complete document text
        search_term: Keyword to find (e.g. "Assignee")
        window_before: Chars kept before the match
        window_after: Chars kept after the match
        full_window: Chars kept on each side for the full context

    Returns:
        TextContext, or None if the keyword is absent
    """
    if not full_text or not search_term:
        return None

    match = re.search(re.escape(search_term), full_text, re.IGNORECASE)
    if not match:
        return None

    return _window(
        full_text, match.start(), match.end(), window_before, window_after, full_window
    )


def find_value_context(
    full_text: str, value: str, window: int = 500
) -> TextContext | None:
    """Locate a corrected value in the text; exact match first, then case-insensitive."""
    if not full_text or not value:
        return None

    index = full_text.find(value)
    if index == -1:
        index = full_text.lower().find(value.lower())
    if index == -1:
        return None

    return _window(full_text, index, index + len(value), 200, 200, window)


def trim_source_text(source_text: str, corrected_value: str, window: int) -> str:
    """Cut the source text down to a window around the corrected value.

    Falls back to the leading ``2 * window`` chars when the value does not
    appear verbatim (e.g. the human normalized the formatting).
    """
    if len(source_text) <= 2 * window:
        return source_text
    ctx = find_value_context(source_text, corrected_value, window=window)
    if ctx is None:
        return source_text[: 2 * window]
    return ctx.full
