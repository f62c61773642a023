"""Compiling and applying extraction rules, and comparing extracted values.

The validation harness and the extraction matcher both go through
``apply_pattern`` so a rule's pass rate describes exactly what the matcher
will return for the same text.

Normalization used for "correct match" (fixed; it determines pass rates):
1. Unicode NFKC
2. casefold
3. delete every Unicode punctuation character (categories Pc Pd Ps Pe Pi Pf Po)
4. collapse whitespace runs to a single space, strip
So "ACME, Inc." == "acme inc" and "Jan. 5, 2021" == "jan 5 2021", but
"12/345,678" == "12345678" too.
"""

import re
import unicodedata
from functools import lru_cache

from app.core.errors import ValidationError
from app.core.schemas_patterns import MetadataField

BASE_FLAGS = re.IGNORECASE

# JS-style /body/flags literal, as models often answer
_SLASH_LITERAL = re.compile(r"^/(?P<body>.+)/(?P<flags>[a-z]*)$", re.DOTALL)
_JS_FLAGS = {"s": re.DOTALL, "m": re.MULTILINE, "i": re.IGNORECASE}

MAX_ASSIGNEE_LENGTH = 100
MAX_CLASSIFICATION_LENGTH = 200


def _to_python_syntax(pattern: str) -> tuple[str, int]:
    """Translate JS regex spellings to Python ``re``."""
    flags = BASE_FLAGS
    literal = _SLASH_LITERAL.match(pattern.strip())
    if literal:
        pattern = literal.group("body")
        for flag in literal.group("flags"):
            flags |= _JS_FLAGS.get(flag, 0)
    # (?<name>...) -> (?P<name>...), leaving lookbehinds alone
    pattern = re.sub(r"\(\?<([A-Za-z_]\w*)>", r"(?P<\1>", pattern)
    pattern = re.sub(r"\\k<([A-Za-z_]\w*)>", r"(?P=\1)", pattern)
    return pattern, flags


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile rule text into a regex.

    Raises:
        ValidationError: If the pattern is empty or does not compile
    """
    if not pattern or not pattern.strip():
        raise ValidationError("Pattern must not be empty", field="pattern")
    source, flags = _to_python_syntax(pattern)
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise ValidationError(f"Pattern does not compile: {e}", field="pattern") from e


def _strip_country_code(value: str) -> str:
    return re.sub(r"\s*,?\s*\([A-Z]{2}\)\s*$", "", value).strip()


def clean_extracted_value(field_name: MetadataField, value: str | None) -> str | None:
    """Apply per-field cleanup to a raw capture. Returns None if nothing usable remains."""
    if value is None:
        return None
    value = value.strip()

    if field_name == MetadataField.INVENTORS:
        value = _strip_country_code(value)
    elif field_name == MetadataField.ASSIGNEE:
        value = _strip_country_code(value)
        value = re.sub(r"\s*,\s*[A-Z]{2}\s*$", "", value).strip()
        value = re.sub(r"\s*,\s*c/o.+$", "", value, flags=re.IGNORECASE).strip()
        value = value.replace("*", "").strip()
        if len(value) < 2 or len(value) > MAX_ASSIGNEE_LENGTH or value.isdigit():
            return None
    elif field_name == MetadataField.PATENT_NUMBER:
        value = re.sub(r"\s+", " ", value)
    elif field_name == MetadataField.PATENT_CLASSIFICATION:
        value = value[:MAX_CLASSIFICATION_LENGTH].strip()

    return value or None


def apply_pattern(
    field_name: MetadataField, compiled: re.Pattern, text: str
) -> str | None:
    """
    Run a compiled rule over text.

    Capture group 1 is the value when the rule has groups; otherwise the
    whole match is. The capture then goes through field cleanup.
    """
    if not text:
        return None
    match = compiled.search(text)
    if not match:
        return None
    raw = match.group(1) if compiled.groups >= 1 else match.group(0)
    return clean_extracted_value(field_name, raw)


def normalize_value(value: str) -> str:
    """Normalize a value for pass/fail comparison (see module docstring)."""
    value = unicodedata.normalize("NFKC", value).casefold()
    value = "".join(ch for ch in value if not unicodedata.category(ch).startswith("P"))
    return " ".join(value.split())


def values_match(extracted: str | None, expected: str) -> bool:
    if extracted is None:
        return False
    return normalize_value(extracted) == normalize_value(expected)
