"""Extraction matcher: first matching rule in a field's priority chain wins.

The chain is every active deployed rule for the field plus the built-in
baselines (priority 100+), ordered by priority and then creation time. A rule
that no longer compiles is skipped with a warning; one bad rule must never
stop the rest of the document from being extracted.

Read-only: safe to call concurrently for every field of a document.
"""

import heapq

from app.core.baseline_patterns import get_baseline_patterns
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.core.pattern_registry import PatternRegistry, get_pattern_registry
from app.core.pattern_rules import apply_pattern, compile_pattern
from app.core.schemas_patterns import (
    DeployedPattern,
    MatchResult,
    MetadataField,
    parse_field_name,
)

logger = get_logger(__name__)


def _chain_key(pattern: DeployedPattern) -> tuple:
    return (pattern.priority, pattern.created_at, str(pattern.id))


def priority_chain(
    field_name: str | MetadataField, registry: PatternRegistry | None = None
) -> list[DeployedPattern]:
    """Active deployed rules merged with baselines, in the order they are tried."""
    field = parse_field_name(field_name)
    registry = registry or get_pattern_registry()
    deployed = registry.active_chain(field)
    return list(heapq.merge(deployed, get_baseline_patterns(field), key=_chain_key))


def extract(
    field_name: str | MetadataField,
    document_text: str,
    registry: PatternRegistry | None = None,
) -> MatchResult | None:
    """
    Extract one field from document text.

    Returns:
        MatchResult from the first rule that yields a usable value, or None
        when nothing in the chain matches (the caller treats that as a
        missing field and routes it to human correction)

    Raises:
        ValidationError: Only for an unknown field name
    """
    field = parse_field_name(field_name)
    if not document_text:
        return None

    for rule in priority_chain(field, registry):
        try:
            compiled = compile_pattern(rule.pattern)
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed stored pattern: {e}",
                extra={"field_name": field.value, "pattern_id": str(rule.id)},
            )
            continue

        try:
            value = apply_pattern(field, compiled, document_text)
        except Exception as e:
            logger.warning(
                f"Pattern failed at match time: {e}",
                extra={"field_name": field.value, "pattern_id": str(rule.id)},
            )
            continue

        if value:
            return MatchResult(
                value=value, rule_id=rule.id, priority=rule.priority, source=rule.source
            )

    return None
