"""Document extraction pass used by the ingestion pipeline.

Runs the matcher for every field, then records what happened: one
extraction-log row per field and usage counters for every deployed rule tried.
Bookkeeping failures are logged and never fail the pass.
"""

import logging
from uuid import UUID

from app.core.extraction_context import FIELD_KEYWORDS, extract_context
from app.core.extraction_matcher import extract, priority_chain
from app.core.logging import get_logger, log_with_context
from app.core.pattern_registry import PatternRegistry, get_pattern_registry
from app.core.schemas_patterns import DeployedPattern, MatchResult, MetadataField
from app.db.extraction_logs import insert_extraction_logs
from app.db.learned_patterns import increment_usage

logger = get_logger(__name__)


def _log_row(
    document_id: UUID,
    field: MetadataField,
    text: str,
    result: MatchResult | None,
    rule: DeployedPattern | None,
) -> dict:
    context = extract_context(text, FIELD_KEYWORDS[field])
    return {
        "document_id": str(document_id),
        "field_name": field.value,
        "extracted_value": result.value if result else None,
        "rule_id": str(result.rule_id) if result else None,
        "pattern_used": rule.pattern if rule else None,
        "extraction_success": result is not None,
        "context_before": context.before if context else None,
        "context_after": context.after if context else None,
        "full_context": context.full if context else None,
    }


def _track_usage(field: MetadataField, chain: list[DeployedPattern], result: MatchResult | None) -> None:
    """Deployed rules tried before the winner count as failed uses; the winner as a success.

    Rules after the winner were never tried, even when the winner is a baseline.
    """
    for rule in chain:
        won = result is not None and rule.id == result.rule_id
        if rule.source != "original":
            try:
                increment_usage(rule.id, succeeded=won)
            except Exception as e:
                logger.warning(
                    f"Failed to track pattern usage: {e}",
                    extra={"field_name": field.value, "pattern_id": str(rule.id)},
                )
        if won:
            return


def extract_document_metadata(
    document_id: UUID,
    document_text: str,
    registry: PatternRegistry | None = None,
) -> dict[MetadataField, MatchResult | None]:
    """
    Extract every field of one document.

    Returns:
        Field -> MatchResult, or None for fields nothing matched
    """
    registry = registry or get_pattern_registry()
    results: dict[MetadataField, MatchResult | None] = {}
    log_rows: list[dict] = []

    for field in MetadataField:
        chain = priority_chain(field, registry)
        result = extract(field, document_text, registry=registry)
        results[field] = result

        rule = next((p for p in chain if result and p.id == result.rule_id), None)
        log_rows.append(_log_row(document_id, field, document_text, result, rule))
        _track_usage(field, chain, result)

    try:
        insert_extraction_logs(log_rows)
    except Exception as e:
        logger.warning(f"Failed to write extraction logs: {e}", extra={"document_id": str(document_id)})

    missing = [f.value for f, r in results.items() if r is None]
    log_with_context(
        logger,
        logging.INFO,
        f"Extracted {len(results) - len(missing)}/{len(results)} fields",
        document_id=str(document_id),
        missing=",".join(missing) or "none",
    )
    return results
