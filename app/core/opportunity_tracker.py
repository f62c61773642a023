"""Opportunity tracker: which fields have enough unspent corrections to learn from.

A correction is "spent" once a pattern for its field is deployed after it was
recorded. The count for a field is therefore the number of corrections
created after the field's newest deploy (active or rolled back; a rollback
does not return corrections to the pool). Counts are read straight from the
database on every call, so interleaved writes never leave a stale total.
"""

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_patterns import FieldOpportunity, MetadataField, parse_field_name
from app.db.learned_patterns import get_last_deploy_at
from app.db.metadata_corrections import count_corrections_since

logger = get_logger(__name__)


def get_opportunity(field_name: str | MetadataField) -> FieldOpportunity:
    """Opportunity for a single field."""
    field = parse_field_name(field_name)
    threshold = get_settings().PATTERN_READY_THRESHOLD

    since = get_last_deploy_at(field.value)
    count = count_corrections_since(field.value, since)

    return FieldOpportunity(field_name=field, count=count, ready=count >= threshold)


def get_opportunities() -> list[FieldOpportunity]:
    """One opportunity per recognized field, zero counts included."""
    opportunities = [get_opportunity(field) for field in MetadataField]
    ready = [o.field_name.value for o in opportunities if o.ready]
    if ready:
        logger.debug(f"Fields ready for pattern synthesis: {', '.join(ready)}")
    return opportunities
