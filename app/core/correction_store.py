"""Correction store: append-only log of human metadata corrections.

A correction is never edited; a second edit of the same field on the same
document appends a new row. The newest row per (document, field) is the
authoritative value for that document, while every row stays in the field's
validation corpus.
"""

from uuid import UUID

from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.core.schemas_patterns import Correction, MetadataField, parse_field_name
from app.db.metadata_corrections import (
    insert_correction,
    list_corrections_for_document,
    list_corrections_for_field,
)

logger = get_logger(__name__)


def record_correction(
    document_id: UUID,
    field_name: str | MetadataField,
    corrected_value: str,
    source_text: str,
    original_value: str | None = None,
    corrected_by: UUID | None = None,
) -> Correction:
    """
    Record a human correction.

    Input is checked before anything is written.

    Raises:
        ValidationError: Unknown field name, or empty/whitespace value
    """
    field = parse_field_name(field_name)
    if corrected_value is None or not corrected_value.strip():
        raise ValidationError("corrected_value must not be empty", field="corrected_value")

    row = insert_correction(
        document_id=document_id,
        field_name=field.value,
        corrected_value=corrected_value.strip(),
        source_text=source_text or "",
        original_value=original_value,
        corrected_by=corrected_by,
    )
    correction = Correction.model_validate(row)

    logger.info(
        f"Recorded correction for {field.value}: {correction.corrected_value!r}",
        extra={"field_name": field.value, "document_id": str(document_id)},
    )
    return correction


def list_corrections(field_name: str | MetadataField) -> list[Correction]:
    """Full corpus for a field, oldest first."""
    field = parse_field_name(field_name)
    return [Correction.model_validate(row) for row in list_corrections_for_field(field.value)]


def latest_corrections_for_document(document_id: UUID) -> dict[MetadataField, Correction]:
    """Authoritative (newest) correction per field for one document."""
    latest: dict[MetadataField, Correction] = {}
    for row in list_corrections_for_document(document_id):
        correction = Correction.model_validate(row)
        current = latest.get(correction.field_name)
        if current is None or correction.created_at > current.created_at:
            latest[correction.field_name] = correction
    return latest
