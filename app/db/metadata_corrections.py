"""Database access layer for human metadata corrections (append-only)."""

from datetime import datetime
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "metadata_corrections"


def insert_correction(
    document_id: UUID,
    field_name: str,
    corrected_value: str,
    source_text: str,
    original_value: str | None = None,
    corrected_by: UUID | None = None,
) -> dict[str, Any]:
    """
    Append one correction row. Rows are never updated afterwards.

    Returns:
        Inserted row (with id and created_at assigned by the database)

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()
    data = {
        "document_id": str(document_id),
        "field_name": field_name,
        "corrected_value": corrected_value,
        "source_text": source_text,
        "original_value": original_value,
        "corrected_by": str(corrected_by) if corrected_by else None,
    }
    response = supabase.table(TABLE).insert(data).execute()
    if not response.data:
        raise ValueError(f"Failed to record correction for {field_name}")
    return response.data[0]


def list_corrections_for_field(field_name: str) -> list[dict[str, Any]]:
    """Full historical corpus for a field, oldest first."""
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("field_name", field_name)
        .order("created_at", desc=False)
        .order("id", desc=False)
        .execute()
    )
    return response.data or []


def list_corrections_for_document(document_id: UUID) -> list[dict[str, Any]]:
    """All corrections for one document, newest first."""
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("document_id", str(document_id))
        .order("created_at", desc=True)
        .execute()
    )
    return response.data or []


def count_corrections_since(field_name: str, since: datetime | None) -> int:
    """Count corrections for a field created strictly after ``since`` (all if None)."""
    supabase = get_supabase()
    query = supabase.table(TABLE).select("id", count="exact").eq("field_name", field_name)
    if since is not None:
        query = query.gt("created_at", since.isoformat())
    response = query.execute()
    return response.count or 0
