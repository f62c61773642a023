"""Database access layer for extraction attempt logs."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "extraction_logs"


def insert_extraction_logs(rows: list[dict[str, Any]]) -> int:
    """
    Insert one row per extraction attempt.

    Args:
        rows: Dicts with document_id, field_name, extracted_value, rule_id,
            pattern_used, extraction_success and context columns

    Returns:
        Number of rows inserted
    """
    if not rows:
        return 0
    supabase = get_supabase()
    response = supabase.table(TABLE).insert(rows).execute()
    return len(response.data or [])


def list_failed_extractions(field_name: str, limit: int = 50) -> list[dict[str, Any]]:
    """Most recent failed attempts for a field."""
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("field_name", field_name)
        .eq("extraction_success", False)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return response.data or []


def list_document_logs(document_id: UUID) -> list[dict[str, Any]]:
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("document_id", str(document_id))
        .order("created_at", desc=True)
        .execute()
    )
    return response.data or []
