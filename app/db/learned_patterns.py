"""Database access layer for deployed extraction patterns.

Rows are never deleted; rollback and supersede only flip ``is_active``.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "learned_patterns"


def insert_pattern(
    field_name: str,
    pattern: str,
    description: str,
    priority: int,
    source_correction_ids: list[UUID],
    source: str = "ai_generated",
    created_by: UUID | None = None,
    supersedes_id: UUID | None = None,
) -> dict[str, Any]:
    """Insert a new active pattern row."""
    supabase = get_supabase()
    data = {
        "field_name": field_name,
        "pattern": pattern,
        "description": description,
        "priority": priority,
        "source_correction_ids": [str(cid) for cid in source_correction_ids],
        "source": source,
        "created_by": str(created_by) if created_by else None,
        "supersedes_id": str(supersedes_id) if supersedes_id else None,
        "is_active": True,
    }
    response = supabase.table(TABLE).insert(data).execute()
    if not response.data:
        raise ValueError(f"Failed to insert pattern for {field_name}")
    logger.info(f"Inserted pattern for {field_name} at priority {priority}")
    return response.data[0]


def list_patterns(field_name: str | None = None, active_only: bool = False) -> list[dict[str, Any]]:
    """List patterns in match order: priority ascending, then oldest first."""
    supabase = get_supabase()
    query = supabase.table(TABLE).select("*")
    if field_name:
        query = query.eq("field_name", field_name)
    if active_only:
        query = query.eq("is_active", True)
    response = (
        query.order("priority", desc=False)
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def get_pattern(pattern_id: UUID) -> dict[str, Any] | None:
    supabase = get_supabase()
    response = supabase.table(TABLE).select("*").eq("id", str(pattern_id)).execute()
    return response.data[0] if response.data else None


def set_pattern_active(pattern_id: UUID, is_active: bool) -> dict[str, Any]:
    """Flip the activation flag of one pattern."""
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .update({"is_active": is_active})
        .eq("id", str(pattern_id))
        .execute()
    )
    if not response.data:
        raise ValueError(f"Failed to update pattern {pattern_id}")
    return response.data[0]


def get_last_deploy_at(field_name: str) -> datetime | None:
    """Creation time of the newest deployed pattern for a field, active or not."""
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .select("created_at")
        .eq("field_name", field_name)
        .neq("source", "original")
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    if not response.data:
        return None
    return datetime.fromisoformat(response.data[0]["created_at"])


def increment_usage(pattern_id: UUID, succeeded: bool) -> None:
    """Bump times_used / times_succeeded for a pattern.

    Prefers the ``increment_pattern_stats`` RPC (atomic); falls back to a
    read-modify-write if the function is not installed.
    """
    supabase = get_supabase()
    try:
        supabase.rpc(
            "increment_pattern_stats",
            {"pattern_id": str(pattern_id), "did_succeed": succeeded},
        ).execute()
        return
    except Exception as e:
        logger.debug(f"increment_pattern_stats RPC unavailable, updating directly: {e}")

    row = get_pattern(pattern_id)
    if not row:
        return
    update = {"times_used": (row.get("times_used") or 0) + 1}
    if succeeded:
        update["times_succeeded"] = (row.get("times_succeeded") or 0) + 1
    supabase.table(TABLE).update(update).eq("id", str(pattern_id)).execute()
