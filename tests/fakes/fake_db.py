"""Fake in-memory database layer for pattern learning tests.

Mirrors the function signatures of app.db.metadata_corrections,
app.db.learned_patterns and app.db.extraction_logs. Timestamps come from one
shared clock that advances a second per write, so ordering is deterministic.
"""

import threading
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, List
from uuid import UUID, uuid4

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)


class FakeDB:
    """In-memory store for corrections, patterns and extraction logs."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        """Reset all stores to initial state."""
        self.corrections: List[Dict[str, Any]] = []
        self.patterns: List[Dict[str, Any]] = []
        self.extraction_logs: List[Dict[str, Any]] = []
        self.usage_calls: List[tuple[str, bool]] = []
        self.fail_set_active_for: set[str] = set()
        self.fail_insert_pattern = False
        self._tick = 0

    def _now(self) -> str:
        self._tick += 1
        return (BASE_TIME + timedelta(seconds=self._tick)).isoformat()

    # Corrections
    def insert_correction(
        self,
        document_id: UUID,
        field_name: str,
        corrected_value: str,
        source_text: str,
        original_value: str | None = None,
        corrected_by: UUID | None = None,
    ) -> Dict[str, Any]:
        with self._lock:
            row = {
                "id": str(uuid4()),
                "document_id": str(document_id),
                "field_name": field_name,
                "corrected_value": corrected_value,
                "source_text": source_text,
                "original_value": original_value,
                "corrected_by": str(corrected_by) if corrected_by else None,
                "created_at": self._now(),
            }
            self.corrections.append(row)
            return dict(row)

    def list_corrections_for_field(self, field_name: str) -> List[Dict[str, Any]]:
        rows = [dict(c) for c in self.corrections if c["field_name"] == field_name]
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]))

    def list_corrections_for_document(self, document_id: UUID) -> List[Dict[str, Any]]:
        rows = [dict(c) for c in self.corrections if c["document_id"] == str(document_id)]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    def count_corrections_since(self, field_name: str, since: datetime | None) -> int:
        with self._lock:
            rows = list(self.corrections)
        return sum(
            1
            for c in rows
            if c["field_name"] == field_name
            and (since is None or datetime.fromisoformat(c["created_at"]) > since)
        )

    # Patterns
    def insert_pattern(
        self,
        field_name: str,
        pattern: str,
        description: str,
        priority: int,
        source_correction_ids: list[UUID],
        source: str = "ai_generated",
        created_by: UUID | None = None,
        supersedes_id: UUID | None = None,
    ) -> Dict[str, Any]:
        if self.fail_insert_pattern:
            raise ConnectionError("insert failed")
        with self._lock:
            row = {
                "id": str(uuid4()),
                "field_name": field_name,
                "pattern": pattern,
                "description": description,
                "priority": priority,
                "source_correction_ids": [str(c) for c in source_correction_ids],
                "source": source,
                "created_by": str(created_by) if created_by else None,
                "supersedes_id": str(supersedes_id) if supersedes_id else None,
                "is_active": True,
                "times_used": 0,
                "times_succeeded": 0,
                "created_at": self._now(),
            }
            self.patterns.append(row)
            return dict(row)

    def list_patterns(self, field_name: str | None = None, active_only: bool = False) -> List[Dict[str, Any]]:
        rows = [
            dict(p)
            for p in self.patterns
            if (field_name is None or p["field_name"] == field_name)
            and (not active_only or p["is_active"])
        ]
        return sorted(rows, key=lambda r: (r["priority"], r["created_at"]))

    def get_pattern(self, pattern_id: UUID) -> Dict[str, Any] | None:
        for p in self.patterns:
            if p["id"] == str(pattern_id):
                return dict(p)
        return None

    def set_pattern_active(self, pattern_id: UUID, is_active: bool) -> Dict[str, Any]:
        if str(pattern_id) in self.fail_set_active_for:
            raise ConnectionError(f"update of {pattern_id} failed")
        with self._lock:
            for p in self.patterns:
                if p["id"] == str(pattern_id):
                    p["is_active"] = is_active
                    return dict(p)
        raise ValueError(f"Failed to update pattern {pattern_id}")

    def get_last_deploy_at(self, field_name: str) -> datetime | None:
        stamps = [
            p["created_at"]
            for p in self.patterns
            if p["field_name"] == field_name and p["source"] != "original"
        ]
        return datetime.fromisoformat(max(stamps)) if stamps else None

    def increment_usage(self, pattern_id: UUID, succeeded: bool) -> None:
        self.usage_calls.append((str(pattern_id), succeeded))
        for p in self.patterns:
            if p["id"] == str(pattern_id):
                p["times_used"] += 1
                if succeeded:
                    p["times_succeeded"] += 1

    # Extraction logs
    def insert_extraction_logs(self, rows: List[Dict[str, Any]]) -> int:
        self.extraction_logs.extend(rows)
        return len(rows)

    def list_failed_extractions(self, field_name: str, limit: int = 50) -> List[Dict[str, Any]]:
        rows = [
            r for r in self.extraction_logs
            if r["field_name"] == field_name and not r["extraction_success"]
        ]
        return rows[:limit]

    def list_document_logs(self, document_id: UUID) -> List[Dict[str, Any]]:
        return [r for r in self.extraction_logs if r["document_id"] == str(document_id)]


# Import sites patched by the fake_db fixture: (module path, function name)
PATCH_TARGETS = [
    ("app.core.correction_store", "insert_correction"),
    ("app.core.correction_store", "list_corrections_for_field"),
    ("app.core.correction_store", "list_corrections_for_document"),
    ("app.core.opportunity_tracker", "get_last_deploy_at"),
    ("app.core.opportunity_tracker", "count_corrections_since"),
    ("app.core.pattern_registry", "insert_pattern"),
    ("app.core.pattern_registry", "list_patterns"),
    ("app.core.pattern_registry", "get_pattern"),
    ("app.core.pattern_registry", "set_pattern_active"),
    ("app.core.metadata_extraction", "insert_extraction_logs"),
    ("app.core.metadata_extraction", "increment_usage"),
    ("app.api.extraction", "list_failed_extractions"),
    ("app.api.extraction", "list_document_logs"),
]
