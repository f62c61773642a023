"""Pattern registry: deployed, versioned, priority-ordered rules per field.

Storage is append-only. A deploy inserts a new active row (and, when it
supersedes an existing rule, deactivates that one); a rollback deactivates
the newest active rule and reactivates whatever it superseded. Nothing is
ever deleted, so the history doubles as an audit trail.

Writes (deploy, rollback, toggle) are serialized per field. Reads go through
an immutable per-field snapshot that writers replace in one assignment, so
the matcher never waits on a deploy and never sees a half-applied one.
"""

import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from uuid import UUID

from app.core.baseline_patterns import BASELINE_PRIORITY
from app.core.config import get_settings
from app.core.errors import PatternNotFoundError, RegistryError, ValidationError
from app.core.logging import get_logger
from app.core.pattern_rules import compile_pattern
from app.core.schemas_patterns import (
    DEPLOY_SOURCES,
    DeploySource,
    DeployedPattern,
    MetadataField,
    parse_field_name,
)
from app.db.learned_patterns import (
    get_pattern,
    insert_pattern,
    list_patterns,
    set_pattern_active,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    patterns: tuple[DeployedPattern, ...]
    loaded_at: float


def _match_order(pattern: DeployedPattern) -> tuple:
    return (pattern.priority, pattern.created_at, str(pattern.id))


class PatternRegistry:
    """Per-field rule chains with serialized writes and lock-free reads."""

    def __init__(self, ttl_seconds: float | None = None, clock=time.monotonic):
        """
        Args:
            ttl_seconds: Age after which a snapshot is reloaded, so deploys made
                by other processes become visible. None never expires.
            clock: Monotonic time source (injectable for tests)
        """
        self._ttl = ttl_seconds
        self._clock = clock
        self._locks: dict[MetadataField, threading.Lock] = {
            field: threading.Lock() for field in MetadataField
        }
        self._snapshots: dict[MetadataField, _Snapshot] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def active_chain(self, field_name: str | MetadataField) -> tuple[DeployedPattern, ...]:
        """Active deployed rules for a field, in match order. Never blocks on writers."""
        field = parse_field_name(field_name)
        snapshot = self._snapshots.get(field)
        if snapshot is not None and not self._expired(snapshot):
            return snapshot.patterns

        lock = self._locks[field]
        if not lock.acquire(blocking=False):
            # A writer is mid-deploy and will publish a fresh snapshot
            if snapshot is not None:
                return snapshot.patterns
            return self._load_or_fallback(field, None)

        try:
            patterns = self._load_or_fallback(field, snapshot)
            self._snapshots[field] = _Snapshot(patterns, self._clock())
            return patterns
        finally:
            lock.release()

    def list_patterns(
        self, field_name: str | MetadataField | None = None, include_inactive: bool = True
    ) -> list[DeployedPattern]:
        """Registry history (or active rules only), in match order."""
        field = parse_field_name(field_name) if field_name is not None else None
        rows = list_patterns(field.value if field else None, active_only=not include_inactive)
        return sorted(
            (DeployedPattern.model_validate(row) for row in rows),
            key=lambda p: (p.field_name.value, *_match_order(p)),
        )

    def invalidate(self, field_name: str | MetadataField | None = None) -> None:
        """Drop cached snapshots (one field, or all)."""
        if field_name is None:
            self._snapshots.clear()
        else:
            self._snapshots.pop(parse_field_name(field_name), None)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def deploy(
        self,
        field_name: str | MetadataField,
        pattern: str,
        description: str,
        priority: int,
        source_correction_ids: list[UUID],
        source: DeploySource = "ai_generated",
        created_by: UUID | None = None,
        supersedes_id: UUID | None = None,
    ) -> DeployedPattern:
        """
        Deploy a rule (possibly hand-edited from a candidate).

        Overlapping rules stay active unless ``supersedes_id`` names one;
        priority decides between them at match time.

        Raises:
            ValidationError: Unknown field, reserved source, non-compiling pattern,
                priority < 1, or a supersedes_id that is not an active rule of this field
            RegistryError: The write could not be applied consistently
        """
        field = parse_field_name(field_name)
        if source not in DEPLOY_SOURCES:
            raise ValidationError(
                f"source must be one of {', '.join(DEPLOY_SOURCES)}", field="source"
            )
        compile_pattern(pattern)
        if priority < 1:
            raise ValidationError("priority must be >= 1", field="priority")
        if priority >= BASELINE_PRIORITY:
            logger.warning(
                f"Deploying at priority {priority}, inside the baseline band",
                extra={"field_name": field.value},
            )

        with self._locks[field]:
            if supersedes_id is not None:
                self._check_supersede_target(field, supersedes_id)

            try:
                row = insert_pattern(
                    field_name=field.value,
                    pattern=pattern,
                    description=description,
                    priority=priority,
                    source_correction_ids=source_correction_ids,
                    source=source,
                    created_by=created_by,
                    supersedes_id=supersedes_id,
                )
            except Exception as e:
                logger.error(f"Pattern insert failed: {e}", extra={"field_name": field.value})
                raise RegistryError(f"Failed to deploy pattern for {field.value}") from e

            deployed = DeployedPattern.model_validate(row)

            if supersedes_id is not None:
                try:
                    set_pattern_active(supersedes_id, False)
                except Exception as e:
                    logger.error(
                        f"Could not deactivate superseded pattern {supersedes_id}: {e}",
                        extra={"field_name": field.value, "pattern_id": str(deployed.id)},
                    )
                    self._undo_activation(deployed.id, field)
                    raise RegistryError(
                        f"Deploy for {field.value} aborted: superseded rule could not be deactivated"
                    ) from e

            self._publish(field)

        logger.info(
            f"Deployed pattern at priority {priority} ({source})",
            extra={"field_name": field.value, "pattern_id": str(deployed.id)},
        )
        return deployed

    def rollback(self, field_name: str | MetadataField) -> DeployedPattern | None:
        """
        Undo the most recent deploy for a field.

        Deactivates the newest active rule; if it superseded another rule,
        that rule is reactivated and returned. Returns None when there was
        nothing to reactivate (including when no rule was active).

        Raises:
            RegistryError: The toggle could not be applied consistently
        """
        field = parse_field_name(field_name)

        with self._locks[field]:
            active = [
                DeployedPattern.model_validate(row)
                for row in list_patterns(field.value, active_only=True)
            ]
            if not active:
                logger.info("Nothing to roll back", extra={"field_name": field.value})
                return None

            latest = max(active, key=lambda p: (p.created_at, str(p.id)))
            try:
                set_pattern_active(latest.id, False)
            except Exception as e:
                raise RegistryError(f"Failed to deactivate pattern {latest.id}") from e

            reactivated: DeployedPattern | None = None
            if latest.supersedes_id is not None:
                prior = get_pattern(latest.supersedes_id)
                if prior and not prior.get("is_active"):
                    try:
                        reactivated = DeployedPattern.model_validate(
                            set_pattern_active(latest.supersedes_id, True)
                        )
                    except Exception as e:
                        logger.error(
                            f"Could not reactivate {latest.supersedes_id}: {e}",
                            extra={"field_name": field.value, "pattern_id": str(latest.id)},
                        )
                        self._restore_activation(latest.id, field)
                        raise RegistryError(
                            f"Rollback for {field.value} aborted: prior rule could not be reactivated"
                        ) from e

            self._publish(field)

        logger.info(
            f"Rolled back pattern {latest.id}"
            + (f", reactivated {reactivated.id}" if reactivated else ""),
            extra={"field_name": field.value, "pattern_id": str(latest.id)},
        )
        return reactivated

    def set_active(self, pattern_id: UUID, is_active: bool) -> DeployedPattern:
        """
        Toggle one rule on or off.

        Raises:
            PatternNotFoundError: No stored pattern with that id
        """
        row = get_pattern(pattern_id)
        if not row:
            raise PatternNotFoundError(f"Pattern {pattern_id} not found")
        field = parse_field_name(row["field_name"])

        with self._locks[field]:
            try:
                updated = DeployedPattern.model_validate(set_pattern_active(pattern_id, is_active))
            except Exception as e:
                raise RegistryError(f"Failed to toggle pattern {pattern_id}") from e
            self._publish(field)

        logger.info(
            f"Pattern {'activated' if is_active else 'deactivated'}",
            extra={"field_name": field.value, "pattern_id": str(pattern_id)},
        )
        return updated

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _expired(self, snapshot: _Snapshot) -> bool:
        return self._ttl is not None and self._clock() - snapshot.loaded_at >= self._ttl

    def _load(self, field: MetadataField) -> tuple[DeployedPattern, ...]:
        rows = list_patterns(field.value, active_only=True)
        patterns = [DeployedPattern.model_validate(row) for row in rows]
        return tuple(sorted((p for p in patterns if p.is_active), key=_match_order))

    def _load_or_fallback(
        self, field: MetadataField, snapshot: _Snapshot | None
    ) -> tuple[DeployedPattern, ...]:
        try:
            return self._load(field)
        except Exception as e:
            # Extraction must keep working on baselines / last known rules
            logger.error(
                f"Failed to load pattern chain, using last known rules: {e}",
                extra={"field_name": field.value},
            )
            return snapshot.patterns if snapshot is not None else ()

    def _publish(self, field: MetadataField) -> None:
        """Swap in a fresh snapshot. Caller holds the field lock."""
        try:
            self._snapshots[field] = _Snapshot(self._load(field), self._clock())
        except Exception as e:
            logger.warning(
                f"Snapshot refresh failed, next read reloads: {e}",
                extra={"field_name": field.value},
            )
            self._snapshots.pop(field, None)

    def _check_supersede_target(self, field: MetadataField, pattern_id: UUID) -> None:
        target = get_pattern(pattern_id)
        if not target:
            raise ValidationError(f"Superseded pattern {pattern_id} not found", field="supersedes_id")
        if target.get("field_name") != field.value:
            raise ValidationError(
                f"Superseded pattern {pattern_id} belongs to {target.get('field_name')}",
                field="supersedes_id",
            )
        if not target.get("is_active"):
            raise ValidationError(
                f"Superseded pattern {pattern_id} is not active", field="supersedes_id"
            )

    def _undo_activation(self, pattern_id: UUID, field: MetadataField) -> None:
        try:
            set_pattern_active(pattern_id, False)
        except Exception:
            logger.exception(
                "Compensating deactivation failed; registry needs manual repair",
                extra={"field_name": field.value, "pattern_id": str(pattern_id)},
            )

    def _restore_activation(self, pattern_id: UUID, field: MetadataField) -> None:
        try:
            set_pattern_active(pattern_id, True)
        except Exception:
            logger.exception(
                "Compensating reactivation failed; registry needs manual repair",
                extra={"field_name": field.value, "pattern_id": str(pattern_id)},
            )


@lru_cache(maxsize=1)
def get_pattern_registry() -> PatternRegistry:
    """Process-wide registry instance."""
    return PatternRegistry(ttl_seconds=get_settings().PATTERN_REGISTRY_TTL_SECONDS)
