"""Entity storage with optimistic versioning.

Stands in for the application's entity persistence layer:
- Kind-scoped organization (entity kind, then entity_id)
- Optimistic concurrency: save() only succeeds against the version that was
  loaded, so two verifications racing on one entity cannot silently
  overwrite each other
- Thread-safe operations with asyncio locks
- Optional JSON persistence; write failures are fatal

Usage:
    from verification_system.data_management.entity_store import EntityStore

    store = EntityStore()
    school = await store.create(Entity(kind=EntityKind.SCHOOL, attributes={...}))
    loaded = await store.load(EntityKind.SCHOOL, school.entity_id)
    loaded.status = EntityStatus.IN_REVIEW
    saved = await store.save(loaded)
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog

from verification_system.data_management.schemas import (
    Entity,
    EntityKind,
    EntityStatus,
)
from verification_system.utils.exceptions import (
    ConcurrentModificationError,
    EntityNotFoundError,
    PersistenceError,
)

# Minimum score for an accepted entity to be listed to donors
DONOR_MIN_SCORE = 50


class EntityStore:
    """Storage for entities under verification.

    Data structure:
    {
        entity_kind: {
            entity_id: Entity,
            ...
        },
        ...
    }
    """

    def __init__(self, persistence_path: Optional[str] = None) -> None:
        """Initialize EntityStore.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.

        Raises:
            PersistenceError: If an existing persistence file cannot be read.
        """
        self._entities: dict[EntityKind, dict[str, Entity]] = {}
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._logger = structlog.get_logger().bind(component="EntityStore")

        if self._persistence_path:
            self._load_from_file()

    async def create(self, entity: Entity) -> Entity:
        """Register a new entity (normally done by the owning CRUD flow).

        Args:
            entity: Entity to register. Its version is reset to 0.

        Returns:
            Copy of the stored entity.

        Raises:
            PersistenceError: If the id is already taken or persistence fails.
        """
        async with self._lock:
            bucket = self._entities.setdefault(entity.kind, {})
            if entity.entity_id in bucket:
                raise PersistenceError(
                    f"{entity.kind.value} {entity.entity_id} already exists"
                )

            record = entity.model_copy(update={"version": 0}, deep=True)
            bucket[record.entity_id] = record
            try:
                self._persist()
            except PersistenceError:
                del bucket[record.entity_id]
                raise

            self._logger.debug(
                "entity_created",
                entity_id=record.entity_id,
                kind=record.kind.value,
            )
            return record.model_copy(deep=True)

    async def load(self, kind: EntityKind, entity_id: str) -> Entity:
        """Load an entity by kind and id.

        Returns:
            Copy of the stored entity; mutating it does not affect the store.

        Raises:
            EntityNotFoundError: If no such entity exists.
        """
        async with self._lock:
            record = self._entities.get(kind, {}).get(entity_id)
            if record is None:
                raise EntityNotFoundError(
                    f"{kind.display_name} not found: {entity_id}"
                )
            return record.model_copy(deep=True)

    async def save(self, entity: Entity) -> Entity:
        """Persist an entity loaded earlier from this store.

        Args:
            entity: Entity carrying the version it was loaded with.

        Returns:
            Copy of the stored entity with its version advanced.

        Raises:
            EntityNotFoundError: If the entity was never created.
            ConcurrentModificationError: If the stored version moved on
                since the entity was loaded.
            PersistenceError: If writing the persistence file fails.
        """
        async with self._lock:
            bucket = self._entities.get(entity.kind, {})
            current = bucket.get(entity.entity_id)
            if current is None:
                raise EntityNotFoundError(
                    f"{entity.kind.display_name} not found: {entity.entity_id}"
                )
            if current.version != entity.version:
                self._logger.warning(
                    "stale_entity_write",
                    entity_id=entity.entity_id,
                    kind=entity.kind.value,
                    expected_version=entity.version,
                    stored_version=current.version,
                )
                raise ConcurrentModificationError(
                    f"{entity.kind.value} {entity.entity_id} was modified concurrently "
                    f"(loaded version {entity.version}, stored version {current.version})"
                )

            record = entity.model_copy(
                update={
                    "version": current.version + 1,
                    "updated_at": datetime.now(timezone.utc),
                },
                deep=True,
            )
            bucket[entity.entity_id] = record
            try:
                self._persist()
            except PersistenceError:
                bucket[entity.entity_id] = current
                raise

            self._logger.debug(
                "entity_saved",
                entity_id=record.entity_id,
                kind=record.kind.value,
                status=record.status.value,
                version=record.version,
            )
            return record.model_copy(deep=True)

    async def list_entities(
        self,
        kind: Optional[EntityKind] = None,
        status: Optional[EntityStatus] = None,
        min_score: Optional[int] = None,
    ) -> list[Entity]:
        """List entities, optionally filtered by kind, status and minimum score."""
        async with self._lock:
            kinds = [kind] if kind else list(self._entities.keys())
            matches = []
            for k in kinds:
                for record in self._entities.get(k, {}).values():
                    if status is not None and record.status != status:
                        continue
                    if min_score is not None and record.ai_verification_score < min_score:
                        continue
                    matches.append(record.model_copy(deep=True))
            return matches

    async def donor_visible(self, kind: Optional[EntityKind] = None) -> list[Entity]:
        """Entities a donor dashboard may show: accepted and scored >= 50."""
        entities = await self.list_entities(kind=kind, min_score=DONOR_MIN_SCORE)
        return [
            e
            for e in entities
            if e.status in (EntityStatus.VERIFIED, EntityStatus.APPROVED)
        ]

    async def get_stats(self) -> dict[str, Any]:
        """Count entities per kind and status."""
        async with self._lock:
            by_kind: dict[str, dict[str, int]] = {}
            total = 0
            for kind, bucket in self._entities.items():
                counts: dict[str, int] = {}
                for record in bucket.values():
                    counts[record.status.value] = counts.get(record.status.value, 0) + 1
                    total += 1
                by_kind[kind.value] = counts
            return {"total": total, "by_kind": by_kind}

    def _persist(self) -> None:
        """Save to JSON file (synchronous). No-op for memory-only stores."""
        if not self._persistence_path:
            return
        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data: dict[str, Any] = {
                kind.value: {
                    eid: record.model_dump(mode="json")
                    for eid, record in bucket.items()
                }
                for kind, bucket in self._entities.items()
            }
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except (OSError, TypeError, ValueError) as e:
            self._logger.error("persistence_failed", error=str(e))
            raise PersistenceError(f"Could not write entity store: {e}") from e

    def _load_from_file(self) -> None:
        """Load storage from JSON file (synchronous)."""
        if not self._persistence_path or not self._persistence_path.exists():
            return
        try:
            with open(self._persistence_path, "r") as f:
                data = json.load(f)
            self._entities = {
                EntityKind(kind): {
                    eid: Entity.model_validate(raw) for eid, raw in records.items()
                }
                for kind, records in data.items()
            }
        except (OSError, ValueError) as e:
            self._logger.error("load_failed", error=str(e))
            raise PersistenceError(f"Could not read entity store: {e}") from e

        self._logger.info(
            "entities_loaded",
            count=sum(len(b) for b in self._entities.values()),
        )
