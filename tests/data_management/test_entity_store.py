"""Tests for EntityStore.

Tests cover:
- Create / load / save with optimistic versioning
- Stale writes rejected
- Filtering and donor visibility
- JSON persistence round trip and fatal write failures
"""

import pytest

from verification_system.data_management.entity_store import EntityStore
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


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> EntityStore:
    return EntityStore()


@pytest.fixture
def school() -> Entity:
    return Entity(
        entity_id="school-1",
        kind=EntityKind.SCHOOL,
        attributes={"schoolName": "Govt. High School"},
    )


# ── Create and load ───────────────────────────────────────────────────────


class TestCreateLoad:
    @pytest.mark.asyncio
    async def test_create_then_load(self, store, school) -> None:
        created = await store.create(school)
        loaded = await store.load(EntityKind.SCHOOL, "school-1")

        assert created.version == 0
        assert loaded.attributes["schoolName"] == "Govt. High School"
        assert loaded.status == EntityStatus.PENDING

    @pytest.mark.asyncio
    async def test_create_resets_version(self, store) -> None:
        created = await store.create(Entity(kind=EntityKind.COLLEGE, version=7))
        assert created.version == 0

    @pytest.mark.asyncio
    async def test_duplicate_create_rejected(self, store, school) -> None:
        await store.create(school)
        with pytest.raises(PersistenceError):
            await store.create(school)

    @pytest.mark.asyncio
    async def test_load_missing(self, store) -> None:
        with pytest.raises(EntityNotFoundError):
            await store.load(EntityKind.SCHOOL, "nope")

    @pytest.mark.asyncio
    async def test_load_is_kind_scoped(self, store, school) -> None:
        await store.create(school)
        with pytest.raises(EntityNotFoundError):
            await store.load(EntityKind.COLLEGE, "school-1")

    @pytest.mark.asyncio
    async def test_loaded_copy_is_detached(self, store, school) -> None:
        await store.create(school)
        loaded = await store.load(EntityKind.SCHOOL, "school-1")
        loaded.attributes["schoolName"] = "Changed"

        again = await store.load(EntityKind.SCHOOL, "school-1")
        assert again.attributes["schoolName"] == "Govt. High School"


# ── Save and versioning ───────────────────────────────────────────────────


class TestSave:
    @pytest.mark.asyncio
    async def test_save_advances_version(self, store, school) -> None:
        await store.create(school)
        loaded = await store.load(EntityKind.SCHOOL, "school-1")

        saved = await store.save(loaded.model_copy(update={"status": EntityStatus.IN_REVIEW}))

        assert saved.version == 1
        assert saved.status == EntityStatus.IN_REVIEW
        assert (await store.load(EntityKind.SCHOOL, "school-1")).version == 1

    @pytest.mark.asyncio
    async def test_stale_save_rejected(self, store, school) -> None:
        await store.create(school)
        first = await store.load(EntityKind.SCHOOL, "school-1")
        second = await store.load(EntityKind.SCHOOL, "school-1")

        await store.save(first.model_copy(update={"status": EntityStatus.VERIFIED}))
        with pytest.raises(ConcurrentModificationError):
            await store.save(second.model_copy(update={"status": EntityStatus.REJECTED}))

        current = await store.load(EntityKind.SCHOOL, "school-1")
        assert current.status == EntityStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_concurrent_modification_is_persistence_error(self) -> None:
        assert issubclass(ConcurrentModificationError, PersistenceError)

    @pytest.mark.asyncio
    async def test_save_unknown_entity(self, store) -> None:
        with pytest.raises(EntityNotFoundError):
            await store.save(Entity(kind=EntityKind.STUDENT))


# ── Queries ───────────────────────────────────────────────────────────────


class TestQueries:
    async def _seed(self, store: EntityStore) -> None:
        for entity_id, kind, status, score in [
            ("s1", EntityKind.SCHOOL, EntityStatus.VERIFIED, 90),
            ("s2", EntityKind.SCHOOL, EntityStatus.VERIFIED, 40),
            ("s3", EntityKind.SCHOOL, EntityStatus.IN_REVIEW, 65),
            ("r1", EntityKind.REQUEST, EntityStatus.APPROVED, 85),
            ("r2", EntityKind.REQUEST, EntityStatus.REJECTED, 20),
        ]:
            await store.create(
                Entity(entity_id=entity_id, kind=kind, status=status, ai_verification_score=score)
            )

    @pytest.mark.asyncio
    async def test_list_by_kind_and_status(self, store) -> None:
        await self._seed(store)

        schools = await store.list_entities(kind=EntityKind.SCHOOL)
        verified = await store.list_entities(status=EntityStatus.VERIFIED)

        assert {e.entity_id for e in schools} == {"s1", "s2", "s3"}
        assert {e.entity_id for e in verified} == {"s1", "s2"}

    @pytest.mark.asyncio
    async def test_donor_visible_requires_score_50(self, store) -> None:
        await self._seed(store)

        visible = await store.donor_visible()

        assert {e.entity_id for e in visible} == {"s1", "r1"}

    @pytest.mark.asyncio
    async def test_stats(self, store) -> None:
        await self._seed(store)
        stats = await store.get_stats()

        assert stats["total"] == 5
        assert stats["by_kind"]["school"] == {"verified": 2, "in_review": 1}


# ── Persistence ───────────────────────────────────────────────────────────


class TestPersistence:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path, school) -> None:
        path = tmp_path / "entities.json"
        store = EntityStore(str(path))
        await store.create(school)
        loaded = await store.load(EntityKind.SCHOOL, "school-1")
        await store.save(loaded.model_copy(update={"status": EntityStatus.VERIFIED}))

        reopened = EntityStore(str(path))
        entity = await reopened.load(EntityKind.SCHOOL, "school-1")

        assert entity.status == EntityStatus.VERIFIED
        assert entity.version == 1

    def test_corrupt_file_raises(self, tmp_path) -> None:
        path = tmp_path / "entities.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError):
            EntityStore(str(path))

    @pytest.mark.asyncio
    async def test_write_failure_is_fatal_and_rolled_back(self, tmp_path, school) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = EntityStore(str(blocker / "entities.json"))

        with pytest.raises(PersistenceError):
            await store.create(school)

        assert (await store.get_stats())["total"] == 0
