"""Unit tests for the in-memory repositories."""

import pytest

from src.curation.errors import DeprecationError
from src.curation.models.enums import CEFRLevel, LifecycleState
from src.curation.models.gate import PrerequisiteInfo
from src.curation.models.lifecycle import DeprecationParams
from src.curation.repositories import (
    InMemoryDeprecationRepository,
    InMemoryDuplicationRepository,
    InMemoryPrerequisiteRepository,
    InMemoryTransitionRepository,
)


async def approve_directly(store, item_id, item_type, payload):
    await store.add_draft(item_id, item_type, payload)
    path = list(LifecycleState)
    for from_state, to_state in zip(path, path[1:]):
        await store.move_item_to_state(item_id, item_type, from_state, to_state)


@pytest.fixture
def store():
    return InMemoryTransitionRepository()


class TestInMemoryTransitionRepository:
    """Tests for stage stores."""

    @pytest.mark.asyncio
    async def test_item_lives_in_one_store(self, store):
        await approve_directly(store, "m-1", "meaning", {"word": "casa"})

        assert store.tables["drafts"] == {}
        assert store.tables["candidates"] == {}
        assert store.tables["validated"] == {}
        assert list(store.tables["approved_meanings"]) == ["m-1"]

    @pytest.mark.asyncio
    async def test_find_item_filters_by_type(self, store):
        await store.add_draft("x-1", "meaning", {"word": "casa"})

        assert await store.find_item("x-1", "rule") is None
        state, row = await store.find_item("x-1", "meaning")
        assert state == LifecycleState.DRAFT
        assert row["source"] == "manual"

    @pytest.mark.asyncio
    async def test_update_and_delete(self, store):
        await store.add_draft("m-1", "meaning", {"word": "casa"})

        await store.update_payload("m-1", "meaning", {"word": "hogar"})
        _, row = await store.find_item("m-1", "meaning")
        assert row["payload"] == {"word": "hogar"}

        await store.delete_item("m-1", "meaning")
        assert await store.get_state("m-1", "meaning") is None

    @pytest.mark.asyncio
    async def test_missing_item_operations_raise(self, store):
        with pytest.raises(LookupError):
            await store.update_payload("nope", "meaning", {})
        with pytest.raises(LookupError):
            await store.delete_item("nope", "meaning")
        with pytest.raises(LookupError, match="Candidate nope not found"):
            await store.move_item_to_state(
                "nope", "meaning", LifecycleState.CANDIDATE, LifecycleState.VALIDATED
            )


class TestStoreBackedLookups:
    """Tests for repositories reading approved items from the stage stores."""

    @pytest.mark.asyncio
    async def test_duplication_sees_approved_items(self, store):
        await approve_directly(store, "m-1", "meaning", {"word": "Casa", "language": "ES"})
        repository = InMemoryDuplicationRepository(store=store)

        assert await repository.find_exact_match("casa", "es", "meaning") == "m-1"
        assert await repository.find_exact_match("casa", "ES", "utterance") is None

    @pytest.mark.asyncio
    async def test_similarity_is_sorted_and_capped(self):
        repository = InMemoryDuplicationRepository(max_matches=1)
        repository.add_approved("u-1", "The cat sat on the mat.", "EN", "utterance")
        repository.add_approved("u-2", "The cat sat on the mat!", "EN", "utterance")

        matches = await repository.find_similar("The cat sat on the mat!", "EN", "utterance", 0.8)

        assert [m.id for m in matches] == ["u-2"]
        assert matches[0].similarity == 1.0

    @pytest.mark.asyncio
    async def test_prerequisites_from_approved_items(self, store):
        await approve_directly(
            store,
            "r-1",
            "rule",
            {"title": "Ser", "language": "ES", "level": "A1", "prerequisites": ["r-0"]},
        )
        repository = InMemoryPrerequisiteRepository(store=store)

        found = await repository.find_prerequisites(["r-1", "r-missing"])

        assert found == [PrerequisiteInfo(id="r-1", level=CEFRLevel.A1, language="ES")]
        assert await repository.get_prerequisites_of("r-1") == ["r-0"]
        assert await repository.get_prerequisites_of("r-missing") == []

    @pytest.mark.asyncio
    async def test_seeded_entries_take_precedence(self, store):
        await approve_directly(store, "r-1", "rule", {"language": "ES", "level": "A1"})
        repository = InMemoryPrerequisiteRepository(store=store)
        repository.add_item(PrerequisiteInfo(id="r-1", level=CEFRLevel.B1, language="ES"), ["r-9"])

        [info] = await repository.find_prerequisites(["r-1"])

        assert info.level == CEFRLevel.B1
        assert await repository.get_prerequisites_of("r-1") == ["r-9"]


class TestInMemoryDeprecationRepository:
    @pytest.mark.asyncio
    async def test_create_twice_raises(self):
        repository = InMemoryDeprecationRepository()
        params = DeprecationParams(
            item_id="m-1", item_type="meaning", reason="old", operator_id="op-1"
        )
        await repository.create_deprecation(params)

        with pytest.raises(DeprecationError):
            await repository.create_deprecation(params)
