"""Unit tests for the approved-item immutability guard."""

import pytest

from src.curation.errors import ImmutabilityViolationError
from src.curation.lifecycle import assert_mutable, guard_mutation
from src.curation.models.enums import AttemptedOperation
from src.curation.repositories import InMemoryViolationRepository


class TestAssertMutable:
    def test_unapproved_item_is_mutable(self):
        assert assert_mutable(False, "m-1", AttemptedOperation.UPDATE) is None

    @pytest.mark.parametrize(
        "operation,verb",
        [(AttemptedOperation.UPDATE, "update"), (AttemptedOperation.DELETE, "delete")],
    )
    def test_approved_item_raises(self, operation, verb):
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            assert_mutable(True, "m-1", operation)

        assert str(exc_info.value) == (
            f"Cannot {verb} approved item m-1. Use deprecation instead."
        )
        assert exc_info.value.item_id == "m-1"
        assert exc_info.value.operation == operation


class TestGuardMutation:
    """Tests for the audited guard."""

    @pytest.mark.asyncio
    async def test_logs_violation_before_raising(self):
        repository = InMemoryViolationRepository()

        with pytest.raises(ImmutabilityViolationError):
            await guard_mutation(
                repository, True, "m-1", "meaning", AttemptedOperation.DELETE, user_id="u-7"
            )

        violations = await repository.get_violations("m-1")
        assert len(violations) == 1
        assert violations[0].attempted_operation == AttemptedOperation.DELETE
        assert violations[0].user_id == "u-7"
        assert violations[0].attempted_at is not None

    @pytest.mark.asyncio
    async def test_unapproved_item_is_not_logged(self):
        repository = InMemoryViolationRepository()

        await guard_mutation(repository, False, "m-1", "meaning", AttemptedOperation.UPDATE)

        assert await repository.get_violation_count("m-1") == 0
