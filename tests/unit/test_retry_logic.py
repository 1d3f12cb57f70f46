"""Unit tests for the retry controller."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from src.curation.errors import MaxRetriesReachedError
from src.curation.models.gate import GateInput, QualityGateResult
from src.curation.quality_gates import retry_logic
from src.curation.quality_gates import (
    QualityGate,
    RetryConfig,
    RetryController,
    get_default_retry_config,
    is_retryable_failure,
    manual_retry,
    validate_with_retry,
)
from src.curation.repositories import InMemoryFailureRecorderRepository


class ScriptedGate(QualityGate):
    """Gate that returns the next scripted outcome on each call."""

    def __init__(self, name, outcomes):
        self.name = name
        self.outcomes = list(outcomes)
        self.calls = 0

    async def check(self, gate_input):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        return self.passed() if outcome else self.failed(f"{self.name} failed")


class SlowFailingGate(QualityGate):
    """Gate that yields to the event loop before failing."""

    name = "cefr-consistency"

    async def check(self, gate_input):
        await asyncio.sleep(0.01)
        return self.failed("too advanced")


@pytest.fixture
def gate_input():
    return GateInput(text="casa", language="ES", content_type="meaning")


@pytest.fixture
def repository():
    return InMemoryFailureRecorderRepository()


@pytest.fixture
def config():
    return RetryConfig(max_attempts=3, delays_ms=[0, 2000, 5000])


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def controller(repository, config, sleep):
    return RetryController(repository, config, sleep=sleep)


class TestRetryConfig:
    """Tests for the retry schedule."""

    def test_defaults_come_from_constants(self):
        config = get_default_retry_config()
        assert config.max_attempts >= 1
        assert "content-safety" in config.non_retryable_gates

    def test_delay_for(self, config):
        assert config.delay_for(1) == 0
        assert config.delay_for(2) == 2000
        assert config.delay_for(3) == 5000
        assert config.delay_for(7) == 5000

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            RetryConfig(delays_ms=[0, -1])


class TestIsRetryableFailure:
    def _results(self, *names):
        return [QualityGateResult(passed=False, gate_name=n, reason="x") for n in names]

    def test_only_retryable_failures(self, config):
        assert is_retryable_failure(self._results("cefr-consistency"), config) is True

    def test_any_non_retryable_failure(self, config):
        results = self._results("cefr-consistency", "duplication-detection")
        assert is_retryable_failure(results, config) is False


class TestValidateWithRetry:
    """Tests for automatic retries."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self, controller, repository, sleep, gate_input):
        gate = ScriptedGate("cefr-consistency", [True])

        result = await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")

        assert result.success is True
        assert result.attempt_number == 1
        assert result.failed_gates == []
        sleep.assert_not_awaited()
        assert [r.attempt_number for r in repository.records] == [1]

    @pytest.mark.asyncio
    async def test_flaky_gate_passes_on_second_attempt(self, controller, sleep, gate_input):
        gate = ScriptedGate("prerequisite-validation", [False, True])

        result = await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")

        assert result.success is True
        assert result.attempt_number == 2
        sleep.assert_awaited_once_with(2000)

    @pytest.mark.asyncio
    async def test_exhausts_budget_for_retryable_failure(
        self, controller, repository, sleep, gate_input
    ):
        gate = ScriptedGate("cefr-consistency", [False])

        result = await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")

        assert result.success is False
        assert result.attempt_number == 3
        assert result.failed_gates == ["cefr-consistency"]
        assert result.can_retry is False
        assert gate.calls == 3
        assert [call.args[0] for call in sleep.await_args_list] == [2000, 5000]
        assert [r.attempt_number for r in repository.records] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_non_retryable_failure_stops_immediately(
        self, controller, repository, sleep, gate_input
    ):
        gate = ScriptedGate("content-safety", [False, True])

        result = await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")

        assert result.success is False
        assert result.attempt_number == 1
        assert result.failed_gates == ["content-safety"]
        assert result.can_retry is False
        assert gate.calls == 1
        assert [r.attempt_number for r in repository.records] == [1]
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_spent_budget_raises_without_running_gates(
        self, controller, repository, gate_input
    ):
        gate = ScriptedGate("cefr-consistency", [False])
        await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")

        with pytest.raises(MaxRetriesReachedError):
            await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")

        assert gate.calls == 3
        assert [r.attempt_number for r in repository.records] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_uses_budget_left_after_manual_attempts(
        self, controller, repository, sleep, gate_input
    ):
        gate = ScriptedGate("cefr-consistency", [False])
        for _ in range(2):
            await controller.manual_retry([gate], gate_input, "meaning", "m-1")

        result = await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")

        assert result.attempt_number == 3
        assert result.success is False
        assert gate.calls == 3
        sleep.assert_not_awaited()
        assert [r.attempt_number for r in repository.records] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_tiered_mode_records_whole_tier(self, repository, config, sleep, gate_input):
        controller = RetryController(repository, config, tiered=True, sleep=sleep)
        gates = [ScriptedGate("content-safety", [False]), ScriptedGate("orthography-consistency", [True])]

        await controller.validate_with_retry(gates, gate_input, "meaning", "m-1")

        assert {r.gate_name for r in repository.records} == {
            "content-safety",
            "orthography-consistency",
        }

    @pytest.mark.asyncio
    async def test_module_level_wrapper(self, repository, gate_input):
        config = RetryConfig(max_attempts=1, delays_ms=[0])
        gate = ScriptedGate("cefr-consistency", [False])

        result = await validate_with_retry([gate], gate_input, "meaning", "m-1", repository, config)

        assert result.attempt_number == 1
        assert result.success is False


class TestManualRetry:
    """Tests for operator-triggered attempts."""

    @pytest.mark.asyncio
    async def test_single_attempt_with_budget_left(self, controller, gate_input):
        gate = ScriptedGate("cefr-consistency", [False])

        result = await controller.manual_retry([gate], gate_input, "meaning", "m-1")

        assert result.success is False
        assert result.attempt_number == 1
        assert result.can_retry is True
        assert gate.calls == 1

    @pytest.mark.asyncio
    async def test_last_attempt_cannot_retry(self, controller, gate_input):
        gate = ScriptedGate("cefr-consistency", [False])
        for _ in range(2):
            await controller.manual_retry([gate], gate_input, "meaning", "m-1")

        result = await controller.manual_retry([gate], gate_input, "meaning", "m-1")

        assert result.attempt_number == 3
        assert result.can_retry is False

    @pytest.mark.asyncio
    async def test_raises_when_budget_spent_without_running_gates(
        self, controller, repository, gate_input
    ):
        gate = ScriptedGate("cefr-consistency", [False])
        await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")
        calls_before = gate.calls

        with pytest.raises(MaxRetriesReachedError) as exc_info:
            await controller.manual_retry([gate], gate_input, "meaning", "m-1")

        assert exc_info.value.max_attempts == 3
        assert gate.calls == calls_before
        assert len(repository.records) == 3

    @pytest.mark.asyncio
    async def test_concurrent_retries_get_distinct_attempt_numbers(self, controller, gate_input):
        gate = ScriptedGate("cefr-consistency", [False])

        first, second = await asyncio.gather(
            controller.manual_retry([gate], gate_input, "meaning", "m-1"),
            controller.manual_retry([gate], gate_input, "meaning", "m-1"),
        )

        assert {first.attempt_number, second.attempt_number} == {1, 2}

    @pytest.mark.asyncio
    async def test_module_level_wrapper(self, repository, gate_input):
        gate = ScriptedGate("cefr-consistency", [True])

        result = await manual_retry([gate], gate_input, "meaning", "m-1", repository)

        assert result.success is True
        assert result.can_retry is False


class TestEntityLocking:
    """Tests for attempt numbering shared across controllers."""

    @pytest.mark.asyncio
    async def test_concurrent_wrapper_calls_get_distinct_attempt_numbers(
        self, repository, gate_input
    ):
        first, second = await asyncio.gather(
            manual_retry([SlowFailingGate()], gate_input, "meaning", "m-1", repository),
            manual_retry([SlowFailingGate()], gate_input, "meaning", "m-1", repository),
        )

        assert {first.attempt_number, second.attempt_number} == {1, 2}
        assert sorted(r.attempt_number for r in repository.records) == [1, 2]

    @pytest.mark.asyncio
    async def test_separate_controllers_share_the_budget(
        self, repository, config, sleep, gate_input
    ):
        controllers = [RetryController(repository, config, sleep=sleep) for _ in range(2)]

        results = await asyncio.gather(
            *(
                c.validate_with_retry([SlowFailingGate()], gate_input, "meaning", "m-1")
                for c in controllers
            ),
            return_exceptions=True,
        )

        assert sum(isinstance(r, MaxRetriesReachedError) for r in results) == 1
        assert [r.attempt_number for r in repository.records] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_lock_entries_are_released(self, controller, repository, gate_input):
        gate = ScriptedGate("cefr-consistency", [True])

        await controller.validate_with_retry([gate], gate_input, "meaning", "m-1")
        await controller.manual_retry([gate], gate_input, "rule", "r-1")

        assert retry_logic._ENTITY_LOCKS.get(repository) == {}
