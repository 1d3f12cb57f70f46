"""Bounded re-validation with per-attempt delays.

Each entity gets ``max_attempts`` attempts in total, counting automatic and
manual ones together.

Failures of gates in ``non_retryable_gates`` cannot be fixed by running the
gates again (the content itself has to change), so they stop the retry loop
immediately regardless of the remaining budget.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    FrozenSet,
    List,
    Optional,
    Sequence,
)

from pydantic import BaseModel, Field, field_validator

from src.constants import MAX_VALIDATION_ATTEMPTS, RETRY_DELAYS_MS
from src.curation.errors import MaxRetriesReachedError
from src.curation.models.gate import (
    GateInput,
    GateRunnerResult,
    QualityGateResult,
    ValidationWithRetryResult,
)
from src.curation.quality_gates.base import QualityGate
from src.curation.quality_gates.failure_recorder import (
    FailureRecorderRepository,
    record_validation_run,
)
from src.curation.quality_gates.gate_runner import get_failed_gates, run_gates, run_gates_by_tier
from src.curation.utils.logging_config import validation_stage_logger

logger = logging.getLogger(__name__)

NON_RETRYABLE_GATES: FrozenSet[str] = frozenset(
    {
        "schema-validation",
        "content-safety",
        "duplication-detection",
        "orthography-consistency",
    }
)

SleepFn = Callable[[float], Awaitable[None]]


class RetryConfig(BaseModel):
    """Retry budget and delay schedule.

    ``max_attempts`` is the single source of truth for how many attempts an
    entity gets, both here and in ``get_validation_status``.
    """

    max_attempts: int = Field(MAX_VALIDATION_ATTEMPTS, ge=1)
    delays_ms: List[int] = Field(default_factory=lambda: list(RETRY_DELAYS_MS), min_length=1)
    non_retryable_gates: FrozenSet[str] = NON_RETRYABLE_GATES

    @field_validator("delays_ms")
    @classmethod
    def validate_delays(cls, v: List[int]) -> List[int]:
        if any(delay < 0 for delay in v):
            raise ValueError("delays must be non-negative")
        return v

    def delay_for(self, attempt_index: int) -> int:
        """Delay in ms before the ``attempt_index``-th attempt (1-based).

        The last delay is reused once the schedule runs out.
        """
        if attempt_index <= 1:
            return 0
        return self.delays_ms[min(attempt_index - 1, len(self.delays_ms) - 1)]


def get_default_retry_config() -> RetryConfig:
    return RetryConfig()


def is_retryable_failure(results: Sequence[QualityGateResult], config: RetryConfig) -> bool:
    """False if any failed result comes from a non-retryable gate."""
    return not any(r.gate_name in config.non_retryable_gates for r in get_failed_gates(results))


async def sleep_ms(delay_ms: float) -> None:
    await asyncio.sleep(delay_ms / 1000)


class _EntityLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


# repository -> (entity_type, entity_id) -> lock. Shared by every controller
# on the same repository; an entry lives only while someone holds or waits on it.
_ENTITY_LOCKS: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


@asynccontextmanager
async def entity_lock(
    repository: FailureRecorderRepository, entity_type: str, entity_id: str
) -> AsyncIterator[None]:
    """Serialize attempt numbering for one entity in one repository."""
    locks = _ENTITY_LOCKS.setdefault(repository, {})
    key = (entity_type, entity_id)
    entry = locks.get(key)
    if entry is None:
        entry = locks[key] = _EntityLock()
    entry.users += 1
    try:
        async with entry.lock:
            yield
    finally:
        entry.users -= 1
        if entry.users == 0:
            del locks[key]


class RetryController:
    """Runs gates with retry semantics and records every attempt.

    Attempt numbers are assigned by reading the latest recorded attempt and
    incrementing it. That read-then-write is serialized per repository and
    ``(entity_type, entity_id)`` by ``entity_lock``, so separate controllers
    over the same repository never hand out the same attempt number.
    """

    def __init__(
        self,
        repository: FailureRecorderRepository,
        config: Optional[RetryConfig] = None,
        tiered: bool = False,
        sleep: SleepFn = sleep_ms,
    ):
        """Initialize retry controller.

        Args:
            repository: Failure recorder storage
            config: Retry budget and schedule (default: ``get_default_retry_config()``)
            tiered: Run gates tier by tier instead of sequentially (default: False)
            sleep: Coroutine taking a delay in milliseconds (default: asyncio.sleep)
        """
        self.repository = repository
        self.config = config or get_default_retry_config()
        self.tiered = tiered
        self.sleep = sleep

    async def _run(self, gates: Sequence[QualityGate], gate_input: GateInput) -> GateRunnerResult:
        if self.tiered:
            return await run_gates_by_tier(gates, gate_input)
        return await run_gates(gates, gate_input)

    async def validate_with_retry(
        self,
        gates: Sequence[QualityGate],
        gate_input: GateInput,
        entity_type: str,
        entity_id: str,
    ) -> ValidationWithRetryResult:
        """Validate automatically with whatever budget the entity has left.

        Attempts continue after the latest recorded one and never go past
        ``max_attempts``. Stops early on success or on a non-retryable failure.

        Raises:
            MaxRetriesReachedError: If the budget is already spent; no gate is
                run in that case
        """
        config = self.config
        with validation_stage_logger(
            "validate_with_retry", entity_type=entity_type, entity_id=entity_id
        ):
            async with entity_lock(self.repository, entity_type, entity_id):
                latest = await self.repository.get_latest_attempt_number(entity_type, entity_id)
                if latest >= config.max_attempts:
                    raise MaxRetriesReachedError(entity_type, entity_id, config.max_attempts)

                outcome: Optional[ValidationWithRetryResult] = None
                for attempt in range(latest + 1, config.max_attempts + 1):
                    if attempt > latest + 1:
                        delay = config.delay_for(attempt)
                        logger.info(
                            f"Retrying {entity_type}:{entity_id} (attempt {attempt}) in {delay}ms"
                        )
                        await self.sleep(delay)

                    run = await self._run(gates, gate_input)
                    await record_validation_run(
                        self.repository, entity_type, entity_id, run.results, attempt
                    )

                    if run.all_passed:
                        return ValidationWithRetryResult(
                            success=True, attempt_number=attempt, results=run.results
                        )

                    failed_gates = [r.gate_name for r in get_failed_gates(run.results)]
                    outcome = ValidationWithRetryResult(
                        success=False,
                        attempt_number=attempt,
                        failed_gates=failed_gates,
                        results=run.results,
                    )
                    if not is_retryable_failure(run.results, config):
                        logger.warning(
                            f"Non-retryable failure for {entity_type}:{entity_id}: {failed_gates}"
                        )
                        break
                else:
                    logger.warning(
                        f"Retry budget exhausted for {entity_type}:{entity_id} "
                        f"after attempt {config.max_attempts}: {outcome.failed_gates}"
                    )

        return outcome

    async def manual_retry(
        self,
        gates: Sequence[QualityGate],
        gate_input: GateInput,
        entity_type: str,
        entity_id: str,
    ) -> ValidationWithRetryResult:
        """Run one operator-triggered attempt.

        Raises:
            MaxRetriesReachedError: If the latest attempt already used up the
                budget; no gate is run in that case
        """
        config = self.config
        async with entity_lock(self.repository, entity_type, entity_id):
            latest = await self.repository.get_latest_attempt_number(entity_type, entity_id)
            if latest >= config.max_attempts:
                raise MaxRetriesReachedError(entity_type, entity_id, config.max_attempts)

            attempt = latest + 1
            logger.info(f"Manual retry for {entity_type}:{entity_id} (attempt {attempt})")
            run = await self._run(gates, gate_input)
            await record_validation_run(
                self.repository, entity_type, entity_id, run.results, attempt
            )

        return ValidationWithRetryResult(
            success=run.all_passed,
            attempt_number=attempt,
            failed_gates=[] if run.all_passed else [r.gate_name for r in get_failed_gates(run.results)],
            results=run.results,
            can_retry=not run.all_passed and attempt < config.max_attempts,
        )


async def validate_with_retry(
    gates: Sequence[QualityGate],
    gate_input: GateInput,
    entity_type: str,
    entity_id: str,
    repository: FailureRecorderRepository,
    config: Optional[RetryConfig] = None,
) -> ValidationWithRetryResult:
    """One-shot wrapper around ``RetryController.validate_with_retry``.

    Shares per-entity locking with every other caller on ``repository``.
    """
    return await RetryController(repository, config).validate_with_retry(
        gates, gate_input, entity_type, entity_id
    )


async def manual_retry(
    gates: Sequence[QualityGate],
    gate_input: GateInput,
    entity_type: str,
    entity_id: str,
    repository: FailureRecorderRepository,
    config: Optional[RetryConfig] = None,
) -> ValidationWithRetryResult:
    """One-shot wrapper around ``RetryController.manual_retry``.

    Shares per-entity locking with every other caller on ``repository``.
    """
    return await RetryController(repository, config).manual_retry(
        gates, gate_input, entity_type, entity_id
    )
