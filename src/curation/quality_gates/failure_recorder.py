"""Persists every gate outcome per entity per attempt.

Records are append-only. Validation status and retry eligibility are derived
from the recorded history rather than stored.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from src.constants import GATE_RESULT_RETENTION_DAYS, MAX_VALIDATION_ATTEMPTS
from src.curation.errors import FailureRecordingError
from src.curation.models.enums import GateStatus, ValidationStatus
from src.curation.models.gate import (
    GateResultRecord,
    QualityGateResult,
    RecordResultParams,
    ValidationStatusReport,
)

logger = logging.getLogger(__name__)


class FailureRecorderRepository(ABC):
    @abstractmethod
    async def record_result(self, params: RecordResultParams) -> None:
        pass

    @abstractmethod
    async def get_latest_attempt_number(self, entity_type: str, entity_id: str) -> int:
        """Highest recorded attempt number, or 0 if the entity was never validated."""
        pass

    @abstractmethod
    async def get_failure_count(self, entity_type: str, entity_id: str) -> int:
        pass

    @abstractmethod
    async def get_entity_failures(
        self, entity_type: str, entity_id: str
    ) -> List[GateResultRecord]:
        pass

    @abstractmethod
    async def has_failed_on_latest_attempt(self, entity_type: str, entity_id: str) -> bool:
        pass

    @abstractmethod
    async def clear_old_results(self, days_to_keep: int = GATE_RESULT_RETENTION_DAYS) -> int:
        """Delete records older than ``days_to_keep`` days. Returns the number deleted."""
        pass


async def record_validation_run(
    repository: FailureRecorderRepository,
    entity_type: str,
    entity_id: str,
    results: Sequence[QualityGateResult],
    attempt_number: int,
) -> None:
    """Write one record per gate result for the given attempt.

    Writes are issued concurrently; their order is not significant.

    Raises:
        FailureRecordingError: If any write fails
    """
    params = [
        RecordResultParams(
            entity_type=entity_type,
            entity_id=entity_id,
            gate_name=result.gate_name,
            status=GateStatus.PASSED if result.passed else GateStatus.FAILED,
            error_message=result.reason,
            metadata=result.details or {},
            attempt_number=attempt_number,
            execution_time_ms=result.execution_time_ms,
        )
        for result in results
    ]

    try:
        await asyncio.gather(*(repository.record_result(p) for p in params))
    except Exception as e:
        raise FailureRecordingError(
            f"Failed to record attempt {attempt_number}: {e}", entity_type, entity_id
        ) from e

    logger.debug(
        f"Recorded {len(params)} gate result(s) for {entity_type}:{entity_id} "
        f"attempt {attempt_number}"
    )


async def get_validation_status(
    repository: FailureRecorderRepository,
    entity_type: str,
    entity_id: str,
    max_attempts: int = MAX_VALIDATION_ATTEMPTS,
) -> ValidationStatusReport:
    """Derive the entity's validation status from its latest attempt.

    ``can_retry`` is true only when the latest attempt failed and the attempt
    budget ``max_attempts`` is not yet used up.
    """
    attempt_number = await repository.get_latest_attempt_number(entity_type, entity_id)
    if attempt_number == 0:
        return ValidationStatusReport(status=ValidationStatus.NOT_VALIDATED)

    has_failed = await repository.has_failed_on_latest_attempt(entity_type, entity_id)
    failures = await repository.get_entity_failures(entity_type, entity_id) if has_failed else []

    return ValidationStatusReport(
        status=ValidationStatus.FAILED if has_failed else ValidationStatus.PASSED,
        attempt_number=attempt_number,
        can_retry=has_failed and attempt_number < max_attempts,
        failures=failures,
    )
