"""Guards against mutating approved items."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from src.curation.errors import ImmutabilityViolationError
from src.curation.models.enums import AttemptedOperation
from src.curation.models.lifecycle import ViolationParams, ViolationRecord

logger = logging.getLogger(__name__)


class ViolationRepository(ABC):
    """Audit log of rejected mutation attempts."""

    @abstractmethod
    async def log_violation(self, params: ViolationParams) -> ViolationRecord:
        pass

    @abstractmethod
    async def get_violations(self, item_id: str) -> List[ViolationRecord]:
        pass

    @abstractmethod
    async def get_violation_count(self, item_id: str) -> int:
        pass


def assert_mutable(
    is_approved: bool, item_id: str, operation: AttemptedOperation
) -> None:
    """Raise ``ImmutabilityViolationError`` if the item is approved."""
    if is_approved:
        raise ImmutabilityViolationError(item_id, operation)


async def guard_mutation(
    repository: ViolationRepository,
    is_approved: bool,
    item_id: str,
    item_type: str,
    operation: AttemptedOperation,
    user_id: Optional[str] = None,
) -> None:
    """Like ``assert_mutable`` but logs the rejected attempt first."""
    if not is_approved:
        return

    await repository.log_violation(
        ViolationParams(
            item_id=item_id,
            item_type=item_type,
            attempted_operation=operation,
            user_id=user_id,
        )
    )
    logger.warning(
        f"Rejected {AttemptedOperation(operation).value} on approved {item_type}:{item_id}",
        extra={"user_id": user_id},
    )
    assert_mutable(is_approved, item_id, operation)
