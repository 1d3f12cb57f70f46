"""Append-only approval ledger."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from src.curation.errors import ApprovalError
from src.curation.models.enums import ApprovalType
from src.curation.models.lifecycle import (
    ApprovalEventRecord,
    ApprovalStats,
    CreateApprovalParams,
)

logger = logging.getLogger(__name__)


class ApprovalEventRepository(ABC):
    """Storage contract for approval events. Records are never updated."""

    @abstractmethod
    async def record_approval(self, params: CreateApprovalParams) -> ApprovalEventRecord:
        pass

    @abstractmethod
    async def get_approval_event(self, item_id: str) -> Optional[ApprovalEventRecord]:
        """Return the most recent approval event for ``item_id``, if any."""
        pass

    @abstractmethod
    async def get_approvals_by_operator(
        self, operator_id: str, limit: int = 50
    ) -> List[ApprovalEventRecord]:
        pass

    @abstractmethod
    async def get_approvals_by_type(
        self, item_type: str, limit: int = 50
    ) -> List[ApprovalEventRecord]:
        pass

    @abstractmethod
    async def get_approval_stats(self) -> ApprovalStats:
        pass


async def record_approval(
    repository: ApprovalEventRepository,
    params: CreateApprovalParams,
) -> ApprovalEventRecord:
    """Record an approval event.

    Args:
        repository: Approval event storage
        params: Approval parameters

    Returns:
        The stored approval event

    Raises:
        ApprovalError: If a MANUAL approval has no operator identity
    """
    if params.approval_type == ApprovalType.MANUAL and not params.operator_id:
        raise ApprovalError("Manual approval requires operator ID")

    event = await repository.record_approval(params)
    logger.info(
        f"Recorded {params.approval_type.value} approval for {params.item_type}:{params.item_id}",
        extra={"item_id": params.item_id, "operator_id": params.operator_id},
    )
    return event


async def get_approval_history(
    repository: ApprovalEventRepository, item_id: str
) -> Optional[ApprovalEventRecord]:
    return await repository.get_approval_event(item_id)


async def is_approved(repository: ApprovalEventRepository, item_id: str) -> bool:
    return await repository.get_approval_event(item_id) is not None
