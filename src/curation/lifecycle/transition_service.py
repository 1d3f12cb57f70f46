"""Executes validated state transitions.

The transition is checked against the fixed graph, recorded, and the item is
moved to the store of its new stage. Entering APPROVED also writes an
approval event.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from src.curation.errors import ApprovalError
from src.curation.lifecycle.approval_events import ApprovalEventRepository, record_approval
from src.curation.lifecycle.validator import assert_valid_transition
from src.curation.models.enums import ApprovalType, LifecycleState
from src.curation.models.lifecycle import (
    ApprovalMetadata,
    CreateApprovalParams,
    StateTransition,
    TransitionParams,
)

logger = logging.getLogger(__name__)


class TransitionRepository(ABC):
    @abstractmethod
    async def record_transition(self, params: TransitionParams) -> StateTransition:
        pass

    @abstractmethod
    async def move_item_to_state(
        self,
        item_id: str,
        item_type: str,
        from_state: LifecycleState,
        to_state: LifecycleState,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass


def get_table_for_state(item_type: str, state: LifecycleState) -> str:
    """Storage location holding items of ``item_type`` in ``state``.

    Example:
        >>> get_table_for_state("Meaning", LifecycleState.APPROVED)
        'approved_meanings'
    """
    state_table_map = {
        LifecycleState.DRAFT: "drafts",
        LifecycleState.CANDIDATE: "candidates",
        LifecycleState.VALIDATED: "validated",
        LifecycleState.APPROVED: f"approved_{item_type.lower()}s",
    }
    return state_table_map[LifecycleState(state)]


def _resolve_approval(
    params: TransitionParams, approval: Optional[ApprovalMetadata]
) -> ApprovalMetadata:
    if approval is not None:
        return approval
    raw = params.metadata.get("approval")
    if raw is None:
        return ApprovalMetadata()
    if isinstance(raw, ApprovalMetadata):
        return raw
    return ApprovalMetadata.model_validate(raw)


async def execute_transition(
    repository: TransitionRepository,
    params: TransitionParams,
    approval_repository: Optional[ApprovalEventRepository] = None,
    approval: Optional[ApprovalMetadata] = None,
) -> StateTransition:
    """Validate, record and perform a single state transition.

    Args:
        repository: Transition storage and item mover
        params: Item identity plus from/to states
        approval_repository: Approval ledger, required when entering APPROVED
        approval: Approval context; falls back to ``params.metadata["approval"]``
            and then to an AUTOMATIC approval

    Returns:
        The recorded transition

    Raises:
        InvalidTransitionError: If ``to_state`` does not directly follow ``from_state``
        ApprovalError: If a MANUAL approval is requested without an operator
    """
    assert_valid_transition(params.from_state, params.to_state)

    entering_approved = params.to_state == LifecycleState.APPROVED
    approval_context = None
    if entering_approved:
        if approval_repository is None:
            raise ValueError("approval_repository is required when entering APPROVED")
        approval_context = _resolve_approval(params, approval)
        if approval_context.approval_type == ApprovalType.MANUAL and not approval_context.operator_id:
            raise ApprovalError("Manual approval requires operator ID")

    transition = await repository.record_transition(params)
    await repository.move_item_to_state(
        params.item_id,
        params.item_type,
        params.from_state,
        params.to_state,
        params.metadata,
    )
    logger.info(
        f"Transitioned {params.item_type}:{params.item_id} "
        f"{params.from_state.value} -> {params.to_state.value}"
    )

    if entering_approved:
        await record_approval(
            approval_repository,
            CreateApprovalParams(
                item_id=params.item_id,
                item_type=params.item_type,
                operator_id=approval_context.operator_id,
                approval_type=approval_context.approval_type,
                notes=approval_context.notes,
            ),
        )

    return transition
