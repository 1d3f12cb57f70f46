from src.curation.lifecycle.approval_events import (
    ApprovalEventRepository,
    get_approval_history,
    is_approved,
    record_approval,
)
from src.curation.lifecycle.deprecation import (
    DeprecationRepository,
    deprecate_item,
    get_active_replacement,
    get_replacement_chain,
)
from src.curation.lifecycle.immutability import (
    ViolationRepository,
    assert_mutable,
    guard_mutation,
)
from src.curation.lifecycle.states import STATE_ORDER, VALID_TRANSITIONS
from src.curation.lifecycle.transition_service import (
    TransitionRepository,
    execute_transition,
    get_table_for_state,
)
from src.curation.lifecycle.validator import (
    assert_valid_transition,
    can_transition,
    get_next_valid_states,
    get_state_order,
    is_state_after,
    is_terminal_state,
    is_valid_transition,
)

__all__ = [
    "ApprovalEventRepository",
    "DeprecationRepository",
    "STATE_ORDER",
    "TransitionRepository",
    "VALID_TRANSITIONS",
    "ViolationRepository",
    "assert_mutable",
    "assert_valid_transition",
    "can_transition",
    "deprecate_item",
    "execute_transition",
    "get_active_replacement",
    "get_approval_history",
    "get_next_valid_states",
    "get_replacement_chain",
    "get_state_order",
    "get_table_for_state",
    "guard_mutation",
    "is_approved",
    "is_state_after",
    "is_terminal_state",
    "is_valid_transition",
    "record_approval",
]
