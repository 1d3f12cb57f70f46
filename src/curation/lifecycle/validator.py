"""Pure lookups over the transition graph."""

from typing import List

from src.curation.errors import InvalidTransitionError
from src.curation.lifecycle.states import STATE_ORDER, VALID_TRANSITIONS
from src.curation.models.enums import LifecycleState


def is_valid_transition(from_state: LifecycleState, to_state: LifecycleState) -> bool:
    return LifecycleState(to_state) in VALID_TRANSITIONS[LifecycleState(from_state)]


def assert_valid_transition(from_state: LifecycleState, to_state: LifecycleState) -> None:
    """Raise ``InvalidTransitionError`` unless ``to_state`` directly follows ``from_state``."""
    if not is_valid_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)


def get_next_valid_states(current: LifecycleState) -> List[LifecycleState]:
    return list(VALID_TRANSITIONS[LifecycleState(current)])


def is_terminal_state(state: LifecycleState) -> bool:
    return len(VALID_TRANSITIONS[LifecycleState(state)]) == 0


def can_transition(from_state: LifecycleState) -> bool:
    return not is_terminal_state(from_state)


def get_state_order(state: LifecycleState) -> int:
    """Position of ``state`` in the lifecycle, 0 (DRAFT) through 3 (APPROVED)."""
    return STATE_ORDER[LifecycleState(state)]


def is_state_after(state: LifecycleState, reference_state: LifecycleState) -> bool:
    return get_state_order(state) > get_state_order(reference_state)
