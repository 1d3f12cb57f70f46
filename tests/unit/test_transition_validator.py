"""Unit tests for the lifecycle transition graph."""

import itertools

import pytest

from src.curation.errors import InvalidTransitionError
from src.curation.lifecycle import (
    STATE_ORDER,
    VALID_TRANSITIONS,
    assert_valid_transition,
    can_transition,
    get_next_valid_states,
    get_state_order,
    is_state_after,
    is_terminal_state,
    is_valid_transition,
)
from src.curation.models.enums import LifecycleState

DRAFT = LifecycleState.DRAFT
CANDIDATE = LifecycleState.CANDIDATE
VALIDATED = LifecycleState.VALIDATED
APPROVED = LifecycleState.APPROVED

ALLOWED = {(DRAFT, CANDIDATE), (CANDIDATE, VALIDATED), (VALIDATED, APPROVED)}


class TestIsValidTransition:
    """Tests for the transition predicate."""

    @pytest.mark.parametrize(
        "from_state,to_state", list(itertools.product(LifecycleState, repeat=2))
    )
    def test_only_forward_single_steps_are_allowed(self, from_state, to_state):
        """Test exactly the three forward edges are valid."""
        assert is_valid_transition(from_state, to_state) == ((from_state, to_state) in ALLOWED)

    def test_accepts_string_values(self):
        """Test states given as plain strings are coerced."""
        assert is_valid_transition("DRAFT", "CANDIDATE") is True
        assert is_valid_transition("DRAFT", "APPROVED") is False

    def test_transition_graph_is_read_only(self):
        """Test the transition table cannot be modified at runtime."""
        with pytest.raises(TypeError):
            VALID_TRANSITIONS[APPROVED] = (DRAFT,)


class TestAssertValidTransition:
    """Tests for the raising variant."""

    def test_valid_transition_returns_none(self):
        assert assert_valid_transition(CANDIDATE, VALIDATED) is None

    def test_skip_raises_with_both_states(self):
        """Test skipping a stage names both states."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            assert_valid_transition(DRAFT, APPROVED)

        assert str(exc_info.value) == "Invalid transition from DRAFT to APPROVED"
        assert exc_info.value.from_state == DRAFT
        assert exc_info.value.to_state == APPROVED

    def test_backward_transition_raises(self):
        with pytest.raises(InvalidTransitionError, match="from APPROVED to DRAFT"):
            assert_valid_transition(APPROVED, DRAFT)

    def test_self_transition_raises(self):
        with pytest.raises(InvalidTransitionError):
            assert_valid_transition(VALIDATED, VALIDATED)


class TestStateQueries:
    """Tests for next-state, terminal and ordering helpers."""

    @pytest.mark.parametrize(
        "state,expected",
        [
            (DRAFT, [CANDIDATE]),
            (CANDIDATE, [VALIDATED]),
            (VALIDATED, [APPROVED]),
            (APPROVED, []),
        ],
    )
    def test_get_next_valid_states(self, state, expected):
        assert get_next_valid_states(state) == expected

    def test_approved_is_the_only_terminal_state(self):
        assert [s for s in LifecycleState if is_terminal_state(s)] == [APPROVED]

    def test_can_transition_is_inverse_of_terminal(self):
        for state in LifecycleState:
            assert can_transition(state) is not is_terminal_state(state)

    def test_state_order(self):
        assert [get_state_order(s) for s in (DRAFT, CANDIDATE, VALIDATED, APPROVED)] == [0, 1, 2, 3]
        assert len(STATE_ORDER) == 4

    def test_is_state_after(self):
        assert is_state_after(APPROVED, DRAFT) is True
        assert is_state_after(CANDIDATE, VALIDATED) is False
        assert is_state_after(VALIDATED, VALIDATED) is False
