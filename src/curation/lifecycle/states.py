"""Lifecycle states and the fixed transition graph.

DRAFT -> CANDIDATE -> VALIDATED -> APPROVED. APPROVED is terminal; there are
no backward or skipping edges.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

from src.curation.errors import InvalidTransitionError
from src.curation.models.enums import LifecycleState
from src.curation.models.lifecycle import StateTransition

VALID_TRANSITIONS: Mapping[LifecycleState, Tuple[LifecycleState, ...]] = MappingProxyType(
    {
        LifecycleState.DRAFT: (LifecycleState.CANDIDATE,),
        LifecycleState.CANDIDATE: (LifecycleState.VALIDATED,),
        LifecycleState.VALIDATED: (LifecycleState.APPROVED,),
        LifecycleState.APPROVED: (),
    }
)

STATE_ORDER: Mapping[LifecycleState, int] = MappingProxyType(
    {
        LifecycleState.DRAFT: 0,
        LifecycleState.CANDIDATE: 1,
        LifecycleState.VALIDATED: 2,
        LifecycleState.APPROVED: 3,
    }
)

__all__ = [
    "InvalidTransitionError",
    "LifecycleState",
    "STATE_ORDER",
    "StateTransition",
    "VALID_TRANSITIONS",
]
