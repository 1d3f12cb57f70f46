from src.curation.repositories.memory import (
    InMemoryApprovalEventRepository,
    InMemoryDeprecationRepository,
    InMemoryDuplicationRepository,
    InMemoryFailureRecorderRepository,
    InMemoryPrerequisiteRepository,
    InMemoryTransitionRepository,
    InMemoryViolationRepository,
)

__all__ = [
    "InMemoryApprovalEventRepository",
    "InMemoryDeprecationRepository",
    "InMemoryDuplicationRepository",
    "InMemoryFailureRecorderRepository",
    "InMemoryPrerequisiteRepository",
    "InMemoryTransitionRepository",
    "InMemoryViolationRepository",
]
