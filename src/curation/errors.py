"""Domain errors raised by the curation core.

Gate failures are never raised; they are returned as ``QualityGateResult``
data. The errors below signal protocol violations and propagate to callers.
"""

from typing import List, Optional

from pydantic import BaseModel

from src.curation.models.enums import AttemptedOperation, LifecycleState


class CurationError(Exception):
    """Base class for all curation errors."""


class InvalidTransitionError(CurationError):
    def __init__(self, from_state: LifecycleState, to_state: LifecycleState):
        self.from_state = LifecycleState(from_state)
        self.to_state = LifecycleState(to_state)
        super().__init__(
            f"Invalid transition from {self.from_state.value} to {self.to_state.value}"
        )


class ImmutabilityViolationError(CurationError):
    def __init__(self, item_id: str, operation: AttemptedOperation):
        self.item_id = item_id
        self.operation = AttemptedOperation(operation)
        super().__init__(
            f"Cannot {self.operation.value.lower()} approved item {item_id}. "
            "Use deprecation instead."
        )


class ApprovalError(CurationError):
    pass


class DeprecationError(CurationError):
    pass


class MaxRetriesReachedError(CurationError):
    def __init__(self, entity_type: str, entity_id: str, max_attempts: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.max_attempts = max_attempts
        super().__init__(
            f"Maximum retry attempts ({max_attempts}) reached for {entity_type}:{entity_id}"
        )


class FailureRecordingError(CurationError):
    def __init__(self, message: str, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message)


class ValidationIssue(BaseModel):
    """Field-level problem found while validating a payload schema."""

    field: str
    message: str
    code: str
    expected: Optional[str] = None
    received: Optional[str] = None


class SchemaValidationError(CurationError):
    def __init__(self, issues: List[ValidationIssue]):
        self.issues = list(issues)
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues)
        super().__init__(f"Schema validation failed: {summary}")
