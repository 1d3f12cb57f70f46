"""Pydantic models for transitions, approvals, deprecations and violations."""

from datetime import UTC, datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.curation.models.enums import ApprovalType, AttemptedOperation, LifecycleState


def _now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid4())


class TransitionParams(BaseModel):
    item_id: str
    item_type: str
    from_state: LifecycleState
    to_state: LifecycleState
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StateTransition(TransitionParams):
    """Recorded state transition. Append-only."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    timestamp: datetime = Field(default_factory=_now)


class ApprovalMetadata(BaseModel):
    """Optional approval context supplied when entering APPROVED."""

    approval_type: ApprovalType = ApprovalType.AUTOMATIC
    operator_id: Optional[str] = None
    notes: Optional[str] = None


class CreateApprovalParams(BaseModel):
    item_id: str
    item_type: str
    operator_id: Optional[str] = None
    approval_type: ApprovalType
    notes: Optional[str] = None


class ApprovalEventRecord(CreateApprovalParams):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    created_at: datetime = Field(default_factory=_now)


class ApprovalStats(BaseModel):
    total: int = 0
    manual: int = 0
    automatic: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)


class DeprecationParams(BaseModel):
    item_id: str
    item_type: str
    reason: str = Field(..., min_length=1)
    replacement_id: Optional[str] = None
    operator_id: str = Field(..., min_length=1)


class DeprecationRecord(DeprecationParams):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    deprecated_at: datetime = Field(default_factory=_now)


class ViolationParams(BaseModel):
    item_id: str
    item_type: str
    attempted_operation: AttemptedOperation
    user_id: Optional[str] = None


class ViolationRecord(ViolationParams):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    attempted_at: datetime = Field(default_factory=_now)
