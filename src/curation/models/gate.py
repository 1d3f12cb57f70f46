"""Pydantic models for quality-gate inputs, results and persisted records.

Every gate reads a ``GateInput``. Gates that need more than the base fields
declare an extension model (``CEFRValidationInput``, ``ContentSafetyInput``,
``PrerequisiteValidationInput``) and narrow the incoming input to it, pulling
the extra fields either from the instance itself or from ``metadata``.
"""

from datetime import UTC, datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.curation.models.enums import CEFRLevel, GateStatus, ValidationStatus


# ============================================================================
# Gate inputs
# ============================================================================


class GateInput(BaseModel):
    """Normalized unit every gate operates on. Immutable for one gate run."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Primary text checked by the gates")
    language: str = Field(..., description="Language code, upper-cased: EN, ES, IT, PT, SL")
    content_type: str = Field(..., description="Data type: meaning, utterance, rule, exercise")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        return v.strip().upper()


class CEFRValidationInput(GateInput):
    """Extended view read by the CEFR consistency gate."""

    level: CEFRLevel
    word_length: Optional[int] = Field(None, ge=0)
    frequency_rank: Optional[int] = Field(None, ge=0)
    explanation_text: Optional[str] = None
    grammar_topic: Optional[str] = None


class ContentSafetyInput(GateInput):
    """Extended view read by the content safety gate.

    ``texts_to_check`` lists every user-visible string of the item (examples,
    translations, options). Falls back to ``text`` when empty.
    """

    texts_to_check: List[str] = Field(default_factory=list)


class PrerequisiteValidationInput(GateInput):
    """Extended view read by the prerequisite validation gate."""

    item_id: str
    level: CEFRLevel
    prerequisites: List[str] = Field(default_factory=list)


# ============================================================================
# Results
# ============================================================================


class QualityGateResult(BaseModel):
    """Outcome of one gate check. Produced fresh on every check."""

    model_config = ConfigDict(frozen=True)

    passed: bool
    gate_name: str
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    execution_time_ms: Optional[float] = None


class GateRunnerResult(BaseModel):
    all_passed: bool
    results: List[QualityGateResult] = Field(default_factory=list)
    failed_at: Optional[str] = Field(
        None, description="Name of the first failing gate, if any"
    )
    execution_time_ms: float = 0.0


class PrerequisiteInfo(BaseModel):
    """Read-only projection of a catalog item used for prerequisite checks."""

    id: str
    level: CEFRLevel
    language: str


class SimilarMatch(BaseModel):
    id: str
    text: str
    similarity: float = Field(..., ge=0.0, le=1.0)


# ============================================================================
# Failure recording
# ============================================================================


class RecordResultParams(BaseModel):
    entity_type: str
    entity_id: str
    gate_name: str
    status: GateStatus
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    attempt_number: int = Field(..., ge=1)
    execution_time_ms: Optional[float] = None


class GateResultRecord(RecordResultParams):
    """Persisted, append-only form of a gate result."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ValidationStatusReport(BaseModel):
    status: ValidationStatus
    attempt_number: int = 0
    can_retry: bool = False
    failures: List[GateResultRecord] = Field(default_factory=list)


class ValidationWithRetryResult(BaseModel):
    """Report returned by both automatic and manual retry entry points."""

    success: bool
    attempt_number: int
    failed_gates: List[str] = Field(default_factory=list)
    results: List[QualityGateResult] = Field(default_factory=list)
    can_retry: bool = False
