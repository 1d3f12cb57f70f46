"""Pydantic schemas for pipeline payloads.

Each data type (meaning, utterance, rule, exercise) has a payload schema that
a Candidate must satisfy before any quality gate runs. Schema failures are
reported field by field as ``ValidationIssue`` entries.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from src.curation.errors import SchemaValidationError, ValidationIssue
from src.curation.models.enums import CEFRLevel, DataType, ExerciseType, Language

T = TypeVar("T", bound=BaseModel)


# ============================================================================
# Payload schemas
# ============================================================================


class _LanguagePayload(BaseModel):
    language: Language

    @field_validator("language", mode="before")
    @classmethod
    def upper_language(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class MeaningPayload(_LanguagePayload):
    """A vocabulary word with its learner-facing definition."""

    word: str = Field(..., min_length=1, max_length=100)
    definition: str = Field(..., min_length=5, max_length=1000)
    level: CEFRLevel
    frequency_rank: Optional[int] = Field(None, ge=1)
    semantic_domain: Optional[str] = Field(None, max_length=100)
    tags: List[str] = Field(default_factory=list, max_length=20)
    prerequisites: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("tags")
    @classmethod
    def validate_tag_length(cls, v: List[str]) -> List[str]:
        for tag in v:
            if len(tag) > 50:
                raise ValueError(f"tag too long (max 50 characters): {tag[:20]}...")
        return v


class UtterancePayload(_LanguagePayload):
    """An example sentence tied to a meaning."""

    text: str = Field(..., min_length=1, max_length=1000)
    meaning_id: str = Field(..., min_length=1, max_length=100)
    translation: Optional[str] = Field(None, max_length=1000)
    level: Optional[CEFRLevel] = None
    pronunciation: Optional[str] = Field(None, max_length=500)
    audio_url: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)


class RuleExample(BaseModel):
    correct: str = Field(..., min_length=1, max_length=500)
    incorrect: Optional[str] = Field(None, max_length=500)
    translation: Optional[str] = Field(None, max_length=500)


class GrammarRulePayload(_LanguagePayload):
    """A grammar rule with explanation and worked examples."""

    title: str = Field(..., min_length=1, max_length=200)
    explanation: str = Field(..., min_length=10, max_length=10000)
    level: CEFRLevel
    category: str = Field("grammar", min_length=1, max_length=100)
    examples: List[RuleExample] = Field(..., min_length=1, max_length=50)
    prerequisites: List[str] = Field(default_factory=list, max_length=20)


class ExercisePayload(_LanguagePayload):
    """A multiple-option exercise."""

    type: ExerciseType = ExerciseType.MULTIPLE_CHOICE
    prompt: str = Field(..., min_length=1, max_length=2000)
    options: List[str] = Field(..., min_length=1, max_length=10)
    correct_index: int
    level: CEFRLevel
    hints: List[str] = Field(default_factory=list, max_length=5)
    prerequisites: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        if any(not option.strip() for option in v):
            raise ValueError("All exercise options must be non-empty strings")
        if len(set(v)) != len(v):
            raise ValueError("Exercise options must be unique")
        return v

    @model_validator(mode="after")
    def validate_correct_index(self) -> "ExercisePayload":
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(f"Correct answer index {self.correct_index} is out of range")
        return self


class DraftData(BaseModel):
    """Raw payload as delivered by ingestion."""

    data_type: DataType
    raw_data: Dict[str, Any]
    source: str = Field(..., min_length=1, max_length=100)


class CandidateData(BaseModel):
    data_type: DataType
    normalized_data: Dict[str, Any]
    draft_id: str = Field(..., min_length=1)


PAYLOAD_SCHEMAS: Dict[DataType, Type[BaseModel]] = {
    DataType.MEANING: MeaningPayload,
    DataType.UTTERANCE: UtterancePayload,
    DataType.RULE: GrammarRulePayload,
    DataType.EXERCISE: ExercisePayload,
}


# ============================================================================
# Validation helpers
# ============================================================================


class SchemaValidationResult(BaseModel):
    valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    data: Optional[Any] = None


def issues_from_error(error: ValidationError) -> List[ValidationIssue]:
    """Convert a pydantic ``ValidationError`` into field-level issues."""
    issues = []
    for err in error.errors():
        ctx = err.get("ctx") or {}
        expected = ctx.get("expected")
        received = err.get("input")
        issues.append(
            ValidationIssue(
                field=".".join(str(part) for part in err.get("loc", ())) or "__root__",
                message=err["msg"],
                code=err["type"],
                expected=str(expected) if expected is not None else None,
                received=repr(received)[:100] if received is not None else None,
            )
        )
    return issues


def validate_schema(schema: Type[T], data: Any) -> SchemaValidationResult:
    try:
        parsed = schema.model_validate(data)
    except ValidationError as e:
        return SchemaValidationResult(valid=False, errors=issues_from_error(e))
    return SchemaValidationResult(valid=True, data=parsed)


def validate_or_raise(schema: Type[T], data: Any) -> T:
    """Parse ``data`` with ``schema``.

    Raises:
        SchemaValidationError: With one issue per invalid field
    """
    result = validate_schema(schema, data)
    if not result.valid:
        raise SchemaValidationError(result.errors)
    return result.data


def is_valid_schema(schema: Type[T], data: Any) -> bool:
    return validate_schema(schema, data).valid


def get_payload_schema(data_type: DataType) -> Type[BaseModel]:
    return PAYLOAD_SCHEMAS[DataType(data_type)]


# Field holding the text that gates check, per data type.
PRIMARY_TEXT_FIELDS: Dict[DataType, str] = {
    DataType.MEANING: "word",
    DataType.UTTERANCE: "text",
    DataType.RULE: "title",
    DataType.EXERCISE: "prompt",
}


def get_primary_text(data_type: DataType, payload: Dict[str, Any]) -> str:
    return str(payload.get(PRIMARY_TEXT_FIELDS[DataType(data_type)], "") or "")
