"""Enumerations shared by the lifecycle and quality-gate modules."""

from enum import Enum, IntEnum


class Language(str, Enum):
    """Corpus languages (upper-case ISO 639-1)."""

    EN = "EN"
    IT = "IT"
    PT = "PT"
    SL = "SL"
    ES = "ES"


class CEFRLevel(str, Enum):
    """CEFR proficiency level, A0 (pre-beginner) through C2."""

    A0 = "A0"
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


class LifecycleState(str, Enum):
    """The four stages an item moves through, in order."""

    DRAFT = "DRAFT"
    CANDIDATE = "CANDIDATE"
    VALIDATED = "VALIDATED"
    APPROVED = "APPROVED"


class DataType(str, Enum):
    """Kind of linguistic item carried through the pipeline."""

    MEANING = "meaning"
    UTTERANCE = "utterance"
    RULE = "rule"
    EXERCISE = "exercise"


class ExerciseType(str, Enum):
    FLASHCARD = "flashcard"
    MULTIPLE_CHOICE = "multiple_choice"
    CLOZE = "cloze"
    TRANSLATION = "translation"
    DICTATION = "dictation"


class ApprovalType(str, Enum):
    AUTOMATIC = "AUTOMATIC"
    MANUAL = "MANUAL"


class GateTier(IntEnum):
    """Execution band for a gate. Lower tiers run first."""

    FAST = 1
    DATABASE = 2
    EXTERNAL = 3


class GateStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class ValidationStatus(str, Enum):
    """Status derived from the latest recorded attempt."""

    NOT_VALIDATED = "not_validated"
    PASSED = "passed"
    FAILED = "failed"


class AttemptedOperation(str, Enum):
    UPDATE = "UPDATE"
    DELETE = "DELETE"
