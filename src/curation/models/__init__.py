from src.curation.models.enums import (
    ApprovalType,
    AttemptedOperation,
    CEFRLevel,
    DataType,
    ExerciseType,
    GateStatus,
    GateTier,
    Language,
    LifecycleState,
    ValidationStatus,
)
from src.curation.models.gate import (
    CEFRValidationInput,
    ContentSafetyInput,
    GateInput,
    GateResultRecord,
    GateRunnerResult,
    PrerequisiteInfo,
    PrerequisiteValidationInput,
    QualityGateResult,
    RecordResultParams,
    SimilarMatch,
    ValidationStatusReport,
    ValidationWithRetryResult,
)
from src.curation.models.lifecycle import (
    ApprovalEventRecord,
    ApprovalMetadata,
    ApprovalStats,
    CreateApprovalParams,
    DeprecationParams,
    DeprecationRecord,
    StateTransition,
    TransitionParams,
    ViolationParams,
    ViolationRecord,
)

__all__ = [
    "ApprovalEventRecord",
    "ApprovalMetadata",
    "ApprovalStats",
    "ApprovalType",
    "AttemptedOperation",
    "CEFRLevel",
    "CEFRValidationInput",
    "ContentSafetyInput",
    "CreateApprovalParams",
    "DataType",
    "DeprecationParams",
    "DeprecationRecord",
    "ExerciseType",
    "GateInput",
    "GateResultRecord",
    "GateRunnerResult",
    "GateStatus",
    "GateTier",
    "Language",
    "LifecycleState",
    "PrerequisiteInfo",
    "PrerequisiteValidationInput",
    "QualityGateResult",
    "RecordResultParams",
    "SimilarMatch",
    "StateTransition",
    "TransitionParams",
    "ValidationStatus",
    "ValidationStatusReport",
    "ValidationWithRetryResult",
    "ViolationParams",
    "ViolationRecord",
]
