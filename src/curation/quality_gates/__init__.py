from typing import List, Optional

from src.curation.quality_gates.base import QualityGate
from src.curation.quality_gates.cefr_gate import (
    CEFRConsistencyGate,
    create_cefr_consistency_gate,
    get_cefr_rank,
    is_level_higher_than,
)
from src.curation.quality_gates.content_safety_gate import (
    ContentSafetyGate,
    create_content_safety_gate,
)
from src.curation.quality_gates.duplication_gate import (
    DuplicationGate,
    DuplicationRepository,
    create_duplication_gate,
)
from src.curation.quality_gates.failure_recorder import (
    FailureRecorderRepository,
    get_validation_status,
    record_validation_run,
)
from src.curation.quality_gates.gate_runner import (
    get_failed_gates,
    get_passed_gates,
    run_gates,
    run_gates_by_tier,
)
from src.curation.quality_gates.language_standard_gate import (
    LanguageStandardGate,
    create_language_standard_gate,
)
from src.curation.quality_gates.orthography_gate import (
    OrthographyGate,
    create_orthography_gate,
)
from src.curation.quality_gates.prerequisite_gate import (
    PrerequisiteRepository,
    PrerequisiteValidationGate,
    create_prerequisite_validation_gate,
)
from src.curation.quality_gates.retry_logic import (
    NON_RETRYABLE_GATES,
    RetryConfig,
    RetryController,
    get_default_retry_config,
    is_retryable_failure,
    manual_retry,
    validate_with_retry,
)
from src.curation.quality_gates.schema_gate import (
    SchemaValidationGate,
    create_schema_validation_gate,
)


def create_default_gates(
    duplication_repository: Optional[DuplicationRepository] = None,
    prerequisite_repository: Optional[PrerequisiteRepository] = None,
    include_schema: bool = True,
) -> List[QualityGate]:
    """Build the standard gate set, cheapest gates first.

    Database-backed gates are included only when their repository is given.
    """
    gates: List[QualityGate] = []
    if include_schema:
        gates.append(SchemaValidationGate())
    gates.extend(
        [
            ContentSafetyGate(),
            OrthographyGate(),
            LanguageStandardGate(),
            CEFRConsistencyGate(),
        ]
    )
    if duplication_repository is not None:
        gates.append(DuplicationGate(duplication_repository))
    if prerequisite_repository is not None:
        gates.append(PrerequisiteValidationGate(prerequisite_repository))
    return gates


__all__ = [
    "CEFRConsistencyGate",
    "ContentSafetyGate",
    "DuplicationGate",
    "DuplicationRepository",
    "FailureRecorderRepository",
    "LanguageStandardGate",
    "NON_RETRYABLE_GATES",
    "OrthographyGate",
    "PrerequisiteRepository",
    "PrerequisiteValidationGate",
    "QualityGate",
    "RetryConfig",
    "RetryController",
    "SchemaValidationGate",
    "create_cefr_consistency_gate",
    "create_content_safety_gate",
    "create_default_gates",
    "create_duplication_gate",
    "create_language_standard_gate",
    "create_orthography_gate",
    "create_prerequisite_validation_gate",
    "create_schema_validation_gate",
    "get_cefr_rank",
    "get_default_retry_config",
    "get_failed_gates",
    "get_passed_gates",
    "get_validation_status",
    "is_level_higher_than",
    "is_retryable_failure",
    "manual_retry",
    "record_validation_run",
    "run_gates",
    "run_gates_by_tier",
    "validate_with_retry",
]
