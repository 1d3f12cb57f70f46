"""Curation pipeline orchestrator.

Moves items through Draft -> Candidate -> Validated -> Approved:

1. ``submit_draft`` stores a raw payload in the draft store
2. ``promote_to_candidate`` normalizes it and moves it to Candidate
3. ``validate_candidate`` runs the quality gates with retry and, on success,
   moves it to Validated with the gate results attached
4. ``approve`` records an automatic or manual approval and moves it to Approved

Approved items can only be deprecated; updates and deletes are refused and
audited.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, Field

from src.constants import AUTO_APPROVAL_ENABLED
from src.curation.errors import ApprovalError, DeprecationError
from src.curation.lifecycle.approval_events import ApprovalEventRepository
from src.curation.lifecycle.deprecation import DeprecationRepository, deprecate_item
from src.curation.lifecycle.immutability import ViolationRepository, guard_mutation
from src.curation.lifecycle.transition_service import execute_transition
from src.curation.models.enums import (
    ApprovalType,
    AttemptedOperation,
    DataType,
    LifecycleState,
)
from src.curation.models.gate import ValidationStatusReport, ValidationWithRetryResult
from src.curation.models.lifecycle import (
    ApprovalMetadata,
    DeprecationParams,
    DeprecationRecord,
    StateTransition,
    TransitionParams,
)
from src.curation.pipeline.base import ItemStore
from src.curation.pipeline.gate_input import build_gate_input
from src.curation.pipeline.normalization import NormalizationStep, StepResult
from src.curation.quality_gates.base import QualityGate
from src.curation.quality_gates.failure_recorder import (
    FailureRecorderRepository,
    get_validation_status,
)
from src.curation.quality_gates.retry_logic import (
    RetryConfig,
    RetryController,
    SleepFn,
    sleep_ms,
)
from src.curation.validators.schema import DraftData, validate_or_raise

logger = logging.getLogger(__name__)

# Data types that never auto-approve.
MANUAL_REVIEW_TYPES = frozenset({DataType.RULE, DataType.EXERCISE})

# Gates that need a declared CEFR level on the payload.
LEVEL_GATES = frozenset({"cefr-consistency"})


class PipelineResult(BaseModel):
    """Where an item ended up after ``process_draft``."""

    item_id: str
    item_type: str
    state: LifecycleState
    success: bool = Field(..., description="True when the item reached APPROVED")
    awaiting_review: bool = Field(
        False, description="Validated but needs a manual operator to approve"
    )
    attempt_number: int = 0
    failed_gates: List[str] = Field(default_factory=list)
    reasons: Dict[str, str] = Field(default_factory=dict, description="Gate name -> failure reason")
    errors: List[str] = Field(default_factory=list)


def requires_manual_review(
    item_type: str, auto_approval_enabled: bool = AUTO_APPROVAL_ENABLED
) -> bool:
    return not auto_approval_enabled or DataType(item_type) in MANUAL_REVIEW_TYPES


class CurationPipeline:
    """Drives items through the lifecycle using injected repositories."""

    def __init__(
        self,
        store: ItemStore,
        failure_repository: FailureRecorderRepository,
        approval_repository: ApprovalEventRepository,
        deprecation_repository: DeprecationRepository,
        violation_repository: ViolationRepository,
        gates: Sequence[QualityGate],
        retry_config: Optional[RetryConfig] = None,
        tiered: bool = False,
        auto_approval_enabled: bool = AUTO_APPROVAL_ENABLED,
        sleep: SleepFn = sleep_ms,
    ):
        """Initialize the pipeline.

        Args:
            store: Item storage; also records transitions
            failure_repository: Gate result storage used by the retry controller
            approval_repository: Approval ledger
            deprecation_repository: Deprecation ledger
            violation_repository: Audit log for refused mutations
            gates: Quality gates run on every candidate
            retry_config: Retry budget and schedule (default from constants)
            tiered: Run gates tier by tier (default: sequential)
            auto_approval_enabled: Allow meanings and utterances to auto-approve
            sleep: Coroutine taking a delay in milliseconds
        """
        self.store = store
        self.approval_repository = approval_repository
        self.deprecation_repository = deprecation_repository
        self.violation_repository = violation_repository
        self.gates = list(gates)
        self.auto_approval_enabled = auto_approval_enabled
        self.normalizer = NormalizationStep()
        self.retry_controller = RetryController(
            failure_repository, retry_config, tiered=tiered, sleep=sleep
        )

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _require_state(
        self, item_id: str, item_type: str, expected: LifecycleState
    ) -> Dict[str, Any]:
        found = await self.store.find_item(item_id, item_type)
        if found is None:
            raise LookupError(f"Item {item_id} not found")
        state, row = found
        if state != expected:
            raise ValueError(
                f"Item {item_id} is {state.value}, expected {expected.value}"
            )
        return row

    def _gates_for(self, payload: Dict[str, Any]) -> List[QualityGate]:
        if payload.get("level"):
            return self.gates
        return [g for g in self.gates if g.name not in LEVEL_GATES]

    async def _move(
        self,
        item_id: str,
        item_type: str,
        from_state: LifecycleState,
        to_state: LifecycleState,
        metadata: Optional[Dict[str, Any]] = None,
        approval: Optional[ApprovalMetadata] = None,
    ) -> StateTransition:
        return await execute_transition(
            self.store,
            TransitionParams(
                item_id=item_id,
                item_type=item_type,
                from_state=from_state,
                to_state=to_state,
                metadata=metadata or {},
            ),
            approval_repository=self.approval_repository,
            approval=approval,
        )

    # ========================================================================
    # Stages
    # ========================================================================

    async def submit_draft(
        self,
        item_type: str,
        payload: Dict[str, Any],
        source: str = "manual",
        item_id: Optional[str] = None,
    ) -> str:
        """Store a raw payload as a draft.

        Raises:
            SchemaValidationError: If the envelope (type, source) is invalid
        """
        draft = validate_or_raise(
            DraftData, {"data_type": item_type, "raw_data": payload, "source": source}
        )
        item_id = item_id or str(uuid4())
        await self.store.add_draft(item_id, draft.data_type.value, draft.raw_data, draft.source)
        logger.info(f"Submitted draft {draft.data_type.value}:{item_id} from {source}")
        return item_id

    async def promote_to_candidate(self, item_id: str, item_type: str) -> StepResult:
        """Normalize a draft and move it to Candidate.

        A draft that fails normalization stays in the draft store.
        """
        row = await self._require_state(item_id, item_type, LifecycleState.DRAFT)
        result = self.normalizer.normalize(item_type, row["payload"])
        if not result.success:
            logger.warning(f"Draft {item_type}:{item_id} rejected: {'; '.join(result.errors)}")
            return result

        await self.store.update_payload(item_id, item_type, result.data)
        await self._move(item_id, item_type, LifecycleState.DRAFT, LifecycleState.CANDIDATE)
        return result

    async def _finish_validation(
        self, item_id: str, item_type: str, outcome: ValidationWithRetryResult
    ) -> ValidationWithRetryResult:
        if outcome.success:
            await self._move(
                item_id,
                item_type,
                LifecycleState.CANDIDATE,
                LifecycleState.VALIDATED,
                metadata={
                    "attempt_number": outcome.attempt_number,
                    "gate_results": [r.model_dump() for r in outcome.results],
                },
            )
        else:
            logger.warning(
                f"Candidate {item_type}:{item_id} failed validation "
                f"(attempt {outcome.attempt_number}): {outcome.failed_gates}"
            )
        return outcome

    async def validate_candidate(self, item_id: str, item_type: str) -> ValidationWithRetryResult:
        """Run the quality gates with automatic retry.

        On success the item moves to Validated; otherwise it stays a
        Candidate and every attempt is in the failure recorder. Only the
        attempts left in the retry budget are run.

        Raises:
            MaxRetriesReachedError: If the retry budget is already spent
        """
        row = await self._require_state(item_id, item_type, LifecycleState.CANDIDATE)
        payload = row["payload"]
        gate_input = build_gate_input(item_id, item_type, payload)
        outcome = await self.retry_controller.validate_with_retry(
            self._gates_for(payload), gate_input, item_type, item_id
        )
        return await self._finish_validation(item_id, item_type, outcome)

    async def retry_candidate(self, item_id: str, item_type: str) -> ValidationWithRetryResult:
        """Operator-triggered single validation attempt.

        Raises:
            MaxRetriesReachedError: If the retry budget is already spent
        """
        row = await self._require_state(item_id, item_type, LifecycleState.CANDIDATE)
        payload = row["payload"]
        gate_input = build_gate_input(item_id, item_type, payload)
        outcome = await self.retry_controller.manual_retry(
            self._gates_for(payload), gate_input, item_type, item_id
        )
        return await self._finish_validation(item_id, item_type, outcome)

    async def validation_status(self, item_id: str, item_type: str) -> ValidationStatusReport:
        """Latest validation outcome, judged against this pipeline's retry budget."""
        return await get_validation_status(
            self.retry_controller.repository,
            item_type,
            item_id,
            max_attempts=self.retry_controller.config.max_attempts,
        )

    async def approve(
        self,
        item_id: str,
        item_type: str,
        operator_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StateTransition:
        """Approve a validated item.

        With an operator the approval is MANUAL; without one it is AUTOMATIC,
        which is only allowed when auto-approval is enabled and the data type
        does not require review.

        Raises:
            ApprovalError: If automatic approval is not allowed for the item
        """
        await self._require_state(item_id, item_type, LifecycleState.VALIDATED)

        if operator_id:
            approval = ApprovalMetadata(
                approval_type=ApprovalType.MANUAL, operator_id=operator_id, notes=notes
            )
        elif requires_manual_review(item_type, self.auto_approval_enabled):
            raise ApprovalError(f"{item_type} {item_id} requires manual approval by an operator")
        else:
            approval = ApprovalMetadata(approval_type=ApprovalType.AUTOMATIC, notes=notes)

        return await self._move(
            item_id,
            item_type,
            LifecycleState.VALIDATED,
            LifecycleState.APPROVED,
            metadata={"approval": approval.model_dump(mode="json")},
            approval=approval,
        )

    # ========================================================================
    # Approved items
    # ========================================================================

    async def deprecate(
        self,
        item_id: str,
        item_type: str,
        reason: str,
        operator_id: str,
        replacement_id: Optional[str] = None,
    ) -> DeprecationRecord:
        """Retire an approved item, optionally pointing at its replacement.

        Raises:
            DeprecationError: If the item is not approved or already deprecated
        """
        found = await self.store.find_item(item_id, item_type)
        if found is None or found[0] != LifecycleState.APPROVED:
            raise DeprecationError(f"Only approved items can be deprecated: {item_id}")

        return await deprecate_item(
            self.deprecation_repository,
            DeprecationParams(
                item_id=item_id,
                item_type=item_type,
                reason=reason,
                operator_id=operator_id,
                replacement_id=replacement_id,
            ),
        )

    async def _guard(
        self, item_id: str, item_type: str, operation: AttemptedOperation, user_id: Optional[str]
    ) -> None:
        found = await self.store.find_item(item_id, item_type)
        if found is None:
            raise LookupError(f"Item {item_id} not found")
        await guard_mutation(
            self.violation_repository,
            found[0] == LifecycleState.APPROVED,
            item_id,
            item_type,
            operation,
            user_id=user_id,
        )

    async def update_item(
        self,
        item_id: str,
        item_type: str,
        payload: Dict[str, Any],
        user_id: Optional[str] = None,
    ) -> None:
        """Replace the payload of a pre-approval item.

        Raises:
            ImmutabilityViolationError: If the item is approved
        """
        await self._guard(item_id, item_type, AttemptedOperation.UPDATE, user_id)
        await self.store.update_payload(item_id, item_type, payload)

    async def delete_item(self, item_id: str, item_type: str, user_id: Optional[str] = None) -> None:
        """Delete a pre-approval item.

        Raises:
            ImmutabilityViolationError: If the item is approved
        """
        await self._guard(item_id, item_type, AttemptedOperation.DELETE, user_id)
        await self.store.delete_item(item_id, item_type)

    # ========================================================================
    # Full chain
    # ========================================================================

    async def process_draft(
        self, item_id: str, item_type: str, operator_id: Optional[str] = None
    ) -> PipelineResult:
        """Run a stored draft as far through the lifecycle as it can go."""
        promotion = await self.promote_to_candidate(item_id, item_type)
        if not promotion.success:
            return PipelineResult(
                item_id=item_id,
                item_type=item_type,
                state=LifecycleState.DRAFT,
                success=False,
                errors=promotion.errors,
            )

        outcome = await self.validate_candidate(item_id, item_type)
        if not outcome.success:
            return PipelineResult(
                item_id=item_id,
                item_type=item_type,
                state=LifecycleState.CANDIDATE,
                success=False,
                attempt_number=outcome.attempt_number,
                failed_gates=outcome.failed_gates,
                reasons={r.gate_name: r.reason or "" for r in outcome.results if not r.passed},
            )

        if not operator_id and requires_manual_review(item_type, self.auto_approval_enabled):
            logger.info(f"{item_type}:{item_id} validated; awaiting manual approval")
            return PipelineResult(
                item_id=item_id,
                item_type=item_type,
                state=LifecycleState.VALIDATED,
                success=False,
                awaiting_review=True,
                attempt_number=outcome.attempt_number,
            )

        await self.approve(item_id, item_type, operator_id=operator_id)
        return PipelineResult(
            item_id=item_id,
            item_type=item_type,
            state=LifecycleState.APPROVED,
            success=True,
            attempt_number=outcome.attempt_number,
        )
