"""Base class for quality gates.

Provides:
- ``name`` / ``tier`` identity used by the runner and the retry policy
- Narrowing of a base ``GateInput`` to a gate-specific extension model
- Result helpers so every gate reports in the same shape
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, Optional, Type, TypeVar, Union

from pydantic import ValidationError

from src.curation.models.enums import GateTier
from src.curation.models.gate import GateInput, QualityGateResult

I = TypeVar("I", bound=GateInput)

GateCheckResult = Union[QualityGateResult, Awaitable[QualityGateResult]]


class QualityGate(ABC):
    """An independent automated check producing pass/fail plus reasons.

    Subclasses set ``name`` and ``tier`` and implement ``check``. ``check``
    must not mutate persisted state; database-backed gates only read through
    their injected repository.
    """

    name: str = ""
    tier: GateTier = GateTier.FAST

    @abstractmethod
    def check(self, gate_input: GateInput) -> GateCheckResult:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, tier={self.tier.name})"

    def narrow(self, gate_input: GateInput, model: Type[I]) -> I:
        """View ``gate_input`` as ``model``, taking extra fields from metadata.

        Raises:
            pydantic.ValidationError: If the extension fields are missing or invalid
        """
        if isinstance(gate_input, model):
            return gate_input
        data = {**gate_input.metadata, **gate_input.model_dump()}
        return model.model_validate(data)

    def passed(self, details: Optional[Dict[str, Any]] = None) -> QualityGateResult:
        return QualityGateResult(passed=True, gate_name=self.name, details=details)

    def failed(
        self, reason: str, details: Optional[Dict[str, Any]] = None
    ) -> QualityGateResult:
        return QualityGateResult(
            passed=False, gate_name=self.name, reason=reason, details=details
        )

    def invalid_input(self, error: ValidationError) -> QualityGateResult:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in error.errors()})
        return self.failed(
            f"Invalid input for {self.name}: {', '.join(fields)}",
            details={"fields": fields},
        )
