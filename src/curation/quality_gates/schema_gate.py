"""Structural validation of the candidate payload as a gate.

Runs first in the FAST tier so malformed payloads never reach the other
checks. The payload is read from ``metadata["payload"]``.
"""

from src.curation.models.enums import DataType, GateTier
from src.curation.models.gate import GateInput, QualityGateResult
from src.curation.quality_gates.base import QualityGate
from src.curation.validators.schema import get_payload_schema, validate_schema


class SchemaValidationGate(QualityGate):
    name = "schema-validation"
    tier = GateTier.FAST

    async def check(self, gate_input: GateInput) -> QualityGateResult:
        try:
            schema = get_payload_schema(DataType(gate_input.content_type))
        except ValueError:
            return self.failed(f"Unknown data type: {gate_input.content_type}")

        payload = gate_input.metadata.get("payload")
        if payload is None:
            return self.failed("No payload supplied for schema validation")

        result = validate_schema(schema, payload)
        if not result.valid:
            return self.failed(
                f"Schema validation failed for {gate_input.content_type}",
                details={"issues": [issue.model_dump(exclude_none=True) for issue in result.errors]},
            )

        return self.passed()


def create_schema_validation_gate() -> SchemaValidationGate:
    return SchemaValidationGate()
