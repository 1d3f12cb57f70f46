from src.curation.pipeline.base import ItemStore
from src.curation.pipeline.gate_input import build_gate_input
from src.curation.pipeline.normalization import NormalizationStep, StepResult
from src.curation.pipeline.orchestrator import (
    CurationPipeline,
    PipelineResult,
    requires_manual_review,
)

__all__ = [
    "CurationPipeline",
    "ItemStore",
    "NormalizationStep",
    "PipelineResult",
    "StepResult",
    "build_gate_input",
    "requires_manual_review",
]
