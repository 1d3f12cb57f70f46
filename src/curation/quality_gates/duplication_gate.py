"""Duplicate and near-duplicate detection against approved content."""

from abc import ABC, abstractmethod
from typing import List, Optional

from src.constants import SIMILARITY_THRESHOLD
from src.curation.models.enums import GateTier
from src.curation.models.gate import GateInput, QualityGateResult, SimilarMatch
from src.curation.quality_gates.base import QualityGate


class DuplicationRepository(ABC):
    @abstractmethod
    async def find_exact_match(
        self, text: str, language: str, content_type: str
    ) -> Optional[str]:
        """Return the id of approved content with exactly this text, if any."""
        pass

    @abstractmethod
    async def find_similar(
        self, text: str, language: str, content_type: str, threshold: float
    ) -> List[SimilarMatch]:
        """Return approved content at or above ``threshold`` similarity, closest first."""
        pass


class DuplicationGate(QualityGate):
    name = "duplication-detection"
    tier = GateTier.DATABASE

    def __init__(
        self,
        repository: DuplicationRepository,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
    ):
        self.repository = repository
        self.similarity_threshold = similarity_threshold

    async def check(self, gate_input: GateInput) -> QualityGateResult:
        exact_match = await self.repository.find_exact_match(
            gate_input.text, gate_input.language, gate_input.content_type
        )
        if exact_match:
            return self.failed(
                "Exact duplicate found in approved content",
                details={"duplicate_id": exact_match},
            )

        similar = await self.repository.find_similar(
            gate_input.text,
            gate_input.language,
            gate_input.content_type,
            self.similarity_threshold,
        )
        if similar:
            closest = max(similar, key=lambda m: m.similarity)
            return self.failed(
                f"Similar content found ({round(closest.similarity * 100)}% match)",
                details={
                    "similar_to": closest.id,
                    "similarity": closest.similarity,
                    "matched_text": closest.text,
                },
            )

        return self.passed()


def create_duplication_gate(repository: DuplicationRepository) -> DuplicationGate:
    return DuplicationGate(repository)
