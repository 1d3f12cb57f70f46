"""Prerequisite graph validation.

Checks that declared prerequisites exist, are not the item itself, do not
sit above the item's CEFR level, share its language, and do not close a
cycle in the prerequisite graph.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from src.curation.models.enums import GateTier
from src.curation.models.gate import (
    GateInput,
    PrerequisiteInfo,
    PrerequisiteValidationInput,
    QualityGateResult,
)
from src.curation.quality_gates.base import QualityGate
from src.curation.quality_gates.cefr_gate import get_cefr_rank

CYCLE_SEPARATOR = " → "


class PrerequisiteRepository(ABC):
    @abstractmethod
    async def find_prerequisites(self, ids: List[str]) -> List[PrerequisiteInfo]:
        pass

    @abstractmethod
    async def get_prerequisites_of(self, item_id: str) -> List[str]:
        pass


class PrerequisiteValidationGate(QualityGate):
    name = "prerequisite-validation"
    tier = GateTier.DATABASE

    def __init__(self, repository: PrerequisiteRepository):
        self.repository = repository

    async def check(self, gate_input: GateInput) -> QualityGateResult:
        try:
            prereq_input = self.narrow(gate_input, PrerequisiteValidationInput)
        except ValidationError as e:
            if not gate_input.metadata.get("prerequisites"):
                return self.passed()
            return self.invalid_input(e)

        item_id = prereq_input.item_id
        prerequisites = prereq_input.prerequisites
        if not prerequisites:
            return self.passed()

        issues: List[str] = []

        if item_id in prerequisites:
            issues.append("Item cannot be its own prerequisite")

        existing = await self.repository.find_prerequisites(prerequisites)
        existing_ids = {p.id for p in existing}
        missing_ids = [pid for pid in prerequisites if pid not in existing_ids]
        if missing_ids:
            issues.append(f"Missing prerequisites: {', '.join(missing_ids)}")

        current_rank = get_cefr_rank(prereq_input.level)
        for prereq in existing:
            if get_cefr_rank(prereq.level) > current_rank:
                issues.append(
                    f'Prerequisite "{prereq.id}" has higher level ({prereq.level.value}) '
                    f"than item ({prereq_input.level.value})"
                )
            if prereq.language.upper() != prereq_input.language:
                issues.append(
                    f'Prerequisite "{prereq.id}" is in different language ({prereq.language})'
                )

        cycle = await self.detect_circular_dependency(item_id, prerequisites)
        if cycle:
            issues.append(f"Circular dependency detected: {cycle}")

        if issues:
            return self.failed(
                "Prerequisite validation failed",
                details={
                    "issues": issues,
                    "prerequisites": prerequisites,
                    "missing_ids": missing_ids,
                },
            )

        return self.passed()

    async def detect_circular_dependency(
        self, item_id: str, direct_prereqs: List[str]
    ) -> Optional[str]:
        """Depth-first search from each direct prerequisite back to the item.

        Uses an explicit stack of ``(node, children, next_child_index)``
        frames; ``path`` mirrors the stack so membership checks are O(1).
        Nodes whose subtree was fully explored without a cycle are memoized
        for the rest of this call. Adjacency lists are fetched once per node.

        Returns:
            The cycle as ``"A → B → A"``, or None
        """
        cleared: Set[str] = set()
        adjacency: Dict[str, List[str]] = {}

        async def children_of(node: str) -> List[str]:
            if node not in adjacency:
                adjacency[node] = await self.repository.get_prerequisites_of(node)
            return adjacency[node]

        for start in direct_prereqs:
            path: List[str] = [item_id]
            on_path: Set[str] = {item_id}

            if start in on_path:
                return CYCLE_SEPARATOR.join(path + [start])
            if start in cleared:
                continue

            path.append(start)
            on_path.add(start)
            stack: List[Tuple[str, List[str], int]] = [(start, await children_of(start), 0)]

            while stack:
                node, children, index = stack[-1]
                if index >= len(children):
                    stack.pop()
                    path.pop()
                    on_path.discard(node)
                    cleared.add(node)
                    continue

                stack[-1] = (node, children, index + 1)
                child = children[index]
                if child in on_path:
                    return CYCLE_SEPARATOR.join(path + [child])
                if child in cleared:
                    continue

                path.append(child)
                on_path.add(child)
                stack.append((child, await children_of(child), 0))

        return None


def create_prerequisite_validation_gate(
    repository: PrerequisiteRepository,
) -> PrerequisiteValidationGate:
    return PrerequisiteValidationGate(repository)
