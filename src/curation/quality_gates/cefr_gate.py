"""CEFR level consistency gate.

Checks that an item fits the ceilings of its declared level: word length,
frequency rank, explanation length and sentence count, and that basic levels
do not introduce advanced grammar topics.
"""

import re
from typing import Dict, List

from pydantic import BaseModel, ValidationError

from src.curation.models.enums import CEFRLevel, GateTier
from src.curation.models.gate import CEFRValidationInput, GateInput, QualityGateResult
from src.curation.quality_gates.base import QualityGate


class CEFRCriteria(BaseModel):
    max_word_length: int
    max_frequency_rank: int
    max_explanation_words: int
    max_explanation_sentences: int


CEFR_CRITERIA: Dict[CEFRLevel, CEFRCriteria] = {
    CEFRLevel.A0: CEFRCriteria(
        max_word_length=8,
        max_frequency_rank=100,
        max_explanation_words=30,
        max_explanation_sentences=2,
    ),
    CEFRLevel.A1: CEFRCriteria(
        max_word_length=10,
        max_frequency_rank=1000,
        max_explanation_words=50,
        max_explanation_sentences=3,
    ),
    CEFRLevel.A2: CEFRCriteria(
        max_word_length=12,
        max_frequency_rank=3000,
        max_explanation_words=100,
        max_explanation_sentences=5,
    ),
    CEFRLevel.B1: CEFRCriteria(
        max_word_length=15,
        max_frequency_rank=5000,
        max_explanation_words=150,
        max_explanation_sentences=8,
    ),
    CEFRLevel.B2: CEFRCriteria(
        max_word_length=18,
        max_frequency_rank=8000,
        max_explanation_words=250,
        max_explanation_sentences=12,
    ),
    CEFRLevel.C1: CEFRCriteria(
        max_word_length=25,
        max_frequency_rank=15000,
        max_explanation_words=400,
        max_explanation_sentences=20,
    ),
    CEFRLevel.C2: CEFRCriteria(
        max_word_length=50,
        max_frequency_rank=50000,
        max_explanation_words=600,
        max_explanation_sentences=30,
    ),
}

ADVANCED_GRAMMAR_CONCEPTS = [
    "subjunctive",
    "conditional perfect",
    "passive infinitive",
    "cleft sentence",
    "inversion",
]

# Levels below B2 may not introduce the concepts above.
BASIC_LEVELS = {CEFRLevel.A0, CEFRLevel.A1, CEFRLevel.A2, CEFRLevel.B1}

CEFR_RANKS: Dict[CEFRLevel, int] = {level: rank for rank, level in enumerate(CEFRLevel)}

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def get_cefr_rank(level: str) -> int:
    """Ordinal of a CEFR level (A0=0 ... C2=6); unknown levels sort last."""
    try:
        return CEFR_RANKS[CEFRLevel(level)]
    except ValueError:
        return 999


def is_level_higher_than(level: str, than: str) -> bool:
    return get_cefr_rank(level) > get_cefr_rank(than)


class CEFRConsistencyGate(QualityGate):
    name = "cefr-consistency"
    tier = GateTier.FAST

    async def check(self, gate_input: GateInput) -> QualityGateResult:
        try:
            cefr_input = self.narrow(gate_input, CEFRValidationInput)
        except ValidationError as e:
            raw_level = gate_input.metadata.get("level", getattr(gate_input, "level", None))
            if any(err["loc"][:1] == ("level",) for err in e.errors()):
                return self.failed(f"Invalid CEFR level: {raw_level}")
            return self.invalid_input(e)

        level = cefr_input.level
        criteria = CEFR_CRITERIA[level]
        issues: List[str] = []

        if cefr_input.word_length is not None and cefr_input.word_length > criteria.max_word_length:
            issues.append(
                f"Word too long for {level.value}: {cefr_input.word_length} chars "
                f"(max {criteria.max_word_length})"
            )

        if (
            cefr_input.frequency_rank is not None
            and cefr_input.frequency_rank > criteria.max_frequency_rank
        ):
            issues.append(
                f"Word too rare for {level.value}: rank {cefr_input.frequency_rank} "
                f"(max {criteria.max_frequency_rank})"
            )

        if cefr_input.explanation_text:
            word_count = len(cefr_input.explanation_text.split())
            sentence_count = len(
                [s for s in _SENTENCE_SPLIT.split(cefr_input.explanation_text) if s.strip()]
            )
            if word_count > criteria.max_explanation_words:
                issues.append(
                    f"Explanation too long for {level.value}: {word_count} words "
                    f"(max {criteria.max_explanation_words})"
                )
            if sentence_count > criteria.max_explanation_sentences:
                issues.append(
                    f"Explanation too complex for {level.value}: {sentence_count} sentences "
                    f"(max {criteria.max_explanation_sentences})"
                )

        if level in BASIC_LEVELS:
            topic = cefr_input.grammar_topic
            if topic is None and cefr_input.content_type == "rule":
                topic = cefr_input.text
            topic = (topic or "").lower()
            for concept in ADVANCED_GRAMMAR_CONCEPTS:
                if concept in topic:
                    issues.append(
                        f'Advanced grammar concept "{concept}" not suitable for {level.value}'
                    )

        if issues:
            return self.failed(
                "CEFR level consistency issues",
                details={
                    "issues": issues,
                    "level": level.value,
                    "criteria": criteria.model_dump(),
                },
            )

        return self.passed()


def create_cefr_consistency_gate() -> CEFRConsistencyGate:
    return CEFRConsistencyGate()
