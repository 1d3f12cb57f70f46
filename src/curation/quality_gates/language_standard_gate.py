"""Regional language standard gate.

The corpus teaches one variant per language (US English, European
Portuguese, Castilian Spanish). Forms belonging to another regional variant
are rejected.
"""

import re
from typing import Dict, List, NamedTuple, Pattern, Tuple

from src.curation.models.enums import GateTier, Language
from src.curation.models.gate import GateInput, QualityGateResult
from src.curation.quality_gates.base import QualityGate


class LanguageStandard(NamedTuple):
    variant: str
    patterns: List[Tuple[Pattern[str], str]]


LANGUAGE_STANDARDS: Dict[Language, LanguageStandard] = {
    Language.EN: LanguageStandard(
        variant="US English",
        patterns=[
            (re.compile(r"\b(colour|favour|honour|behaviour|neighbour)\b", re.I), "British spelling"),
            (re.compile(r"\b(realise|organise|recognise)\b", re.I), "British -ise spelling"),
            (re.compile(r"\b(centre|theatre|metre)\b", re.I), "British -re spelling"),
            (re.compile(r"\b(grey)\b", re.I), 'British spelling (use "gray")'),
        ],
    ),
    Language.PT: LanguageStandard(
        variant="European Portuguese",
        patterns=[
            (re.compile(r"\bvc\b", re.I), "Brazilian abbreviation"),
            (re.compile(r"\btá\b", re.I), "Brazilian informal"),
            (re.compile(r"\bpra\b", re.I), 'Brazilian contraction (use "para")'),
            (re.compile(r"\bônibus\b", re.I), 'Brazilian spelling (use "autocarro")'),
        ],
    ),
    Language.ES: LanguageStandard(
        variant="Castilian Spanish",
        patterns=[
            (re.compile(r"\bustedes\b.*\b(tienen|hacen|van)\b", re.I), "Latin American form"),
        ],
    ),
    Language.IT: LanguageStandard(variant="Standard Italian", patterns=[]),
    Language.SL: LanguageStandard(variant="Standard Slovenian", patterns=[]),
}


class LanguageStandardGate(QualityGate):
    name = "language-standard"
    tier = GateTier.FAST

    async def check(self, gate_input: GateInput) -> QualityGateResult:
        try:
            standard = LANGUAGE_STANDARDS[Language(gate_input.language)]
        except ValueError:
            return self.passed(
                details={"note": f"No standard defined for language: {gate_input.language}"}
            )

        violations = [
            violation
            for pattern, violation in standard.patterns
            if pattern.search(gate_input.text)
        ]

        if violations:
            return self.failed(
                f"{standard.variant} violations detected",
                details={"violations": violations, "expected_variant": standard.variant},
            )

        return self.passed()


def create_language_standard_gate() -> LanguageStandardGate:
    return LanguageStandardGate()
