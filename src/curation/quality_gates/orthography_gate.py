"""Orthography consistency gate.

Each language has a whitelist of allowed characters plus a list of foreign
diacritics that signal cross-contamination from a neighbouring language.
"""

import re
from typing import Dict, List, Pattern, Tuple

from src.curation.models.enums import GateTier, Language
from src.curation.models.gate import GateInput, QualityGateResult
from src.curation.quality_gates.base import QualityGate

_COMMON = r"0-9\s.,!?;:'\"()\-–—…"

ALPHABET_CLASSES: Dict[Language, str] = {
    Language.EN: rf"A-Za-z{_COMMON}",
    Language.ES: rf"A-Za-zÁÉÍÓÚÑÜáéíóúñü¿¡{_COMMON}",
    Language.IT: rf"A-Za-zÀÈÉÌÒÙàèéìòù{_COMMON}",
    Language.PT: rf"A-Za-zÁÂÃÀÇÉÊÍÓÔÕÚáâãàçéêíóôõú{_COMMON}",
    Language.SL: rf"A-Za-zČŠŽčšž{_COMMON}",
}

VALID_ALPHABETS: Dict[Language, Pattern[str]] = {
    language: re.compile(rf"[{chars}]+") for language, chars in ALPHABET_CLASSES.items()
}

_VALID_CHARS: Dict[Language, Pattern[str]] = {
    language: re.compile(rf"[{chars}]") for language, chars in ALPHABET_CLASSES.items()
}

INVALID_CHAR_PATTERNS: Dict[Language, List[Tuple[Pattern[str], str]]] = {
    Language.EN: [
        (re.compile(r"[áéíóúñ]", re.I), "Spanish/Portuguese characters in English text"),
        (re.compile(r"[àèìòù]", re.I), "Italian characters in English text"),
        (re.compile(r"[äöü]", re.I), "German characters in English text"),
        (re.compile(r"[ç]", re.I), "French/Portuguese ç in English text"),
    ],
    Language.ES: [
        (re.compile(r"[àèìòù]", re.I), "Italian characters in Spanish text (use á é í ó ú)"),
    ],
    Language.IT: [
        (re.compile(r"[áíóúñ]", re.I), "Spanish characters in Italian text"),
    ],
    Language.PT: [
        (re.compile(r"[ñ]", re.I), "Spanish ñ in Portuguese text (use nh)"),
    ],
    Language.SL: [
        (re.compile(r"[áéíóúñàèìòùç]", re.I), "Non-Slovenian diacritics (use č š ž)"),
    ],
}


def find_invalid_characters(text: str, language: Language) -> List[str]:
    """Return the distinct non-whitespace characters outside the language alphabet.

    Example:
        >>> find_invalid_characters("Hello señor!", Language.EN)
        ['ñ']
    """
    valid_char = _VALID_CHARS[language]
    invalid: List[str] = []
    for char in text:
        if char.strip() and not valid_char.fullmatch(char) and char not in invalid:
            invalid.append(char)
    return invalid


class OrthographyGate(QualityGate):
    name = "orthography-consistency"
    tier = GateTier.FAST

    async def check(self, gate_input: GateInput) -> QualityGateResult:
        try:
            language = Language(gate_input.language)
        except ValueError:
            return self.passed(
                details={"note": f"No orthography rules defined for language: {gate_input.language}"}
            )

        issues: List[str] = []

        if not VALID_ALPHABETS[language].fullmatch(gate_input.text):
            invalid_chars = find_invalid_characters(gate_input.text, language)
            issues.append(f"Invalid characters: {', '.join(invalid_chars)}")

        for pattern, issue in INVALID_CHAR_PATTERNS.get(language, []):
            if pattern.search(gate_input.text):
                issues.append(issue)

        if issues:
            return self.failed(
                "Orthography consistency issues detected",
                details={"issues": issues, "language": language.value},
            )

        return self.passed()


def create_orthography_gate() -> OrthographyGate:
    return OrthographyGate()
