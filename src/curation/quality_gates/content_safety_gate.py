"""Lexical content safety screen.

Regex patterns grouped by category (profanity, violence, inappropriate,
hate). A match that sits inside a whitelisted benign word ("assassin",
"class", "Scunthorpe") is not a violation.
"""

import re
from typing import List, NamedTuple, Pattern

from pydantic import ValidationError

from src.curation.models.enums import GateTier
from src.curation.models.gate import ContentSafetyInput, GateInput, QualityGateResult
from src.curation.quality_gates.base import QualityGate


class SafetyPattern(NamedTuple):
    pattern: Pattern[str]
    category: str
    description: str


SAFETY_PATTERNS: List[SafetyPattern] = [
    # Profanity (English)
    SafetyPattern(re.compile(r"\bf+u+c+k+", re.I), "profanity", "Profane language"),
    SafetyPattern(re.compile(r"\bs+h+i+t+\b", re.I), "profanity", "Profane language"),
    SafetyPattern(re.compile(r"\bb+i+t+c+h+", re.I), "profanity", "Profane language"),
    SafetyPattern(re.compile(r"\ba+s+s+h+o+l+e+", re.I), "profanity", "Profane language"),
    SafetyPattern(re.compile(r"\bc+u+n+t+\b", re.I), "profanity", "Profane language"),
    # Violence
    SafetyPattern(
        re.compile(r"\b(kill|murder|stab|shoot)\s+(someone|people|person|him|her|them)\b", re.I),
        "violence",
        "Violent content",
    ),
    SafetyPattern(re.compile(r"\b(torture|mutilate|dismember)\b", re.I), "violence", "Graphic violence"),
    SafetyPattern(re.compile(r"\b(rape|assault)\b", re.I), "violence", "Violent content"),
    # Inappropriate
    SafetyPattern(
        re.compile(r"\b(pornographic|explicit\s+sexual)\b", re.I), "inappropriate", "Adult content"
    ),
    SafetyPattern(
        re.compile(r"\b(drug\s+abuse|substance\s+abuse)\b", re.I), "inappropriate", "Drug content"
    ),
    # Hate speech
    SafetyPattern(re.compile(r"\b(racial\s+slur|hate\s+speech)\b", re.I), "hate", "Hate speech"),
    SafetyPattern(re.compile(r"\b(nazi|white\s+supremac)", re.I), "hate", "Extremist content"),
]

WHITELIST_WORDS = frozenset(
    {
        "assassinate",
        "assassin",
        "bass",
        "class",
        "grass",
        "pass",
        "mass",
        "assume",
        "assist",
        "asset",
        "passion",
        "compass",
        "embarrass",
        "harassment",
        "scunthorpe",
    }
)


class SafetyViolation(NamedTuple):
    category: str
    description: str
    matched_text: str


def _enclosing_token(text: str, start: int, end: int) -> str:
    while start > 0 and text[start - 1].isalpha():
        start -= 1
    while end < len(text) and text[end].isalpha():
        end += 1
    return text[start:end].lower()


def is_part_of_whitelisted_word(text: str, match: "re.Match[str]") -> bool:
    """True when the matched span belongs to a whitelisted word in ``text``."""
    token = _enclosing_token(text, match.start(), match.end())
    return token in WHITELIST_WORDS


def check_text_safety(text: str) -> List[SafetyViolation]:
    violations: List[SafetyViolation] = []
    for safety in SAFETY_PATTERNS:
        for match in safety.pattern.finditer(text):
            if is_part_of_whitelisted_word(text, match):
                continue
            violations.append(
                SafetyViolation(safety.category, safety.description, match.group(0).lower())
            )
            break
    return violations


class ContentSafetyGate(QualityGate):
    name = "content-safety"
    tier = GateTier.FAST

    async def check(self, gate_input: GateInput) -> QualityGateResult:
        try:
            safety_input = self.narrow(gate_input, ContentSafetyInput)
        except ValidationError as e:
            return self.invalid_input(e)

        texts = safety_input.texts_to_check or [safety_input.text]
        all_text = " ".join(t for t in texts if t)
        violations = check_text_safety(all_text)

        if violations:
            categories = ", ".join(v.category for v in violations)
            return self.failed(
                f"Content safety violations: {categories}",
                details={
                    "violations": [
                        {"category": v.category, "description": v.description}
                        for v in violations
                    ]
                },
            )

        return self.passed()


def create_content_safety_gate() -> ContentSafetyGate:
    return ContentSafetyGate()
