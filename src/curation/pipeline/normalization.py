"""Draft to Candidate normalization.

Cleans raw draft payloads before they enter the candidate store: trims
strings, fixes capitalization and terminal punctuation, and rejects drafts
that are missing required fields or exceed basic limits.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.curation.models.enums import DataType

logger = logging.getLogger(__name__)

MAX_WORD_LENGTH = 100
MAX_DEFINITION_LENGTH = 1000
MIN_UTTERANCE_WORDS = 2
MAX_UTTERANCE_WORDS = 50
MIN_EXERCISE_OPTIONS = 2
MAX_EXERCISE_OPTIONS = 6

TERMINAL_PUNCTUATION = (".", "!", "?", "…", "。", "！", "？")


class StepResult(BaseModel):
    """Outcome of a pipeline step."""

    success: bool
    errors: List[str] = Field(default_factory=list)
    data: Optional[Dict[str, Any]] = Field(None, description="Payload produced by the step")


def _trim(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip()


def _capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def _has_terminal_punctuation(text: str) -> bool:
    return text.endswith(TERMINAL_PUNCTUATION)


class NormalizationStep:
    """Normalizes a draft payload according to its data type."""

    def normalize(self, data_type: str, payload: Dict[str, Any]) -> StepResult:
        try:
            data_type = DataType(data_type)
        except ValueError:
            return StepResult(success=False, errors=[f"Unknown data type: {data_type}"])

        handler = {
            DataType.MEANING: self._normalize_meaning,
            DataType.UTTERANCE: self._normalize_utterance,
            DataType.RULE: self._normalize_rule,
            DataType.EXERCISE: self._normalize_exercise,
        }[data_type]

        data = dict(payload)
        for key in ("language", "level"):
            if isinstance(data.get(key), str):
                data[key] = data[key].strip().upper()
        errors = handler(data)
        if errors:
            logger.debug(f"Normalization of {data_type.value} failed: {errors}")
            return StepResult(success=False, errors=errors)
        return StepResult(success=True, data=data)

    @staticmethod
    def _require_language_and_level(data: Dict[str, Any], errors: List[str]) -> None:
        if not data.get("language"):
            errors.append("Language is required")
        if not data.get("level"):
            errors.append("Level is required")

    def _normalize_meaning(self, data: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        word = _trim(data.get("word"))
        definition = _trim(data.get("definition"))

        if not word:
            errors.append("Word is required")
        elif len(word) > MAX_WORD_LENGTH:
            errors.append(f"Word is too long (max {MAX_WORD_LENGTH} characters)")

        if not definition:
            errors.append("Definition is required")
        elif len(definition) > MAX_DEFINITION_LENGTH:
            errors.append(f"Definition is too long (max {MAX_DEFINITION_LENGTH} characters)")

        self._require_language_and_level(data, errors)
        if errors:
            return errors

        data["word"] = word
        data["definition"] = _capitalize_first(definition)
        return errors

    def _normalize_utterance(self, data: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        text = _trim(data.get("text"))
        translation = _trim(data.get("translation"))

        if not text:
            errors.append("Text is required")
        else:
            word_count = len(text.split())
            if word_count < MIN_UTTERANCE_WORDS:
                errors.append(f"Utterance too short (min {MIN_UTTERANCE_WORDS} words)")
            if word_count > MAX_UTTERANCE_WORDS:
                errors.append(f"Utterance too long (max {MAX_UTTERANCE_WORDS} words)")

        if not data.get("meaning_id"):
            errors.append("Meaning ID is required")
        if errors:
            return errors

        text = _capitalize_first(text)
        if not _has_terminal_punctuation(text):
            text += "."
        data["text"] = text
        if translation:
            data["translation"] = _capitalize_first(translation)
        return errors

    def _normalize_rule(self, data: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        title = _trim(data.get("title"))
        explanation = _trim(data.get("explanation"))

        if not title:
            errors.append("Title is required")
        if not explanation:
            errors.append("Explanation is required")
        self._require_language_and_level(data, errors)

        examples = data.get("examples")
        if not isinstance(examples, list) or not examples:
            errors.append("At least one example is required")
        if errors:
            return errors

        data["title"] = title
        data["explanation"] = explanation
        # Bare strings are shorthand for {"correct": ...}.
        data["examples"] = [
            {"correct": example.strip()} if isinstance(example, str) else example
            for example in examples
        ]
        return errors

    def _normalize_exercise(self, data: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        prompt = _trim(data.get("prompt"))
        if not prompt:
            errors.append("Prompt is required")

        options = data.get("options")
        if not isinstance(options, list):
            errors.append("Options must be a valid array")
            options = None
        elif len(options) < MIN_EXERCISE_OPTIONS:
            errors.append(f"At least {MIN_EXERCISE_OPTIONS} options required")
        elif len(options) > MAX_EXERCISE_OPTIONS:
            errors.append(f"Maximum {MAX_EXERCISE_OPTIONS} options allowed")

        correct_index = data.get("correct_index")
        if correct_index is None:
            errors.append("Correct answer index is required")
        elif not isinstance(correct_index, int):
            errors.append("Correct answer index must be an integer")
        elif options is not None and not 0 <= correct_index < len(options):
            errors.append("Correct answer index out of range")

        self._require_language_and_level(data, errors)
        if errors:
            return errors

        data["prompt"] = prompt
        data["options"] = [o.strip() if isinstance(o, str) else o for o in options]
        return errors
