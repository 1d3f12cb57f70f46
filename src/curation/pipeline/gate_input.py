"""Builds the gate input for a candidate payload."""

from typing import Any, Dict, List

from src.curation.models.enums import DataType
from src.curation.models.gate import GateInput
from src.curation.validators.schema import get_primary_text


def _collect_texts(data_type: DataType, payload: Dict[str, Any]) -> List[str]:
    """Every learner-facing string in the payload, in field order."""
    texts: List[str] = []

    def add(value: Any) -> None:
        if isinstance(value, str) and value.strip():
            texts.append(value)

    if data_type == DataType.MEANING:
        add(payload.get("word"))
        add(payload.get("definition"))
    elif data_type == DataType.UTTERANCE:
        add(payload.get("text"))
        add(payload.get("translation"))
        add(payload.get("notes"))
    elif data_type == DataType.RULE:
        add(payload.get("title"))
        add(payload.get("explanation"))
        for example in payload.get("examples") or []:
            if isinstance(example, dict):
                add(example.get("correct"))
                add(example.get("incorrect"))
                add(example.get("translation"))
    elif data_type == DataType.EXERCISE:
        add(payload.get("prompt"))
        for option in payload.get("options") or []:
            add(option)
        for hint in payload.get("hints") or []:
            add(hint)
    return texts


def build_gate_input(item_id: str, data_type: str, payload: Dict[str, Any]) -> GateInput:
    """Derive the gate input for an item.

    The primary text is the word, utterance text, rule title or exercise
    prompt. Gate-specific fields go into ``metadata`` so each gate can
    narrow the input to the model it needs.

    Args:
        item_id: Id of the item under validation
        data_type: meaning, utterance, rule or exercise
        payload: Normalized candidate payload

    Returns:
        GateInput ready for ``run_gates`` or a retry controller
    """
    data_type = DataType(data_type)
    metadata: Dict[str, Any] = {
        "payload": dict(payload),
        "item_id": item_id,
        "prerequisites": list(payload.get("prerequisites") or []),
        "texts_to_check": _collect_texts(data_type, payload),
    }

    if payload.get("level"):
        metadata["level"] = payload["level"]
    if payload.get("frequency_rank") is not None:
        metadata["frequency_rank"] = payload["frequency_rank"]

    if data_type == DataType.MEANING:
        word = payload.get("word")
        if isinstance(word, str):
            metadata["word_length"] = len(word)
        metadata["explanation_text"] = payload.get("definition")
    elif data_type == DataType.RULE:
        metadata["explanation_text"] = payload.get("explanation")
        metadata["grammar_topic"] = payload.get("title")

    return GateInput(
        text=get_primary_text(data_type, payload),
        language=str(payload.get("language", "")),
        content_type=data_type.value,
        metadata=metadata,
    )
