"""Unit tests for the stateless and repository-backed quality gates."""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.curation.models.enums import CEFRLevel, GateTier, Language
from src.curation.models.gate import GateInput, SimilarMatch
from src.curation.quality_gates import (
    CEFRConsistencyGate,
    ContentSafetyGate,
    DuplicationGate,
    LanguageStandardGate,
    OrthographyGate,
    SchemaValidationGate,
    create_default_gates,
    get_cefr_rank,
    is_level_higher_than,
)
from src.curation.quality_gates.content_safety_gate import (
    check_text_safety,
    is_part_of_whitelisted_word,
)
from src.curation.quality_gates.orthography_gate import find_invalid_characters
from src.curation.repositories import InMemoryDuplicationRepository


def make_input(text, language="EN", content_type="meaning", **metadata):
    return GateInput(text=text, language=language, content_type=content_type, metadata=metadata)


class TestOrthographyGate:
    """Tests for per-language alphabet checks."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text,language",
        [
            ("Hello world.", "EN"),
            ("¿Dónde está la estación?", "ES"),
            ("Perché è così.", "IT"),
            ("Não sei, obrigação.", "PT"),
            ("Čaša je polna.", "SL"),
        ],
    )
    async def test_native_text_passes(self, text, language):
        result = await OrthographyGate().check(make_input(text, language))
        assert result.passed is True
        assert result.gate_name == "orthography-consistency"

    @pytest.mark.asyncio
    async def test_spanish_letters_in_english_fail(self):
        """Test foreign characters are listed and flagged by pattern."""
        result = await OrthographyGate().check(make_input("Hello señor", "EN"))

        assert result.passed is False
        assert result.reason == "Orthography consistency issues detected"
        assert "Invalid characters: ñ" in result.details["issues"]
        assert "Spanish/Portuguese characters in English text" in result.details["issues"]

    @pytest.mark.asyncio
    async def test_italian_grave_accent_in_spanish_fails(self):
        result = await OrthographyGate().check(make_input("la città", "ES"))
        assert result.passed is False
        assert any("Italian characters" in issue for issue in result.details["issues"])

    @pytest.mark.asyncio
    async def test_unknown_language_passes_with_note(self):
        result = await OrthographyGate().check(make_input("Straße", "DE"))
        assert result.passed is True
        assert "DE" in result.details["note"]

    def test_find_invalid_characters_is_distinct(self):
        assert find_invalid_characters("ñoño", Language.EN) == ["ñ"]


class TestLanguageStandardGate:
    """Tests for regional variant enforcement."""

    @pytest.mark.asyncio
    async def test_british_spelling_fails_for_english(self):
        result = await LanguageStandardGate().check(make_input("The colour is nice", "EN"))

        assert result.passed is False
        assert result.reason == "US English violations detected"
        assert result.details == {
            "violations": ["British spelling"],
            "expected_variant": "US English",
        }

    @pytest.mark.asyncio
    async def test_us_spelling_passes(self):
        result = await LanguageStandardGate().check(make_input("The color is gray", "EN"))
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_brazilian_contraction_fails_for_portuguese(self):
        result = await LanguageStandardGate().check(make_input("Vou pra casa", "PT"))
        assert result.passed is False
        assert result.reason == "European Portuguese violations detected"

    @pytest.mark.asyncio
    async def test_latin_american_form_fails_for_spanish(self):
        result = await LanguageStandardGate().check(make_input("Ustedes tienen razón", "ES"))
        assert result.passed is False
        assert result.details["expected_variant"] == "Castilian Spanish"

    @pytest.mark.asyncio
    async def test_language_without_patterns_passes(self):
        result = await LanguageStandardGate().check(make_input("Ciao a tutti", "IT"))
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_unknown_language_passes_with_note(self):
        result = await LanguageStandardGate().check(make_input("Hallo", "DE"))
        assert result.passed is True
        assert "note" in result.details


class TestContentSafetyGate:
    """Tests for the lexical safety screen."""

    @pytest.mark.asyncio
    async def test_clean_text_passes(self):
        result = await ContentSafetyGate().check(make_input("The class went to the park."))
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_violent_phrase_fails(self):
        result = await ContentSafetyGate().check(make_input("I will kill them"))

        assert result.passed is False
        assert result.reason == "Content safety violations: violence"
        assert result.details["violations"] == [
            {"category": "violence", "description": "Violent content"}
        ]

    @pytest.mark.asyncio
    async def test_reports_every_category(self):
        result = await ContentSafetyGate().check(make_input("shit, they torture people"))
        assert result.reason == "Content safety violations: profanity, violence"

    @pytest.mark.asyncio
    async def test_checks_all_texts_to_check(self):
        """Test secondary texts are screened, not just the primary text."""
        gate_input = make_input("Fine", texts_to_check=["Fine", "he wants to shoot them"])
        result = await ContentSafetyGate().check(gate_input)
        assert result.passed is False

    def test_whitelisted_word_is_not_a_violation(self):
        text = "A class of students"
        match = re.search("ass", text)
        assert is_part_of_whitelisted_word(text, match) is True

    def test_match_outside_whitelist_is_kept(self):
        text = "what an asshole"
        match = re.search("asshole", text)
        assert is_part_of_whitelisted_word(text, match) is False
        assert [v.category for v in check_text_safety(text)] == ["profanity"]


class TestCEFRConsistencyGate:
    """Tests for level-fit checks."""

    @pytest.mark.asyncio
    async def test_subjunctive_rule_fails_at_a1(self):
        """Test a rule title naming an advanced concept is rejected at basic levels."""
        gate_input = make_input("Subjunctive mood usage", "ES", "rule", level="A1")
        result = await CEFRConsistencyGate().check(gate_input)

        assert result.passed is False
        assert result.reason == "CEFR level consistency issues"
        assert result.details["issues"] == [
            'Advanced grammar concept "subjunctive" not suitable for A1'
        ]
        assert result.details["level"] == "A1"

    @pytest.mark.asyncio
    async def test_subjunctive_rule_passes_at_c1(self):
        gate_input = make_input("Subjunctive mood usage", "ES", "rule", level="C1")
        result = await CEFRConsistencyGate().check(gate_input)
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_grammar_topic_overrides_text(self):
        gate_input = make_input("Hablar", "ES", "meaning", level="A2", grammar_topic="Inversion")
        result = await CEFRConsistencyGate().check(gate_input)
        assert result.passed is False

    @pytest.mark.asyncio
    async def test_meaning_text_is_not_treated_as_topic(self):
        gate_input = make_input("subjunctive", "EN", "meaning", level="A1")
        result = await CEFRConsistencyGate().check(gate_input)
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_invalid_level_fails(self):
        result = await CEFRConsistencyGate().check(make_input("casa", "ES", level="Z9"))
        assert result.passed is False
        assert result.reason == "Invalid CEFR level: Z9"

    @pytest.mark.asyncio
    async def test_word_length_and_frequency_ceilings(self):
        gate_input = make_input(
            "extraordinary", "EN", level="A1", word_length=13, frequency_rank=1500
        )
        result = await CEFRConsistencyGate().check(gate_input)

        assert result.passed is False
        assert result.details["issues"] == [
            "Word too long for A1: 13 chars (max 10)",
            "Word too rare for A1: rank 1500 (max 1000)",
        ]
        assert result.details["criteria"]["max_word_length"] == 10

    @pytest.mark.asyncio
    async def test_explanation_sentence_ceiling(self):
        gate_input = make_input(
            "cat", "EN", level="A0", explanation_text="A pet. It purrs. It sleeps."
        )
        result = await CEFRConsistencyGate().check(gate_input)
        assert result.details["issues"] == ["Explanation too complex for A0: 3 sentences (max 2)"]

    def test_cefr_ranks(self):
        assert get_cefr_rank("A0") == 0
        assert get_cefr_rank(CEFRLevel.C2) == 6
        assert get_cefr_rank("X1") == 999
        assert is_level_higher_than("B2", "A1") is True
        assert is_level_higher_than("A1", "A1") is False


class TestDuplicationGate:
    """Tests for exact and near-duplicate detection."""

    @pytest.fixture
    def repository(self):
        repo = InMemoryDuplicationRepository()
        repo.add_approved("m-1", "casa", "ES", "meaning")
        return repo

    @pytest.mark.asyncio
    async def test_exact_duplicate_is_case_insensitive(self, repository):
        result = await DuplicationGate(repository).check(make_input(" Casa ", "ES"))

        assert result.passed is False
        assert result.reason == "Exact duplicate found in approved content"
        assert result.details == {"duplicate_id": "m-1"}

    @pytest.mark.asyncio
    async def test_other_language_is_not_a_duplicate(self, repository):
        result = await DuplicationGate(repository).check(make_input("casa", "PT"))
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_similar_content_reports_closest_match(self):
        repository = MagicMock()
        repository.find_exact_match = AsyncMock(return_value=None)
        repository.find_similar = AsyncMock(
            return_value=[
                SimilarMatch(id="u-3", text="The cat sat.", similarity=0.88),
                SimilarMatch(id="u-7", text="The cat sat down.", similarity=0.92),
            ]
        )

        result = await DuplicationGate(repository, similarity_threshold=0.85).check(
            make_input("The cat sat down!", content_type="utterance")
        )

        assert result.passed is False
        assert result.reason == "Similar content found (92% match)"
        assert result.details == {
            "similar_to": "u-7",
            "similarity": 0.92,
            "matched_text": "The cat sat down.",
        }
        repository.find_similar.assert_awaited_once_with(
            "The cat sat down!", "EN", "utterance", 0.85
        )

    @pytest.mark.asyncio
    async def test_unique_content_passes(self, repository):
        result = await DuplicationGate(repository).check(make_input("perro", "ES"))
        assert result.passed is True


class TestSchemaValidationGate:
    """Tests for payload structure checks."""

    @pytest.mark.asyncio
    async def test_valid_payload_passes(self):
        payload = {"word": "casa", "definition": "A house.", "language": "ES", "level": "A1"}
        result = await SchemaValidationGate().check(make_input("casa", "ES", payload=payload))
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_missing_field_is_reported(self):
        payload = {"word": "casa", "language": "ES", "level": "A1"}
        result = await SchemaValidationGate().check(make_input("casa", "ES", payload=payload))

        assert result.passed is False
        assert result.reason == "Schema validation failed for meaning"
        assert [issue["field"] for issue in result.details["issues"]] == ["definition"]

    @pytest.mark.asyncio
    async def test_missing_payload_fails(self):
        result = await SchemaValidationGate().check(make_input("casa", "ES"))
        assert result.reason == "No payload supplied for schema validation"

    @pytest.mark.asyncio
    async def test_unknown_content_type_fails(self):
        result = await SchemaValidationGate().check(make_input("x", content_type="story", payload={}))
        assert result.reason == "Unknown data type: story"


class TestDefaultGates:
    """Tests for the standard gate set."""

    def test_stateless_gates_only_without_repositories(self):
        names = [gate.name for gate in create_default_gates()]
        assert names == [
            "schema-validation",
            "content-safety",
            "orthography-consistency",
            "language-standard",
            "cefr-consistency",
        ]

    def test_repository_gates_are_database_tier(self):
        gates = create_default_gates(
            duplication_repository=MagicMock(), prerequisite_repository=MagicMock()
        )
        tiers = {gate.name: gate.tier for gate in gates}
        assert tiers["duplication-detection"] == GateTier.DATABASE
        assert tiers["prerequisite-validation"] == GateTier.DATABASE
        assert tiers["content-safety"] == GateTier.FAST
