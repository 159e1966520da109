"""Tests for ContextualAnalyzer prompt building and response parsing.

Model output is untrusted: anything that is not a well-formed assessment
parses to None instead of raising.
"""
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from sentinela.shared.models import (
    ContextualLevel,
    KeywordRule,
    SymptomCategory,
    Urgency,
)
from sentinela.services.llm_service import LLMConfig, LLMProvider, LLMResponse, OpenAICompatibleLLM
from sentinela.services.risk_engine.contextual_analyzer import ContextualAnalyzer
from sentinela.services.risk_engine.exceptions import ContextualUnavailableError
from sentinela.services.risk_engine.keyword_matcher import KeywordMatcher


VALID_RESPONSE = {
    "riskAssessment": {
        "level": "alto",
        "score": 75,
        "confidence": 0.8,
        "needsAppointment": True,
    },
    "emotionalContext": "angustia intensa por la situación familiar",
    "keyConcerns": ["ideación de muerte"],
    "recommendations": ["contactar línea 106"],
    "urgency": "alta",
}


def llm_returning(text):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(text=text, model="deepseek-chat", provider="deepseek"))
    return llm


@pytest.fixture
def rules():
    return [
        KeywordRule(SymptomCategory.DEPRESSION, "morir", 5, "inst_001"),
        KeywordRule(SymptomCategory.ANXIETY, "angustia", 3, "inst_001"),
    ]


@pytest.fixture
def match(rules):
    return KeywordMatcher().match("siento angustia y ganas de morir", rules)


@pytest.fixture
def analyzer():
    return ContextualAnalyzer(llm_returning(json.dumps(VALID_RESPONSE)), appointment_url="https://citas.example/")


class TestParseResponse:

    def test_valid_spanish_response(self, analyzer):
        result = analyzer.parse_response(json.dumps(VALID_RESPONSE))

        assert result.level == ContextualLevel.HIGH
        assert result.score == 75
        assert result.confidence == 0.8
        assert result.needs_appointment is True
        assert result.urgency == Urgency.HIGH
        assert result.key_concerns == ("ideación de muerte",)

    def test_json_wrapped_in_prose(self, analyzer):
        raw = "Aquí está el análisis:\n```json\n" + json.dumps(VALID_RESPONSE) + "\n```\nGracias."
        assert analyzer.parse_response(raw).level == ContextualLevel.HIGH

    def test_flat_shape_accepted(self, analyzer):
        result = analyzer.parse_response('{"level": "critico", "score": 90}')

        assert result.level == ContextualLevel.CRITICAL
        assert result.score == 90
        assert result.urgency == Urgency.LOW

    def test_english_vocabulary_accepted(self, analyzer):
        result = analyzer.parse_response(
            '{"riskAssessment": {"level": "medium", "score": 45}, "urgency": "immediate"}'
        )

        assert result.level == ContextualLevel.MEDIUM
        assert result.urgency == Urgency.IMMEDIATE

    def test_null_urgency_defaults_to_low(self, analyzer):
        result = analyzer.parse_response('{"riskAssessment": {"level": "bajo", "score": 10}, "urgency": null}')
        assert result.urgency == Urgency.LOW

    @pytest.mark.parametrize("raw", [
        "",
        None,
        "No puedo analizar este mensaje.",
        "{esto no es json}",
        '{"riskAssessment": {"level": "alto", "score": 150}}',
        '{"riskAssessment": {"level": "extremo", "score": 50}}',
        '{"riskAssessment": {"level": "alto"}}',
        '{"emotionalContext": "sin evaluación"}',
        '{"riskAssessment": {"level": "alto", "score": 70, "confidence": 3}}',
    ])
    def test_malformed_returns_none(self, analyzer, raw):
        assert analyzer.parse_response(raw) is None


class TestBuildPrompt:

    def test_prompt_contents(self, analyzer, match, rules):
        prompt = analyzer.build_prompt("siento angustia y ganas de morir", match, rules)

        assert '"siento angustia y ganas de morir"' in prompt
        assert '"morir" (depression, peso: 5)' in prompt
        assert "- angustia (anxiety, peso: 3)" in prompt
        assert "https://citas.example/" in prompt
        assert '"riskAssessment"' in prompt

    def test_short_prompt_not_truncated(self, analyzer, match, rules, caplog):
        with caplog.at_level("WARNING"):
            analyzer.build_prompt("siento angustia y ganas de morir", match, rules)

        assert "CONTEXTUAL_PROMPT_TRUNCATED" not in caplog.text

    def test_long_conversation_keeps_tail(self, analyzer, rules, caplog):
        conversation = "hoy fue un día normal en clase. " * 400 + "siento angustia y ganas de morir"
        match = KeywordMatcher().match(conversation, rules)

        with caplog.at_level("WARNING"):
            prompt = analyzer.build_prompt(conversation, match, rules)

        assert len(conversation) > 10000
        assert len(prompt) <= 10000
        assert "siento angustia y ganas de morir\"" in prompt
        assert "- morir (depression, peso: 5)" in prompt
        assert "CONTEXTUAL_PROMPT_TRUNCATED" in caplog.text

    def test_large_catalog_capped_heaviest_first(self, match, caplog):
        rules = [KeywordRule(SymptomCategory.STRESS, f"presion numero {i}", 1, "inst_001") for i in range(600)]
        rules.append(KeywordRule(SymptomCategory.DEPRESSION, "morir", 5, "inst_001"))
        analyzer = ContextualAnalyzer(llm_returning("{}"), max_prompt_chars=4000)

        with caplog.at_level("WARNING"):
            prompt = analyzer.build_prompt("siento angustia y ganas de morir", match, rules)

        assert len(prompt) <= 4000
        assert "- morir (depression, peso: 5)" in prompt
        assert "presion numero 599" not in prompt
        assert '"siento angustia y ganas de morir"' in prompt
        assert "CONTEXTUAL_PROMPT_TRUNCATED" in caplog.text


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_returns_parsed_assessment(self, analyzer, match, rules):
        result = await analyzer.analyze("siento angustia y ganas de morir", match, rules)

        assert result.level == ContextualLevel.HIGH
        analyzer.llm.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_malformed_answer_is_none(self, match, rules):
        analyzer = ContextualAnalyzer(llm_returning("lo siento, no puedo ayudar"))

        assert await analyzer.analyze("texto", match, rules) is None

    @pytest.mark.asyncio
    async def test_llm_failure_raises_unavailable(self, match, rules):
        llm = MagicMock()
        llm.generate = AsyncMock(side_effect=ConnectionError("network down"))
        analyzer = ContextualAnalyzer(llm)

        with pytest.raises(ContextualUnavailableError):
            await analyzer.analyze("texto", match, rules)

    @pytest.mark.asyncio
    async def test_long_conversation_reaches_llm(self, rules):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=MagicMock(
            choices=[MagicMock(message=MagicMock(content=json.dumps(VALID_RESPONSE)))],
            usage=None,
        ))
        llm = OpenAICompatibleLLM(
            LLMConfig(provider=LLMProvider.DEEPSEEK, model_name="deepseek-chat", api_key="sk-test"),
            client=client,
        )
        analyzer = ContextualAnalyzer(llm, max_prompt_chars=llm.config.max_prompt_chars)
        conversation = "hablamos de las tareas y del colegio. " * 300 + "me quiero morir"
        match = KeywordMatcher().match(conversation, rules)

        result = await analyzer.analyze(conversation, match, rules)

        assert result.level == ContextualLevel.HIGH
        client.chat.completions.create.assert_awaited_once()
