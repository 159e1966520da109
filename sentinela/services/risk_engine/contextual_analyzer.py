"""Contextual analyzer - LLM second opinion on a keyword hit.

Only consulted when the local matcher found at least one keyword. The
model's answer is untrusted: the first {...} span is extracted, decoded
and validated; anything else is treated as "no contextual assessment".
"""
import json
import logging
import re
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from sentinela.services.llm_service import BaseLLM
from sentinela.shared.models import (
    ContextualAssessment,
    ContextualLevel,
    KeywordMatchResult,
    KeywordRule,
    Urgency,
)
from .config import DEFAULT_APPOINTMENT_URL
from .exceptions import ContextualUnavailableError

logger = logging.getLogger(__name__)

_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)

_LEVEL_ALIASES = {
    "bajo": "low", "minimo": "low", "mínimo": "low", "leve": "low",
    "medio": "medium", "moderado": "medium",
    "alto": "high",
    "critico": "critical", "crítico": "critical",
}

_URGENCY_ALIASES = {
    "baja": "low",
    "media": "medium",
    "alta": "high",
    "inmediata": "immediate",
}


class RiskAssessmentPayload(BaseModel):
    """The riskAssessment object of the model answer."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    level: ContextualLevel
    score: float = Field(ge=0, le=100)
    confidence: float = Field(default=0.0, ge=0, le=1)
    needs_appointment: Optional[bool] = Field(default=None, alias="needsAppointment")

    @field_validator("level", mode="before")
    @classmethod
    def translate_level(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            return _LEVEL_ALIASES.get(normalized, normalized)
        return value


class ContextualPayload(BaseModel):
    """Full JSON answer requested from the model."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    risk_assessment: RiskAssessmentPayload = Field(alias="riskAssessment")
    emotional_context: str = Field(default="", alias="emotionalContext")
    key_concerns: List[str] = Field(default_factory=list, alias="keyConcerns")
    recommendations: List[str] = Field(default_factory=list)
    urgency: Urgency = Urgency.LOW

    @model_validator(mode="before")
    @classmethod
    def accept_flat_shape(cls, data):
        # Some answers put level/score at the top level
        if isinstance(data, dict) and "riskAssessment" not in data and "risk_assessment" not in data:
            if "level" in data and "score" in data:
                data = dict(data)
                data["riskAssessment"] = {
                    key: data.pop(key)
                    for key in ("level", "score", "confidence", "needsAppointment")
                    if key in data
                }
        return data

    @field_validator("urgency", mode="before")
    @classmethod
    def translate_urgency(cls, value):
        if value is None:
            return Urgency.LOW
        if isinstance(value, str):
            normalized = value.strip().lower()
            return _URGENCY_ALIASES.get(normalized, normalized)
        return value

    def to_assessment(self) -> ContextualAssessment:
        risk = self.risk_assessment
        return ContextualAssessment(
            level=risk.level,
            score=risk.score,
            confidence=risk.confidence,
            emotional_context=self.emotional_context,
            key_concerns=tuple(self.key_concerns),
            recommendations=tuple(self.recommendations),
            urgency=self.urgency,
            needs_appointment=risk.needs_appointment,
        )


ANALYSIS_SYSTEM_PROMPT = (
    "Eres un psicólogo especializado en detección temprana de problemas de "
    "salud mental. Respondes únicamente con un objeto JSON."
)

DEFAULT_MAX_PROMPT_CHARS = 10000

# Share of the prompt budget the catalog keeps when the conversation is long
CATALOG_BUDGET_SHARE = 0.3

_ELIDED = "[...] "


class ContextualAnalyzer:
    """Asks the LLM for a contextual assessment of a message."""

    def __init__(
        self,
        llm: BaseLLM,
        appointment_url: str = DEFAULT_APPOINTMENT_URL,
        max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS,
    ):
        self.llm = llm
        self.appointment_url = appointment_url
        self.max_prompt_chars = max_prompt_chars

    def build_prompt(
        self,
        text: str,
        match: KeywordMatchResult,
        rules: Sequence[KeywordRule],
    ) -> str:
        """Prompt with the message, the hits and the active catalog.

        The prompt is kept within max_prompt_chars. The catalog is capped
        first, heaviest rules kept, then the start of the conversation is
        dropped. Detected keywords and their contexts are always included.
        """
        detected = "\n".join(
            f'- "{kw.phrase}" ({kw.symptom_category.value}, peso: {kw.weight}) '
            f'contexto: "{kw.context}"'
            for kw in match.detected_keywords
        )
        catalog_lines = [
            f"- {rule.phrase} ({rule.symptom_category.value}, peso: {rule.weight})"
            for rule in sorted(rules, key=lambda r: -r.weight)
        ]

        budget = self.max_prompt_chars - len(self._render("", detected, ""))

        catalog_budget = max(budget - len(text), int(budget * CATALOG_BUDGET_SHARE))
        kept_lines: List[str] = []
        used = 0
        for line in catalog_lines:
            cost = len(line) + (1 if kept_lines else 0)
            if used + cost > catalog_budget:
                break
            kept_lines.append(line)
            used += cost
        catalog = "\n".join(kept_lines)

        text_budget = budget - len(catalog)
        text_dropped = 0
        if len(text) > text_budget:
            tail = max(text_budget - len(_ELIDED), 0)
            text_dropped = len(text) - tail
            text = _ELIDED + text[text_dropped:]

        if text_dropped or len(kept_lines) < len(catalog_lines):
            logger.warning(
                "CONTEXTUAL_PROMPT_TRUNCATED",
                extra={
                    "text_chars_dropped": text_dropped,
                    "rules_dropped": len(catalog_lines) - len(kept_lines),
                    "max_prompt_chars": self.max_prompt_chars,
                }
            )

        return self._render(text, detected, catalog)

    def _render(self, text: str, detected: str, catalog: str) -> str:
        return (
            f'TEXTO DEL USUARIO:\n"{text}"\n\n'
            f"PALABRAS CLAVE DETECTADAS (con sus pesos):\n{detected}\n\n"
            f"LISTA DE PALABRAS CLAVE CONFIGURADAS:\n{catalog}\n\n"
            f"PLATAFORMA DE CITAS DISPONIBLE: {self.appointment_url}\n\n"
            "Analiza el contexto emocional, la severidad según las palabras clave "
            "y sus pesos, el nivel de riesgo y si conviene recomendar una cita "
            "profesional.\n\n"
            "Responde en formato JSON:\n"
            "{\n"
            '  "riskAssessment": {\n'
            '    "level": "bajo|medio|alto|critico",\n'
            '    "score": 0-100,\n'
            '    "confidence": 0.0-1.0,\n'
            '    "needsAppointment": true|false\n'
            "  },\n"
            '  "emotionalContext": "descripción del contexto emocional",\n'
            '  "keyConcerns": ["preocupaciones principales"],\n'
            '  "recommendations": ["recomendaciones"],\n'
            '  "urgency": "baja|media|alta|inmediata"\n'
            "}"
        )

    async def analyze(
        self,
        text: str,
        match: KeywordMatchResult,
        rules: Sequence[KeywordRule],
    ) -> Optional[ContextualAssessment]:
        """Request and parse a contextual assessment.

        Returns:
            ContextualAssessment, or None if the answer is unusable

        Raises:
            ContextualUnavailableError: If the LLM call itself failed
        """
        prompt = self.build_prompt(text, match, rules)

        try:
            response = await self.llm.generate(prompt, system_prompt=ANALYSIS_SYSTEM_PROMPT)
        except Exception as e:
            raise ContextualUnavailableError(f"Contextual analysis failed: {e}") from e

        return self.parse_response(response.text)

    def parse_response(self, raw: Optional[str]) -> Optional[ContextualAssessment]:
        """Extract and validate the first JSON object of a model answer."""
        found = _JSON_SPAN.search(raw or "")
        if not found:
            logger.warning(
                "CONTEXTUAL_RESPONSE_NO_JSON",
                extra={"response_length": len(raw or "")}
            )
            return None

        try:
            data = json.loads(found.group(0))
            payload = ContextualPayload.model_validate(data)
            return payload.to_assessment()
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning(
                "CONTEXTUAL_RESPONSE_INVALID",
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return None
