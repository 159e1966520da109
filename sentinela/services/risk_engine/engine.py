"""Hybrid risk assessment engine.

Pipeline per message:
    local match -> local score -> [contextual, only on hits] -> fuse -> classify

The contextual stage is the only suspension point. It runs under a timeout
and any failure there leaves the local-only score in place. Catalog or
local-stage failures route to the fallback analyzer, so analyze() always
produces a result.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sentinela.shared.models import (
    AppointmentRecommendation,
    AssessmentSource,
    ContextualAssessment,
    KeywordMatchResult,
    KeywordRule,
    RiskAssessmentResult,
)
from .appointment import AppointmentAdvisor
from .config import AppointmentConfig, EngineConfig, TermLists, get_term_lists
from .contextual_analyzer import ContextualAnalyzer
from .exceptions import ContextualUnavailableError
from .fallback_analyzer import FallbackAnalyzer
from .indicator_detector import IndicatorAssessment, IndicatorDetector
from .keyword_catalog import KeywordCatalog
from .keyword_matcher import KeywordMatcher
from .reply_directives import ReplyDirectives, directives_for
from .score_calculator import ScoreCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnAssessment:
    """Everything the conversation layer needs for one turn."""
    result: RiskAssessmentResult
    indicators: IndicatorAssessment
    appointment: AppointmentRecommendation
    directives: ReplyDirectives

    def to_dict(self) -> Dict:
        return {
            "assessment": self.result.to_dict(),
            "profile_snapshot": self.result.to_profile_snapshot().to_dict(),
            "indicators": self.indicators.to_dict(),
            "appointment": self.appointment.to_dict(),
            "directives": self.directives.to_dict(),
        }


class RiskAssessmentEngine:
    """Coordinates the local, contextual and fallback analysis paths."""

    def __init__(
        self,
        catalog: KeywordCatalog,
        contextual_analyzer: Optional[ContextualAnalyzer] = None,
        config: Optional[EngineConfig] = None,
        appointment_config: Optional[AppointmentConfig] = None,
        term_lists: Optional[TermLists] = None,
        calculator: Optional[ScoreCalculator] = None,
    ):
        """Initialize engine.

        Args:
            catalog: Source of expert keyword rules
            contextual_analyzer: LLM second opinion, None to run local-only
            config: Pipeline behavior
            appointment_config: Referral thresholds and wording
            term_lists: Critical terms and colloquial expressions
            calculator: Score calculator shared by every path
        """
        self.catalog = catalog
        self.contextual_analyzer = contextual_analyzer
        self.config = config or EngineConfig()
        self.appointment_config = appointment_config or AppointmentConfig()
        self.term_lists = term_lists or get_term_lists()
        self.calculator = calculator or ScoreCalculator()

        self.matcher = KeywordMatcher(
            context_window_words=self.config.context_window_words,
            min_singular_length=self.config.min_singular_length,
        )
        self.detector = IndicatorDetector(
            term_lists=self.term_lists,
            classification=self.calculator.thresholds,
        )
        self.fallback = FallbackAnalyzer(self.term_lists, self.calculator)
        self.advisor = AppointmentAdvisor(self.appointment_config)

        logger.info(
            "RISK_ENGINE_INITIALIZED",
            extra={
                "catalog": type(catalog).__name__,
                "contextual_enabled": self.config.contextual_enabled and contextual_analyzer is not None,
                "contextual_timeout_seconds": self.config.contextual_timeout_seconds,
                "term_lists_version": self.term_lists.version,
            }
        )

    async def analyze(
        self,
        text: str,
        scope: str,
        use_contextual: bool = True,
    ) -> RiskAssessmentResult:
        """Assess one message against a scope's keyword catalog.

        Never raises for catalog or collaborator failures; degrades to the
        fallback analyzer or to local-only scoring instead.

        Args:
            text: Raw message text
            scope: Institution whose catalog applies
            use_contextual: Allow the LLM stage for this call

        Returns:
            RiskAssessmentResult on the canonical scale
        """
        try:
            rules = self.catalog.list_active_rules(scope)
        except Exception as e:
            logger.error(
                "KEYWORD_CATALOG_UNAVAILABLE",
                extra={
                    "scope": scope,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return self.fallback.analyze(text, scope)

        try:
            match = self.matcher.match(text, rules)
            local = self.calculator.local_score(match.detected_keywords)
        except Exception as e:
            logger.error(
                "LOCAL_ANALYSIS_FAILED",
                extra={
                    "scope": scope,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return self.fallback.analyze(text, scope)

        contextual = None
        if match.has_hits and use_contextual and self._contextual_available():
            contextual = await self._run_contextual(text, match, rules)

        score = self.calculator.fuse(local.total, contextual)
        level = self.calculator.classify(score)

        result = RiskAssessmentResult(
            level=level,
            score=score,
            detected_keywords=match.detected_keywords,
            contextual=contextual,
            summary=self._summary(match, contextual, level.value),
            source=AssessmentSource.KEYWORD,
            pattern_version=self.term_lists.for_scope(scope).version,
        )

        logger.info(
            "RISK_ASSESSMENT_COMPLETED",
            extra={
                "scope": scope,
                "level": level.value,
                "score": score,
                "local_score": local.total,
                "keywords_detected": match.keyword_count,
                "contextual_used": contextual is not None,
            }
        )
        return result

    async def assess_turn(
        self,
        text: str,
        scope: Optional[str] = None,
        use_contextual: bool = True,
    ) -> TurnAssessment:
        """Assess a conversation turn.

        The keyword path runs when a scope is given. Without one, the
        indicator detector's canonical translation is the result. The
        detector always runs: it drives the crisis override and the reply
        directives.
        """
        indicators = self.detector.detect(text, scope)

        if scope:
            result = await self.analyze(text, scope, use_contextual=use_contextual)
        else:
            result = self._indicator_result(indicators)

        appointment = self.advisor.decide(result, indicators)
        directives = directives_for(indicators, self.appointment_config.scheduling_url)

        return TurnAssessment(
            result=result,
            indicators=indicators,
            appointment=appointment,
            directives=directives,
        )

    def _contextual_available(self) -> bool:
        return self.config.contextual_enabled and self.contextual_analyzer is not None

    async def _run_contextual(
        self,
        text: str,
        match: KeywordMatchResult,
        rules: Sequence[KeywordRule],
    ) -> Optional[ContextualAssessment]:
        """Second stage, bounded by the configured timeout."""
        try:
            return await asyncio.wait_for(
                self.contextual_analyzer.analyze(text, match, rules),
                timeout=self.config.contextual_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "CONTEXTUAL_ANALYSIS_TIMEOUT",
                extra={"timeout_seconds": self.config.contextual_timeout_seconds}
            )
        except ContextualUnavailableError as e:
            logger.warning(
                "CONTEXTUAL_ANALYSIS_UNAVAILABLE",
                extra={"error": str(e)}
            )
        except Exception as e:
            logger.error(
                "CONTEXTUAL_ANALYSIS_ERROR",
                extra={"error": str(e), "error_type": type(e).__name__}
            )
        return None

    def _indicator_result(self, indicators: IndicatorAssessment) -> RiskAssessmentResult:
        active = indicators.active_indicators()
        if active:
            summary = (
                f"Análisis por indicadores: {', '.join(active)}. "
                f"Nivel de riesgo: {indicators.canonical_level.value.upper()}."
            )
        else:
            summary = "No se detectaron indicadores de riesgo significativos."

        return RiskAssessmentResult(
            level=indicators.canonical_level,
            score=indicators.canonical_score,
            summary=summary,
            source=AssessmentSource.INDICATOR,
            pattern_version=self.term_lists.version,
        )

    @staticmethod
    def _summary(
        match: KeywordMatchResult,
        contextual: Optional[ContextualAssessment],
        level: str,
    ) -> str:
        if not match.has_hits:
            return "No se detectaron palabras clave de riesgo significativas."

        parts: List[str] = [f"Se detectaron {match.keyword_count} palabra(s) clave de riesgo."]
        if contextual is not None and contextual.emotional_context:
            parts.append(f"Contexto emocional: {contextual.emotional_context}.")
        parts.append(f"Nivel de riesgo: {level.upper()}.")
        return " ".join(parts)
