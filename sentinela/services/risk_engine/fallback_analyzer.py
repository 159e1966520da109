"""Degraded-mode risk analysis.

Used when the keyword catalog cannot be read or the local pipeline fails.
Only the versioned critical-term list is consulted; no catalog, no LLM.
Must always return a result.
"""
import logging
from typing import Optional

from sentinela.shared.models import AssessmentSource, RiskAssessmentResult
from .config import TermLists, get_term_lists
from .keyword_matcher import normalize_text
from .score_calculator import ScoreCalculator

logger = logging.getLogger(__name__)


class FallbackAnalyzer:
    """Critical-term counter with the canonical classification."""

    POINTS_PER_TERM = 20
    MAX_SCORE = 100

    def __init__(
        self,
        term_lists: Optional[TermLists] = None,
        calculator: Optional[ScoreCalculator] = None,
    ):
        self.term_lists = term_lists or get_term_lists()
        self.calculator = calculator or ScoreCalculator()

    def analyze(self, text: str, scope: Optional[str] = None) -> RiskAssessmentResult:
        """Score text by the critical terms it contains.

        Args:
            text: Raw message text
            scope: Institution scope, selects scope-specific terms

        Returns:
            RiskAssessmentResult with source=fallback
        """
        terms = self.term_lists.for_scope(scope)
        normalized = normalize_text(text or "")

        found = sorted(term for term in terms.critical_terms if term in normalized)
        score = min(len(found) * self.POINTS_PER_TERM, self.MAX_SCORE)
        level = self.calculator.classify(score)

        if found:
            summary = (
                f"Análisis básico: se detectaron {len(found)} términos críticos. "
                f"Nivel de riesgo: {level.value}."
            )
        else:
            summary = "Análisis básico: no se detectaron términos críticos."

        logger.warning(
            "FALLBACK_ANALYSIS_COMPLETED",
            extra={
                "scope": scope,
                "critical_terms_found": len(found),
                "score": score,
                "level": level.value,
                "term_lists_version": terms.version,
            }
        )

        return RiskAssessmentResult(
            level=level,
            score=score,
            summary=summary,
            source=AssessmentSource.FALLBACK,
            pattern_version=terms.version,
        )
