"""Shared domain models for Sentinela."""
from .risk import (
    RiskLevel,
    IndicatorLevel,
    SymptomCategory,
    ContextualLevel,
    Urgency,
    AssessmentSource,
    KeywordRule,
    DetectedKeyword,
    KeywordMatchResult,
    ContextualAssessment,
    RiskAssessmentResult,
    RiskProfileSnapshot,
    AppointmentRecommendation,
)

__all__ = [
    "RiskLevel",
    "IndicatorLevel",
    "SymptomCategory",
    "ContextualLevel",
    "Urgency",
    "AssessmentSource",
    "KeywordRule",
    "DetectedKeyword",
    "KeywordMatchResult",
    "ContextualAssessment",
    "RiskAssessmentResult",
    "RiskProfileSnapshot",
    "AppointmentRecommendation",
]
