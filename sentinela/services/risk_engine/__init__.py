"""Risk Engine: hybrid risk assessment of Spanish chat messages.

Expert keyword matching is the primary signal. An LLM contextual
assessment, when available, is fused in at a fixed 0.7/0.3 ratio. A
regex indicator detector runs alongside and can force a referral on
suicidal ideation or self-harm.

Components:
- keyword_catalog.py: Read access to expert keyword rules
- keyword_matcher.py: Local phrase matching with context windows
- score_calculator.py: Local score, fusion and classification
- indicator_detector.py: Clinical indicator regexes
- contextual_analyzer.py: LLM prompt and response validation
- fallback_analyzer.py: Critical-term scoring when the catalog fails
- appointment.py: Referral decision
- reply_directives.py: Tone guidance for the reply generator
- engine.py: Pipeline orchestration
- risk_alert_publisher.py: Kinesis alerts for alto/critico turns
- handler.py: Flask HTTP endpoints (/health, /ready, /analyze)

Usage:
    # As HTTP service
    POST /analyze {"text": "...", "scope": "...", "subject_id": "..."}

    # Direct import
    from sentinela.services.risk_engine import RiskAssessmentEngine
    engine = RiskAssessmentEngine(catalog)
    result = await engine.analyze(text, scope)
"""

from .appointment import AppointmentAdvisor
from .config import (
    AppointmentConfig,
    ClassificationThresholds,
    EngineConfig,
    IndicatorThresholds,
    IndicatorWeights,
    LocalScoreConfig,
    TermLists,
    get_term_lists,
    load_term_lists,
)
from .contextual_analyzer import ContextualAnalyzer
from .engine import RiskAssessmentEngine, TurnAssessment
from .exceptions import CatalogUnavailableError, ContextualUnavailableError, RiskEngineError
from .fallback_analyzer import FallbackAnalyzer
from .indicator_detector import IndicatorAssessment, IndicatorDetector
from .keyword_catalog import InMemoryKeywordCatalog, KeywordCatalog, PostgresKeywordCatalog
from .keyword_matcher import KeywordMatcher
from .reply_directives import ReplyDirectives, directives_for
from .risk_alert_publisher import RiskAlertEvent, RiskAlertPublisher
from .score_calculator import LocalScoreBreakdown, ScoreCalculator

__all__ = [
    "AppointmentAdvisor",
    "AppointmentConfig",
    "ClassificationThresholds",
    "EngineConfig",
    "IndicatorThresholds",
    "IndicatorWeights",
    "LocalScoreConfig",
    "TermLists",
    "get_term_lists",
    "load_term_lists",
    "ContextualAnalyzer",
    "RiskAssessmentEngine",
    "TurnAssessment",
    "CatalogUnavailableError",
    "ContextualUnavailableError",
    "RiskEngineError",
    "FallbackAnalyzer",
    "IndicatorAssessment",
    "IndicatorDetector",
    "InMemoryKeywordCatalog",
    "KeywordCatalog",
    "PostgresKeywordCatalog",
    "KeywordMatcher",
    "ReplyDirectives",
    "directives_for",
    "RiskAlertEvent",
    "RiskAlertPublisher",
    "LocalScoreBreakdown",
    "ScoreCalculator",
]
