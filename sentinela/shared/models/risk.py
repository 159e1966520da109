"""Risk level and keyword domain models.

This file defines the core enums and data structures for risk assessment.
The canonical five-level scale (minimo..critico) is the only vocabulary
exposed outside the engine.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RiskLevel(Enum):
    """Canonical ordinal risk classification.

    Ordering: MINIMO < BAJO < MEDIO < ALTO < CRITICO.
    """
    MINIMO = "minimo"
    BAJO = "bajo"
    MEDIO = "medio"
    ALTO = "alto"
    CRITICO = "critico"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def is_high(self) -> bool:
        """ALTO and CRITICO warrant an urgent referral."""
        return self in (RiskLevel.ALTO, RiskLevel.CRITICO)


_RISK_ORDER: Tuple[RiskLevel, ...] = (
    RiskLevel.MINIMO,
    RiskLevel.BAJO,
    RiskLevel.MEDIO,
    RiskLevel.ALTO,
    RiskLevel.CRITICO,
)


class IndicatorLevel(Enum):
    """Coarse four-level scale of the indicator pattern detector.

    Internal to reply-tone selection. Translate with
    IndicatorAssessment.canonical_level before it leaves the engine.
    """
    MINIMO = "minimo"
    LEVE = "leve"
    MODERADO = "moderado"
    ALTO = "alto"


class SymptomCategory(Enum):
    """Symptom categories experts can attach to a keyword."""
    ANXIETY = "anxiety"
    DEPRESSION = "depression"
    INSOMNIA = "insomnia"
    STRESS = "stress"
    PANIC = "panic"
    OTHER = "other"

    @classmethod
    def from_label(cls, label: str) -> "SymptomCategory":
        """Parse an English value or one of the Spanish catalog labels."""
        normalized = (label or "").strip().lower()
        normalized = _SPANISH_SYMPTOMS.get(normalized, normalized)
        return cls(normalized)


_SPANISH_SYMPTOMS: Dict[str, str] = {
    "ansiedad": "anxiety",
    "depresion": "depression",
    "depresión": "depression",
    "insomnio": "insomnia",
    "estres": "stress",
    "estrés": "stress",
    "panico": "panic",
    "pánico": "panic",
    "otros": "other",
}


class ContextualLevel(Enum):
    """Risk level reported by the contextual analyzer."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Urgency(Enum):
    """Urgency reported by the contextual analyzer."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    IMMEDIATE = "immediate"


class AssessmentSource(Enum):
    """Which analysis path produced a RiskAssessmentResult."""
    KEYWORD = "keyword"         # Catalog match, optionally fused with contextual
    FALLBACK = "fallback"       # Degraded mode, critical terms only
    INDICATOR = "indicator"     # No catalog for the subject, indicator translation


@dataclass(frozen=True)
class KeywordRule:
    """An expert-defined keyword for one institution scope.

    Immutable - the catalog is read-only from the engine's perspective.
    """
    symptom_category: SymptomCategory
    phrase: str
    weight: int
    scope: str
    owner: str = ""
    active: bool = True

    def __post_init__(self):
        if not isinstance(self.weight, int) or not 1 <= self.weight <= 5:
            raise ValueError(f"Keyword weight must be 1-5, got {self.weight}")
        phrase = " ".join((self.phrase or "").lower().split())
        if not phrase:
            raise ValueError("Keyword phrase must not be empty")
        object.__setattr__(self, "phrase", phrase)

    @property
    def identity(self) -> Tuple[str, str, SymptomCategory]:
        """Uniqueness key among active rules."""
        return (self.scope, self.phrase, self.symptom_category)


@dataclass(frozen=True)
class DetectedKeyword:
    """A catalog keyword found in the analyzed text."""
    phrase: str
    symptom_category: SymptomCategory
    weight: int
    context_window: Tuple[str, ...] = ()
    exact_match: bool = True

    @property
    def context(self) -> str:
        return " ".join(self.context_window)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.phrase,
            "symptom": self.symptom_category.value,
            "weight": self.weight,
            "context": self.context,
            "exact_match": self.exact_match,
        }


@dataclass(frozen=True)
class ContextualAssessment:
    """Secondary assessment returned by the language model.

    Untrusted input, only constructed after the model answer validates.
    """
    level: ContextualLevel
    score: float
    confidence: float = 0.0
    emotional_context: str = ""
    key_concerns: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
    urgency: Urgency = Urgency.LOW
    needs_appointment: Optional[bool] = None

    def __post_init__(self):
        if not 0.0 <= self.score <= 100.0:
            raise ValueError(f"Contextual score must be 0-100, got {self.score}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "score": self.score,
            "confidence": self.confidence,
            "emotional_context": self.emotional_context,
            "key_concerns": list(self.key_concerns),
            "recommendations": list(self.recommendations),
            "urgency": self.urgency.value,
            "needs_appointment": self.needs_appointment,
        }


@dataclass(frozen=True)
class RiskProfileSnapshot:
    """Last-assessment snapshot written onto a subject's profile.

    Overwrites the previous snapshot, never merged.
    """
    risk_level: RiskLevel
    risk_score: int
    assessed_at: datetime
    keywords_detected: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "risk_score": self.risk_score,
            "assessed_at": self.assessed_at.isoformat(),
            "keywords_detected": self.keywords_detected,
        }


@dataclass(frozen=True)
class RiskAssessmentResult:
    """Output of one engine invocation.

    Never mutated after creation; a new assessment supersedes the prior one.
    """
    level: RiskLevel
    score: int
    detected_keywords: Tuple[DetectedKeyword, ...] = ()
    contextual: Optional[ContextualAssessment] = None
    summary: str = ""
    source: AssessmentSource = AssessmentSource.KEYWORD
    pattern_version: str = ""
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"Risk score must be 0-100, got {self.score}")

    @property
    def keyword_count(self) -> int:
        return len(self.detected_keywords)

    def to_profile_snapshot(self) -> RiskProfileSnapshot:
        return RiskProfileSnapshot(
            risk_level=self.level,
            risk_score=self.score,
            assessed_at=self.timestamp,
            keywords_detected=self.keyword_count,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "risk_level": self.level.value,
            "risk_score": self.score,
            "detected_keywords": [kw.to_dict() for kw in self.detected_keywords],
            "contextual_analysis": self.contextual.to_dict() if self.contextual else None,
            "summary": self.summary,
            "source": self.source.value,
            "pattern_version": self.pattern_version,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class AppointmentRecommendation:
    """Decision on whether to append a professional-referral call to action."""
    recommended: bool
    urgent: bool = False
    reason: str = ""
    message: str = ""
    scheduling_url: str = ""

    def append_to_reply(self, reply: str) -> str:
        if not self.recommended:
            return reply
        return f"{reply}{self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended": self.recommended,
            "urgent": self.urgent,
            "reason": self.reason,
            "message": self.message,
            "scheduling_url": self.scheduling_url,
        }


@dataclass(frozen=True)
class KeywordMatchResult:
    """Aggregate output of the local keyword matcher."""
    detected_keywords: Tuple[DetectedKeyword, ...] = ()
    total_weight: int = 0

    @property
    def keyword_count(self) -> int:
        return len(self.detected_keywords)

    @property
    def has_hits(self) -> bool:
        return bool(self.detected_keywords)

    def weights(self) -> List[int]:
        return [kw.weight for kw in self.detected_keywords]
