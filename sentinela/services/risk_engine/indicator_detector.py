"""Indicator pattern detector for Spanish clinical language.

Independent of the expert keyword catalog. Each clinical indicator is a
set of regex rules over the raw message; the weighted sum of the indicators
that fire gives a coarse four-level assessment used to steer the reply and
to estimate same-turn risk when no catalog applies.

The four-level scale never leaves the engine. canonical_level and
canonical_score translate it onto the canonical minimo..critico scale.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sentinela.shared.models import IndicatorLevel, RiskLevel
from .config import (
    ClassificationThresholds,
    IndicatorThresholds,
    IndicatorWeights,
    TermLists,
    get_term_lists,
)

logger = logging.getLogger(__name__)


# Indicator name -> regex rules. Names are the keys of IndicatorSet.
INDICATOR_PATTERNS: Dict[str, List[str]] = {
    "suicidalIdeation": [
        r"\b(suicid\w*|matarme|acabar)\s+(conmigo|con mi vida|mi vida|con todo|todo)\b",
        r"\b(me voy a suicid\w*|me quiero suicid\w*|quiero suicid\w*|voy a matarme|quiero matarme|quiero morir\w*)\b",
        r"\b(no quiero vivir|no quiero seguir viviendo|no merece la pena vivir|prefiero estar muert[oa])\b",
        r"\b(acabar con esta vida|terminar con todo|quitarme la vida)\b",
        r"\b(mejor muert[oa]|ser[ií]a mejor si muriera)\b",
    ],
    "selfHarm": [
        r"\b(cortarme|hacerme daño|lastimarme|autolesi\w*)\b",
        r"\b(herirme|dañarme el cuerpo|golpearme)\b",
    ],
    "panicSymptoms": [
        r"\b(ataques? de p[aá]nico|p[aá]nico|desbordad[oa]|sobrepasad[oa])\b",
        r"\b(no puedo respirar|falta de aire|ahog[oa]\w*|sofoc[oa]\w*)\b",
        r"\b(hiperventil\w*|mareo intenso|v[eé]rtigo)\b",
        r"\b(perder el control|volverme loc[oa]|enloquecer)\b",
    ],
    "acuteAnxiety": [
        r"\b(crisis|emergencia|urgencia|desesperaci[oó]n)\b",
        r"\b(no aguanto m[aá]s|no puedo m[aá]s|l[ií]mite|colapso)\b",
    ],
    "physicalSymptoms": [
        r"\b(palpitac\w*|coraz[oó]n acelerad[oa]|taquicardi\w*|presi[oó]n en el pecho)\b",
        r"\b(temblor\w*|sudor\w*|manos h[uú]medas|escalofr[ií]o\w*)\b",
        r"\b(n[aá]usea\w*|mareo\w*|molestia estomacal|tensi[oó]n muscular)\b",
        r"\b(dolor de cabeza|bruxismo|mand[ií]bula apretada)\b",
    ],
    "cognitiveSymptoms": [
        r"\b(preocupaci[oó]n excesiva|pensamientos? repetitivos?|rumiaci[oó]n)\b",
        r"\b(no puedo parar de pensar|mente en blanco|confusi[oó]n)\b",
        r"\b(dificultad para concentrar\w*|olvidos frecuentes)\b",
        r"\b(miedo a perder el control|catastrofismo)\b",
    ],
    "emotionalSymptoms": [
        r"\b(ansied\w*|angusti\w*|nervios\w*|agitaci[oó]n)\b",
        r"\b(agobiad[oa]s?|abrumad[oa]s?|sobrecargad[oa]s?|estresad[oa]s?)\b",
        r"\b(miedo|temor|aprensiv[oa]|intranquil[oa])\b",
        r"\b(irritab\w*|impaciente|molest[oa])\b",
    ],
    "severityIndicators": [
        r"\b(siempre|nunca|nada|todo|nadie)\b",
        r"\b(extremadamente|terriblemente|horriblemente|insoportable)\b",
        r"\b(no soporto|no resisto|no doy m[aá]s)\b",
    ],
    "hopelessness": [
        r"\b(sin esperanza|sin soluci[oó]n|sin salida)\b",
        r"\b(no hay remedio|no tiene arreglo|todo est[aá] mal)\b",
        r"\b(fracasad[oa]|in[uú]til|no sirvo para nada)\b",
    ],
}

# Indicator name -> IndicatorWeights attribute
_WEIGHT_FIELDS: Dict[str, str] = {
    "suicidalIdeation": "suicidal_ideation",
    "selfHarm": "self_harm",
    "panicSymptoms": "panic_symptoms",
    "acuteAnxiety": "acute_anxiety",
    "hopelessness": "hopelessness",
    "physicalSymptoms": "physical_symptoms",
    "cognitiveSymptoms": "cognitive_symptoms",
    "emotionalSymptoms": "emotional_symptoms",
    "severityIndicators": "severity_indicators",
}

CRISIS_INDICATORS: Tuple[str, ...] = ("suicidalIdeation", "selfHarm")

_CANONICAL_BY_INDICATOR: Dict[IndicatorLevel, RiskLevel] = {
    IndicatorLevel.MINIMO: RiskLevel.MINIMO,
    IndicatorLevel.LEVE: RiskLevel.BAJO,
    IndicatorLevel.MODERADO: RiskLevel.MEDIO,
    IndicatorLevel.ALTO: RiskLevel.ALTO,
}


@dataclass(frozen=True)
class IndicatorAssessment:
    """Result of one indicator scan. Produced fresh per message."""
    indicators: Dict[str, bool] = field(default_factory=dict)
    colloquial_expressions: Tuple[str, ...] = ()
    raw_score: int = 0
    level: IndicatorLevel = IndicatorLevel.MINIMO
    canonical_level: RiskLevel = RiskLevel.MINIMO
    canonical_score: int = 0

    @property
    def colloquial_count(self) -> int:
        return len(self.colloquial_expressions)

    @property
    def has_crisis_signal(self) -> bool:
        """Suicidal ideation or self-harm fired. Overrides every threshold."""
        return any(self.indicators.get(name, False) for name in CRISIS_INDICATORS)

    def active_indicators(self) -> List[str]:
        return [name for name, fired in self.indicators.items() if fired]

    def to_dict(self) -> Dict:
        return {
            "indicators": dict(self.indicators),
            "colloquial_expressions": list(self.colloquial_expressions),
            "raw_score": self.raw_score,
            "level": self.level.value,
            "canonical_level": self.canonical_level.value,
            "canonical_score": self.canonical_score,
            "crisis_signal": self.has_crisis_signal,
        }


class IndicatorDetector:
    """Deterministic regex detector for clinical indicator categories."""

    def __init__(
        self,
        term_lists: Optional[TermLists] = None,
        weights: Optional[IndicatorWeights] = None,
        thresholds: Optional[IndicatorThresholds] = None,
        classification: Optional[ClassificationThresholds] = None,
    ):
        self.term_lists = term_lists or get_term_lists()
        self.weights = weights or IndicatorWeights()
        self.thresholds = thresholds or IndicatorThresholds()
        self.classification = classification or ClassificationThresholds()

        self._compiled: Dict[str, List[re.Pattern]] = {
            name: [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
            for name, patterns in INDICATOR_PATTERNS.items()
        }

        logger.info("INDICATOR_DETECTOR_INITIALIZED", extra={
            "indicator_categories": len(self._compiled),
            "pattern_count": sum(len(p) for p in self._compiled.values()),
            "colloquial_expressions": len(self.term_lists.colloquial_expressions),
            "term_lists_version": self.term_lists.version,
        })

    def detect(self, text: str, scope: Optional[str] = None) -> IndicatorAssessment:
        """Scan a message for every indicator category.

        Args:
            text: Raw message text
            scope: Institution scope, selects scope-specific expressions

        Returns:
            IndicatorAssessment with both scales filled in
        """
        normalized = text.lower().strip()

        indicators = {
            name: any(p.search(normalized) for p in patterns)
            for name, patterns in self._compiled.items()
        }
        colloquial = self._detect_colloquial(normalized, scope)
        raw_score = self._weighted_sum(indicators, len(colloquial))
        level = self._indicator_level(raw_score)
        canonical_score = self.to_canonical_score(raw_score)

        assessment = IndicatorAssessment(
            indicators=indicators,
            colloquial_expressions=colloquial,
            raw_score=raw_score,
            level=level,
            canonical_level=_CANONICAL_BY_INDICATOR[level],
            canonical_score=canonical_score,
        )

        if assessment.has_crisis_signal:
            logger.critical("INDICATOR_CRISIS_SIGNAL", extra={
                "indicators": assessment.active_indicators(),
                "raw_score": raw_score,
            })
        else:
            logger.info("INDICATOR_DETECTION_COMPLETED", extra={
                "indicators": assessment.active_indicators(),
                "colloquial_count": len(colloquial),
                "raw_score": raw_score,
                "level": level.value,
            })

        return assessment

    def _detect_colloquial(self, normalized: str, scope: Optional[str]) -> Tuple[str, ...]:
        expressions = self.term_lists.for_scope(scope).colloquial_expressions
        return tuple(sorted(
            name for name, variants in expressions.items()
            if any(variant in normalized for variant in variants)
        ))

    def _weighted_sum(self, indicators: Dict[str, bool], colloquial_count: int) -> int:
        score = sum(
            getattr(self.weights, _WEIGHT_FIELDS[name])
            for name, fired in indicators.items() if fired
        )
        if colloquial_count:
            score += min(
                colloquial_count * self.weights.colloquial_per_expression,
                self.weights.colloquial_cap,
            )
        return score

    def _indicator_level(self, raw_score: int) -> IndicatorLevel:
        t = self.thresholds
        if raw_score >= t.ALTO_MIN:
            return IndicatorLevel.ALTO
        elif raw_score >= t.MODERADO_MIN:
            return IndicatorLevel.MODERADO
        elif raw_score >= t.LEVE_MIN:
            return IndicatorLevel.LEVE
        else:
            return IndicatorLevel.MINIMO

    def to_canonical_score(self, raw_score: int) -> int:
        """Translate a raw indicator sum onto the canonical 0-100 scale.

        Each indicator band maps linearly into the canonical band of its
        translated level, so classifying the result gives back that level:
            minimo [0,5)    -> [0,20)
            leve   [5,15)   -> [20,40)
            moderado[15,30) -> [40,60)
            alto   [30,100] -> [60,80)
        The detector alone never reaches critico.
        """
        t = self.thresholds
        c = self.classification
        raw = max(0, min(raw_score, t.RAW_CEILING))

        bands = (
            (t.ALTO_MIN, t.RAW_CEILING, c.ALTO_MIN, c.CRITICO_MIN),
            (t.MODERADO_MIN, t.ALTO_MIN, c.MEDIO_MIN, c.ALTO_MIN),
            (t.LEVE_MIN, t.MODERADO_MIN, c.BAJO_MIN, c.MEDIO_MIN),
            (0, t.LEVE_MIN, 0, c.BAJO_MIN),
        )
        for raw_lo, raw_hi, canon_lo, canon_hi in bands:
            if raw >= raw_lo:
                span = (raw - raw_lo) * (canon_hi - canon_lo) // max(1, raw_hi - raw_lo)
                return min(canon_lo + span, canon_hi - 1)
        return 0
