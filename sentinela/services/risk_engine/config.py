"""Risk engine configuration: thresholds, score weights and term lists.

Numeric thresholds are frozen dataclasses. The critical-term and colloquial
expression lists are versioned data (data/term_lists.json), loaded once per
process and never mutated at runtime.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TERM_LISTS_PATH = Path(__file__).parent / "data" / "term_lists.json"

DEFAULT_APPOINTMENT_URL = "https://sigepsi.garcessebastian.com/"


@dataclass(frozen=True)
class ClassificationThresholds:
    """Canonical five-level classification, inclusive lower bounds (0-100)."""
    CRITICO_MIN: int = 80
    ALTO_MIN: int = 60
    MEDIO_MIN: int = 40
    BAJO_MIN: int = 20


@dataclass(frozen=True)
class LocalScoreConfig:
    """Weight-dominant local score.

    The highest matched weight sets the base; breadth and repeated
    high-severity language add capped bonuses.
    """
    base_by_max_weight: Mapping[int, int] = field(
        default_factory=lambda: {5: 80, 4: 60, 3: 40, 2: 20, 1: 10}
    )
    count_bonus_per_hit: int = 2
    count_bonus_cap: int = 15
    high_weight_min: int = 4
    high_weight_bonus_per_hit: int = 10
    high_weight_bonus_cap: int = 20
    medium_weight: int = 3
    medium_weight_bonus_per_hit: int = 3
    medium_weight_bonus_cap: int = 10


@dataclass(frozen=True)
class IndicatorWeights:
    """Points per indicator category of the pattern detector."""
    suicidal_ideation: int = 40
    self_harm: int = 35
    panic_symptoms: int = 25
    acute_anxiety: int = 20
    hopelessness: int = 15
    physical_symptoms: int = 12
    cognitive_symptoms: int = 10
    emotional_symptoms: int = 8
    severity_indicators: int = 5
    colloquial_per_expression: int = 3
    colloquial_cap: int = 10


@dataclass(frozen=True)
class IndicatorThresholds:
    """Four-level indicator scale, inclusive lower bounds on the raw sum."""
    ALTO_MIN: int = 30
    MODERADO_MIN: int = 15
    LEVE_MIN: int = 5
    # Raw sums above this translate to the top of the canonical ALTO band
    RAW_CEILING: int = 100


@dataclass(frozen=True)
class AppointmentConfig:
    """When and how to recommend a professional appointment."""
    score_threshold: int = 40
    scheduling_url: str = DEFAULT_APPOINTMENT_URL
    urgent_template: str = (
        "\n\n---\n💙 **¿Necesitas más apoyo?**\n"
        "Puedes agendar una cita con psicólogos especializados\n"
        "[📅 Solicitar cita ahora]({url})"
    )
    routine_template: str = (
        "\n\n---\n💙 **Seguimiento profesional**\n"
        "Para un apoyo más continuo\n"
        "[📅 Agendar cita]({url})"
    )

    @classmethod
    def from_env(cls) -> "AppointmentConfig":
        return cls(
            score_threshold=int(os.getenv("APPOINTMENT_SCORE_THRESHOLD", "40")),
            scheduling_url=os.getenv("APPOINTMENT_URL", DEFAULT_APPOINTMENT_URL),
        )


@dataclass(frozen=True)
class EngineConfig:
    """Pipeline behavior."""
    contextual_enabled: bool = True
    # The contextual call is the only suspension point; bound it.
    contextual_timeout_seconds: float = 25.0
    context_window_words: int = 5
    # Naive singular retry is skipped for stems shorter than this
    min_singular_length: int = 3

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Environment variables:
            CONTEXTUAL_ANALYSIS_ENABLED: "true"/"false" (default true)
            CONTEXTUAL_TIMEOUT_SECONDS: float (default 25)
            CONTEXT_WINDOW_WORDS: int (default 5)
        """
        return cls(
            contextual_enabled=os.getenv("CONTEXTUAL_ANALYSIS_ENABLED", "true").lower() == "true",
            contextual_timeout_seconds=float(os.getenv("CONTEXTUAL_TIMEOUT_SECONDS", "25")),
            context_window_words=int(os.getenv("CONTEXT_WINDOW_WORDS", "5")),
        )


@dataclass(frozen=True)
class TermLists:
    """Versioned critical-term and colloquial-expression lists for one scope."""
    version: str
    critical_terms: FrozenSet[str] = frozenset()
    # canonical expression -> variants that count as that expression
    colloquial_expressions: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    scope_overrides: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def for_scope(self, scope: Optional[str]) -> "TermLists":
        """Return the lists with the scope's additions merged in."""
        override = self.scope_overrides.get(scope) if scope else None
        if not override:
            return self

        critical = set(self.critical_terms)
        critical.update(_normalize_terms(override.get("critical_terms", [])))

        colloquial = dict(self.colloquial_expressions)
        colloquial.update(_normalize_expressions(override.get("colloquial_expressions", {})))

        return TermLists(
            version=f"{self.version}+{scope}",
            critical_terms=frozenset(critical),
            colloquial_expressions=colloquial,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TermLists":
        if "version" not in data:
            raise ValueError("Term lists must declare a version")
        return cls(
            version=str(data["version"]),
            critical_terms=frozenset(_normalize_terms(data.get("critical_terms", []))),
            colloquial_expressions=_normalize_expressions(data.get("colloquial_expressions", {})),
            scope_overrides=dict(data.get("scopes", {})),
        )


def _normalize_terms(terms) -> list:
    return [" ".join(str(t).lower().split()) for t in terms if str(t).strip()]


def _normalize_expressions(expressions: Mapping[str, Any]) -> Dict[str, Tuple[str, ...]]:
    normalized = {}
    for name, variants in expressions.items():
        if isinstance(variants, str):
            variants = [variants]
        normalized[name.lower()] = tuple(_normalize_terms(variants)) or (name.lower(),)
    return normalized


def load_term_lists(path: Optional[Path] = None) -> TermLists:
    """Read term lists from a JSON file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not valid term-list JSON
    """
    path = Path(path or DEFAULT_TERM_LISTS_PATH)
    with path.open(encoding="utf-8") as f:
        data = json.load(f)

    term_lists = TermLists.from_dict(data)
    logger.info(
        "TERM_LISTS_LOADED",
        extra={
            "path": str(path),
            "version": term_lists.version,
            "critical_terms": len(term_lists.critical_terms),
            "colloquial_expressions": len(term_lists.colloquial_expressions),
            "scopes": len(term_lists.scope_overrides),
        }
    )
    return term_lists


_term_lists: Optional[TermLists] = None


def get_term_lists() -> TermLists:
    """Process-wide term lists, loaded on first use.

    TERM_LISTS_PATH overrides the packaged default file.
    """
    global _term_lists

    if _term_lists is None:
        _term_lists = load_term_lists(os.getenv("TERM_LISTS_PATH") or None)

    return _term_lists
