"""Reply directives keyed by indicator level.

Text blocks that steer the external reply generator: conversational tone,
when to bring up a professional appointment, and which indicators fired.
Generating the reply itself happens elsewhere.
"""
from dataclasses import dataclass
from typing import Dict, Tuple

from sentinela.shared.models import IndicatorLevel
from .indicator_detector import IndicatorAssessment

NO_INDICATORS_LABEL = "Sin indicadores significativos"

TONE_DIRECTIVES: Dict[IndicatorLevel, str] = {
    IndicatorLevel.ALTO: (
        "PRIORIDAD MÁXIMA - POSIBLE CRISIS\n"
        "• Valida de inmediato lo que la persona siente, sin minimizarlo\n"
        "• Indica con claridad la línea 106 y los servicios de urgencias\n"
        "• Anima a buscar ayuda profesional hoy mismo\n"
        "• Ofrece contención y acompañamiento"
    ),
    IndicatorLevel.MODERADO: (
        "MALESTAR MODERADO - ATENCIÓN NECESARIA\n"
        "• Reconoce la intensidad de la experiencia\n"
        "• Propón una técnica de grounding o respiración\n"
        "• Menciona que la ansiedad es tratable"
    ),
    IndicatorLevel.LEVE: (
        "MALESTAR LEVE - APOYO PREVENTIVO\n"
        "• Comparte una técnica práctica de relajación\n"
        "• Normaliza la experiencia\n"
        "• Sugiere seguimiento si los síntomas persisten"
    ),
    IndicatorLevel.MINIMO: (
        "CONVERSACIÓN GENERAL - ESCUCHA ACTIVA\n"
        "• Pregunta si hay alguna preocupación concreta\n"
        "• Mantén un tono cálido y de apoyo"
    ),
}

APPOINTMENT_GUIDELINES: Dict[IndicatorLevel, str] = {
    IndicatorLevel.ALTO: (
        "• Incluye SIEMPRE la recomendación de cita al final\n"
        "• Enlace de citas: {url}"
    ),
    IndicatorLevel.MODERADO: (
        "• Menciona la plataforma de citas como opción de seguimiento\n"
        "• Enlace de citas: {url}"
    ),
    IndicatorLevel.LEVE: (
        "• Puedes presentar la atención profesional como recurso preventivo"
    ),
    IndicatorLevel.MINIMO: (
        "• No menciones citas salvo que la persona lo pida"
    ),
}


@dataclass(frozen=True)
class ReplyDirectives:
    """Steering text for one reply."""
    level: IndicatorLevel
    tone: str
    appointment_guidelines: str
    active_indicators: Tuple[str, ...] = ()

    @property
    def indicators_label(self) -> str:
        return ", ".join(self.active_indicators) or NO_INDICATORS_LABEL

    def build_system_prompt(self) -> str:
        return (
            f"Indicadores detectados: {self.indicators_label}\n\n"
            f"{self.tone}\n\n"
            f"Citas profesionales:\n{self.appointment_guidelines}"
        )

    def to_dict(self) -> Dict:
        return {
            "level": self.level.value,
            "tone": self.tone,
            "appointment_guidelines": self.appointment_guidelines,
            "active_indicators": list(self.active_indicators),
        }


def directives_for(assessment: IndicatorAssessment, scheduling_url: str) -> ReplyDirectives:
    """Select the directives matching an indicator assessment."""
    return ReplyDirectives(
        level=assessment.level,
        tone=TONE_DIRECTIVES[assessment.level],
        appointment_guidelines=APPOINTMENT_GUIDELINES[assessment.level].format(url=scheduling_url),
        active_indicators=tuple(assessment.active_indicators()),
    )
