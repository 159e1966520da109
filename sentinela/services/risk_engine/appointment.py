"""Appointment decision logic.

Recommends a professional appointment when the canonical level is alto or
critico, the score reaches the configured threshold, or the indicator
detector saw suicidal ideation or self-harm. The last case ignores every
threshold.
"""
import logging
from typing import Optional

from sentinela.shared.models import AppointmentRecommendation, RiskAssessmentResult
from .config import AppointmentConfig
from .indicator_detector import IndicatorAssessment

logger = logging.getLogger(__name__)

REASON_CRISIS_INDICATOR = "crisis_indicator"
REASON_RISK_LEVEL = "risk_level"
REASON_RISK_SCORE = "risk_score"
REASON_BELOW_THRESHOLD = "below_threshold"


class AppointmentAdvisor:
    """Decides whether a reply should carry a referral call to action."""

    def __init__(self, config: Optional[AppointmentConfig] = None):
        self.config = config or AppointmentConfig()

    def decide(
        self,
        result: RiskAssessmentResult,
        indicators: Optional[IndicatorAssessment] = None,
    ) -> AppointmentRecommendation:
        crisis = indicators is not None and indicators.has_crisis_signal

        if crisis:
            reason = REASON_CRISIS_INDICATOR
        elif result.level.is_high:
            reason = REASON_RISK_LEVEL
        elif result.score >= self.config.score_threshold:
            reason = REASON_RISK_SCORE
        else:
            logger.debug(
                "APPOINTMENT_NOT_RECOMMENDED",
                extra={"level": result.level.value, "score": result.score}
            )
            return AppointmentRecommendation(recommended=False, reason=REASON_BELOW_THRESHOLD)

        urgent = crisis or result.level.is_high
        template = self.config.urgent_template if urgent else self.config.routine_template

        logger.info(
            "APPOINTMENT_RECOMMENDED",
            extra={
                "reason": reason,
                "urgent": urgent,
                "level": result.level.value,
                "score": result.score,
            }
        )

        return AppointmentRecommendation(
            recommended=True,
            urgent=urgent,
            reason=reason,
            message=template.format(url=self.config.scheduling_url),
            scheduling_url=self.config.scheduling_url,
        )
