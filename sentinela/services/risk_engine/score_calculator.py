"""Local score calculation, score fusion and canonical classification.

Scores are integers 0-100 on the canonical scale. Classification is
monotonic: a higher score never yields a lower RiskLevel.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from sentinela.shared.models import ContextualAssessment, DetectedKeyword, RiskLevel
from .config import ClassificationThresholds, LocalScoreConfig

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


@dataclass(frozen=True)
class LocalScoreBreakdown:
    """Explainable parts of a local score."""
    max_weight: int = 0
    base: int = 0
    count_bonus: int = 0
    high_weight_bonus: int = 0
    medium_weight_bonus: int = 0
    total: int = 0


class ScoreCalculator:
    """Turns matched keywords into a score and a score into a RiskLevel."""

    # Fusion weights when a contextual assessment is available
    LOCAL_WEIGHT = 0.7
    CONTEXTUAL_WEIGHT = 0.3

    def __init__(
        self,
        config: Optional[LocalScoreConfig] = None,
        thresholds: Optional[ClassificationThresholds] = None,
    ):
        self.config = config or LocalScoreConfig()
        self.thresholds = thresholds or ClassificationThresholds()

    def local_score(self, detected: Sequence[DetectedKeyword]) -> LocalScoreBreakdown:
        """Weight-dominant score of the matched keywords.

        A single weight-5 keyword already lands in the critico band; breadth
        and repeated high-weight language add bounded increments.
        """
        if not detected:
            return LocalScoreBreakdown()

        cfg = self.config
        weights = [kw.weight for kw in detected]
        max_weight = max(weights)

        base = cfg.base_by_max_weight.get(max_weight, 0)
        count_bonus = min(cfg.count_bonus_per_hit * len(weights), cfg.count_bonus_cap)
        high_count = len([w for w in weights if w >= cfg.high_weight_min])
        high_weight_bonus = min(cfg.high_weight_bonus_per_hit * high_count, cfg.high_weight_bonus_cap)
        medium_count = len([w for w in weights if w == cfg.medium_weight])
        medium_weight_bonus = min(cfg.medium_weight_bonus_per_hit * medium_count, cfg.medium_weight_bonus_cap)

        total = clamp_score(base + count_bonus + high_weight_bonus + medium_weight_bonus)

        breakdown = LocalScoreBreakdown(
            max_weight=max_weight,
            base=base,
            count_bonus=count_bonus,
            high_weight_bonus=high_weight_bonus,
            medium_weight_bonus=medium_weight_bonus,
            total=total,
        )

        logger.debug(
            "LOCAL_SCORE_CALCULATED",
            extra={
                "max_weight": max_weight,
                "base": base,
                "count_bonus": count_bonus,
                "high_weight_bonus": high_weight_bonus,
                "medium_weight_bonus": medium_weight_bonus,
                "total": total,
            }
        )
        return breakdown

    def fuse(self, local_score: int, contextual: Optional[ContextualAssessment]) -> int:
        """Combine local and contextual scores.

        Without a contextual assessment the local score stands alone.
        """
        if contextual is None:
            return clamp_score(local_score)

        fused = local_score * self.LOCAL_WEIGHT + contextual.score * self.CONTEXTUAL_WEIGHT
        # Drop binary float noise so 50.49999999 rounds like 50.5
        return clamp_score(round(fused, 6))

    def classify(self, score: float) -> RiskLevel:
        """Map a 0-100 score to the canonical five-level scale."""
        t = self.thresholds
        if score >= t.CRITICO_MIN:
            return RiskLevel.CRITICO
        elif score >= t.ALTO_MIN:
            return RiskLevel.ALTO
        elif score >= t.MEDIO_MIN:
            return RiskLevel.MEDIO
        elif score >= t.BAJO_MIN:
            return RiskLevel.BAJO
        else:
            return RiskLevel.MINIMO
