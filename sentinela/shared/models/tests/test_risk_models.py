"""Tests for risk domain models."""
from datetime import datetime

import pytest

from sentinela.shared.models import (
    AppointmentRecommendation,
    ContextualAssessment,
    ContextualLevel,
    DetectedKeyword,
    RiskAssessmentResult,
    RiskLevel,
    SymptomCategory,
)


class TestRiskLevel:

    def test_ordering(self):
        assert RiskLevel.MINIMO < RiskLevel.BAJO < RiskLevel.MEDIO < RiskLevel.ALTO < RiskLevel.CRITICO
        assert max(RiskLevel.BAJO, RiskLevel.ALTO) == RiskLevel.ALTO

    def test_is_high(self):
        assert RiskLevel.ALTO.is_high
        assert RiskLevel.CRITICO.is_high
        assert not RiskLevel.MEDIO.is_high


class TestRiskAssessmentResult:

    def test_score_range_enforced(self):
        with pytest.raises(ValueError):
            RiskAssessmentResult(level=RiskLevel.CRITICO, score=101)

    def test_profile_snapshot(self):
        assessed_at = datetime(2026, 10, 19, 12, 0, 0)
        result = RiskAssessmentResult(
            level=RiskLevel.ALTO,
            score=65,
            detected_keywords=(
                DetectedKeyword(phrase="angustia", symptom_category=SymptomCategory.ANXIETY, weight=4),
            ),
            timestamp=assessed_at,
        )

        snapshot = result.to_profile_snapshot().to_dict()

        assert snapshot == {
            "risk_level": "alto",
            "risk_score": 65,
            "assessed_at": "2026-10-19T12:00:00",
            "keywords_detected": 1,
        }

    def test_to_dict_uses_canonical_vocabulary(self):
        data = RiskAssessmentResult(level=RiskLevel.MEDIO, score=45).to_dict()

        assert data["risk_level"] == "medio"
        assert data["contextual_analysis"] is None
        assert data["source"] == "keyword"


class TestContextualAssessment:

    @pytest.mark.parametrize("score,confidence", [(-1, 0.5), (101, 0.5), (50, 1.5)])
    def test_ranges_enforced(self, score, confidence):
        with pytest.raises(ValueError):
            ContextualAssessment(level=ContextualLevel.LOW, score=score, confidence=confidence)


class TestAppointmentRecommendation:

    def test_append_only_when_recommended(self):
        assert AppointmentRecommendation(recommended=False, message="x").append_to_reply("hola") == "hola"
        assert AppointmentRecommendation(recommended=True, message=" cita").append_to_reply("hola") == "hola cita"
