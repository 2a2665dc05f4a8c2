"""
Test compliance scoring
"""

import pytest

from ghg_engine.core.config import settings
from ghg_engine.schemas.emissions import FailedRecord
from ghg_engine.schemas.factors import GHGScope
from ghg_engine.schemas.report import (
    ComplianceStatus,
    DataQualityAssessment,
    ImplementationCost,
    Priority,
    RiskLevel,
    VerificationLevel,
)
from ghg_engine.services.compliance_scorer import (
    assess_data_quality,
    priority_for,
    regulatory_references,
    risk_level_for,
    score,
)
from ghg_engine.services.emissions_calculator import compute


def quality(coverage=100.0, uncertainty=5.0, verification="verified", fallbacks=0, rejected=0):
    return DataQualityAssessment(
        primary_data_coverage_percent=coverage,
        relative_uncertainty_percent=uncertainty,
        verification_level=verification,
        fallback_count=fallbacks,
        rejected_count=rejected,
    )


class TestComplianceScore:
    """Test banded penalties and risk levels"""

    def test_perfect_inventory(self):
        result = score(quality())
        assert result.compliance_score == 100.0
        assert result.regulatory_risk_level == RiskLevel.LOW
        assert result.penalties == []
        assert result.recommendations == []

    def test_worst_inventory(self):
        result = score(quality(coverage=10, uncertainty=35, verification="unverified", fallbacks=9))

        assert result.compliance_score == pytest.approx(100 - 25 - 25 - 10 - 20)
        assert result.regulatory_risk_level == RiskLevel.HIGH
        assert {p.category: p.points for p in result.penalties} == {
            "primary_data_coverage": 25.0,
            "uncertainty": 25.0,
            "verification": 10.0,
            "fallbacks": 20.0,
        }

    @pytest.mark.parametrize(
        "coverage, penalty",
        [(0, 25), (19.9, 25), (20, 15), (49.9, 15), (50, 8), (79.9, 8), (80, 0), (100, 0)],
    )
    def test_coverage_bands(self, coverage, penalty):
        assert score(quality(coverage=coverage)).compliance_score == pytest.approx(100 - penalty)

    @pytest.mark.parametrize(
        "uncertainty, penalty",
        [(0, 0), (10, 0), (10.5, 10), (15, 10), (15.1, 15), (30, 15), (30.1, 25), (250, 25)],
    )
    def test_uncertainty_bands(self, uncertainty, penalty):
        assert score(quality(uncertainty=uncertainty)).compliance_score == pytest.approx(
            100 - penalty
        )

    def test_verification_levels(self):
        assert score(quality(verification="limited")).compliance_score == 95.0
        assert score(quality(verification="unverified")).compliance_score == 90.0

    def test_fallback_penalty_is_capped(self):
        assert score(quality(fallbacks=2)).compliance_score == 90.0
        assert score(quality(fallbacks=50)).compliance_score == 80.0

    def test_score_is_clamped(self, monkeypatch):
        monkeypatch.setattr(settings, "UNVERIFIED_PENALTY", 80.0)
        result = score(quality(coverage=0, uncertainty=90, verification="unverified"))
        assert result.compliance_score == 0.0

    @pytest.mark.parametrize(
        "value, level",
        [(100, RiskLevel.LOW), (80, RiskLevel.LOW), (79.9, RiskLevel.MEDIUM), (50, RiskLevel.MEDIUM), (49.9, RiskLevel.HIGH)],
    )
    def test_risk_levels(self, value, level):
        assert risk_level_for(value) == level


class TestRecommendations:
    """Test recommendation generation and ranking"""

    def test_one_recommendation_per_penalty_ranked(self):
        result = score(quality(coverage=10, uncertainty=35, verification="unverified", fallbacks=1))

        assert [r.category for r in result.recommendations] == [
            "primary_data_coverage",
            "uncertainty",
            "verification",
            "fallbacks",
        ]
        assert [r.potential_improvement for r in result.recommendations] == [25, 25, 10, 5]

    def test_priority_and_cost(self):
        result = score(quality(verification="limited"))
        recommendation = result.recommendations[0]

        assert recommendation.category == "verification"
        assert recommendation.priority == Priority.LOW
        assert recommendation.implementation_cost == ImplementationCost.MEDIUM
        assert "reasonable assurance" in recommendation.description

    def test_deterministic(self):
        inputs = quality(coverage=30, uncertainty=20, verification="limited", fallbacks=3)
        assert score(inputs) == score(inputs)

    @pytest.mark.parametrize("points, priority", [(25, Priority.HIGH), (15, Priority.HIGH), (10, Priority.MEDIUM), (8, Priority.MEDIUM), (5, Priority.LOW)])
    def test_priority_for(self, points, priority):
        assert priority_for(points) == priority


class TestRegulatoryReferences:
    """Test article status derived from the method mix"""

    def test_actual_data_everywhere(self):
        references = regulatory_references(quality())

        assert [r.article for r in references] == ["Article 7.1", "Article 8"]
        assert all(r.compliance_status == ComplianceStatus.COMPLIANT for r in references)
        assert all(r.regulation == "Regulation (EU) 2023/956" for r in references)

    def test_estimated_data_is_partial_under_article_7(self):
        article_7, article_8 = regulatory_references(quality(coverage=60.0, fallbacks=2))
        assert article_7.compliance_status == ComplianceStatus.PARTIAL
        assert article_8.compliance_status == ComplianceStatus.COMPLIANT

    def test_rejected_records_break_article_8(self):
        _, article_8 = regulatory_references(quality(fallbacks=1, rejected=1))
        assert article_8.compliance_status == ComplianceStatus.NON_COMPLIANT

    def test_score_carries_references(self):
        result = score(quality(coverage=10))
        assert result.regulatory_references == regulatory_references(quality(coverage=10))

class TestDataQualityAssessment:
    """Test scorer inputs derived from a calculated batch"""

    def test_primary_data_coverage_is_emission_weighted(self, registry, make_record):
        results = [
            compute(make_record(quantity=1000, unit="kg"), registry),
            compute(make_record(quantity=1000, unit="EUR"), registry),
        ]
        assessment = assess_data_quality(results, [], 12.0, VerificationLevel.LIMITED)

        assert assessment.primary_data_coverage_percent == pytest.approx(1460 / 2350 * 100)
        assert assessment.relative_uncertainty_percent == 12.0
        assert assessment.verification_level == VerificationLevel.LIMITED

    def test_fallbacks_include_failed_records(self, registry, make_record):
        results = [compute(make_record(quantity=10, unit="EUR", subcategory_id="unknown"), registry)]
        failures = [
            FailedRecord(
                index=1,
                scope=GHGScope.SCOPE3,
                category_id="x",
                subcategory_id="y",
                error_code="FACTOR_NOT_FOUND",
                reason="missing",
            )
        ]
        assessment = assess_data_quality(results, failures, 40.0)
        assert assessment.fallback_count == 2
        assert assessment.rejected_count == 1
        assert assessment.primary_data_coverage_percent == 0.0

    def test_zero_emissions_use_record_share(self, registry, make_record):
        results = [compute(make_record(quantity=0), registry)]
        assert assess_data_quality(results, [], 0.0).primary_data_coverage_percent == 100.0

    def test_no_results(self):
        assert assess_data_quality([], [], 0.0).primary_data_coverage_percent == 0.0
