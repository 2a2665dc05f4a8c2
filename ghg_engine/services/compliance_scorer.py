"""
Compliance Scorer Service
Rates inventory data quality and derives regulatory risk and recommendations
"""

import logging
from typing import Dict, List, Sequence, Tuple

from ghg_engine.core.config import settings
from ghg_engine.schemas.emissions import CalculationResult, FailedRecord
from ghg_engine.schemas.factors import MethodUsed
from ghg_engine.schemas.report import (
    ComplianceScore,
    ComplianceStatus,
    DataQualityAssessment,
    ImplementationCost,
    PenaltyApplied,
    Priority,
    Recommendation,
    RegulatoryReference,
    RiskLevel,
    VerificationLevel,
)

logger = logging.getLogger(__name__)

PRIMARY_DATA = "primary_data_coverage"
UNCERTAINTY = "uncertainty"
VERIFICATION = "verification"
FALLBACKS = "fallbacks"

PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

CBAM_REGULATION = "Regulation (EU) 2023/956"

# category -> (description, implementation cost, timeline)
RECOMMENDATION_CATALOG: Dict[str, Tuple[str, ImplementationCost, str]] = {
    PRIMARY_DATA: (
        "Collect measured or invoiced activity data for the largest sources "
        "instead of estimates and spend-based ratios",
        ImplementationCost.MEDIUM,
        "3-6 months",
    ),
    UNCERTAINTY: (
        "Reduce the combined uncertainty with supplier-specific emission factors "
        "for the dominant budget contributors",
        ImplementationCost.MEDIUM,
        "6-12 months",
    ),
    VERIFICATION: (
        "Engage an accredited verifier for third-party assurance of the inventory",
        ImplementationCost.HIGH,
        "6-12 months",
    ),
    FALLBACKS: (
        "Map records on default factors or rejected by the engine to specific "
        "subcategories and complete the missing data",
        ImplementationCost.LOW,
        "1-3 months",
    ),
}


def assess_data_quality(
    results: Sequence[CalculationResult],
    failures: Sequence[FailedRecord],
    relative_uncertainty_percent: float,
    verification_level: VerificationLevel = VerificationLevel.UNVERIFIED,
) -> DataQualityAssessment:
    """Build scorer inputs from a calculated batch"""
    total = sum(result.emissions_kg for result in results)
    actual = [r for r in results if r.method_used == MethodUsed.ACTUAL]
    if total > 0:
        coverage = sum(r.emissions_kg for r in actual) / total * 100.0
    elif results:
        coverage = len(actual) / len(results) * 100.0
    else:
        coverage = 0.0

    fallbacks = sum(1 for result in results if result.fallback_applied)
    return DataQualityAssessment(
        primary_data_coverage_percent=min(max(coverage, 0.0), 100.0),
        relative_uncertainty_percent=relative_uncertainty_percent,
        verification_level=verification_level,
        fallback_count=fallbacks + len(failures),
        rejected_count=len(failures),
    )


def _coverage_penalty(coverage: float) -> float:
    for threshold, points in sorted(settings.COVERAGE_PENALTY_BANDS):
        if coverage < threshold:
            return points
    return 0.0


def _uncertainty_penalty(uncertainty: float) -> float:
    for threshold, points in sorted(settings.UNCERTAINTY_PENALTY_BANDS, reverse=True):
        if uncertainty > threshold:
            return points
    return 0.0


def _verification_penalty(level: VerificationLevel) -> float:
    if level == VerificationLevel.UNVERIFIED:
        return settings.UNVERIFIED_PENALTY
    if level == VerificationLevel.LIMITED:
        return settings.LIMITED_VERIFICATION_PENALTY
    return 0.0


def _fallback_penalty(count: int) -> float:
    return min(count * settings.FALLBACK_PENALTY_PER_RECORD, settings.FALLBACK_PENALTY_CAP)


def risk_level_for(score: float) -> RiskLevel:
    if score >= settings.RISK_LOW_MIN_SCORE:
        return RiskLevel.LOW
    if score >= settings.RISK_MEDIUM_MIN_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def priority_for(points: float) -> Priority:
    if points >= 15:
        return Priority.HIGH
    if points >= 8:
        return Priority.MEDIUM
    return Priority.LOW


def _penalties(data_quality: DataQualityAssessment) -> List[PenaltyApplied]:
    coverage = data_quality.primary_data_coverage_percent
    uncertainty = data_quality.relative_uncertainty_percent
    checks = [
        (
            PRIMARY_DATA,
            _coverage_penalty(coverage),
            f"Primary data covers {coverage:.1f}% of emissions",
        ),
        (
            UNCERTAINTY,
            _uncertainty_penalty(uncertainty),
            f"Relative expanded uncertainty is {uncertainty:.1f}%",
        ),
        (
            VERIFICATION,
            _verification_penalty(data_quality.verification_level),
            f"Inventory verification level is {data_quality.verification_level.value}",
        ),
        (
            FALLBACKS,
            _fallback_penalty(data_quality.fallback_count),
            f"{data_quality.fallback_count} records on default factors or rejected",
        ),
    ]
    return [
        PenaltyApplied(category=category, points=points, reason=reason)
        for category, points, reason in checks
        if points > 0
    ]


def _recommendation(penalty: PenaltyApplied, level: VerificationLevel) -> Recommendation:
    description, cost, timeline = RECOMMENDATION_CATALOG[penalty.category]
    if penalty.category == VERIFICATION and level == VerificationLevel.LIMITED:
        description = "Move from limited to reasonable assurance at the next verification cycle"
        cost = ImplementationCost.MEDIUM
    return Recommendation(
        category=penalty.category,
        priority=priority_for(penalty.points),
        description=description,
        potential_improvement=penalty.points,
        implementation_cost=cost,
        timeline=timeline,
    )


def regulatory_references(data_quality: DataQualityAssessment) -> List[RegulatoryReference]:
    """
    Map the method mix onto the CBAM calculation articles.

    Article 7.1 asks for verified actual data wherever available, so it is
    only fully met when primary data cover every emission. Article 8 allows
    default values where actual data are missing, which holds as long as
    every record obtained a registry factor.
    """
    coverage = data_quality.primary_data_coverage_percent
    article_7 = ComplianceStatus.COMPLIANT if coverage >= 100.0 else ComplianceStatus.PARTIAL
    article_8 = (
        ComplianceStatus.COMPLIANT
        if data_quality.rejected_count == 0
        else ComplianceStatus.NON_COMPLIANT
    )
    return [
        RegulatoryReference(
            regulation=CBAM_REGULATION,
            article="Article 7.1",
            requirement="Use verified actual emissions data where available",
            compliance_status=article_7,
        ),
        RegulatoryReference(
            regulation=CBAM_REGULATION,
            article="Article 8",
            requirement="Apply default values where actual data are unavailable",
            compliance_status=article_8,
        ),
    ]


def score(data_quality: DataQualityAssessment) -> ComplianceScore:
    """
    Score an inventory from 100 down by banded penalties.

    Every fired penalty yields one recommendation; recommendations are ranked
    by recoverable score points, then priority, then category name.
    """
    penalties = _penalties(data_quality)
    value = min(max(100.0 - sum(p.points for p in penalties), 0.0), 100.0)

    recommendations = [
        _recommendation(penalty, data_quality.verification_level) for penalty in penalties
    ]
    recommendations.sort(
        key=lambda r: (-r.potential_improvement, PRIORITY_RANK[r.priority], r.category)
    )

    risk = risk_level_for(value)
    logger.info(
        f"Compliance score {value:.1f} ({risk.value} risk), "
        f"{len(penalties)} penalties applied"
    )
    return ComplianceScore(
        compliance_score=value,
        regulatory_risk_level=risk,
        penalties=penalties,
        recommendations=recommendations,
        regulatory_references=regulatory_references(data_quality),
    )
