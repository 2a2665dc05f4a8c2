"""
Compliance Report Service
Runs a batch through calculation, aggregation, uncertainty budget and scoring
against a single factor registry snapshot
"""

import logging
import time
from typing import List, Optional, Sequence

from ghg_engine.core.config import settings
from ghg_engine.core.metrics import record_batch_calculation, record_report_generated
from ghg_engine.schemas.emissions import (
    ActivityRecord,
    BatchCalculationResult,
    CalculationResult,
    FailedRecord,
)
from ghg_engine.schemas.report import (
    AuditTrailEntry,
    ComplianceReport,
    ComplianceScore,
    DataQualityAssessment,
    UncertaintyBudgetEntry,
    VerificationLevel,
)
from ghg_engine.services.compliance_scorer import assess_data_quality, score
from ghg_engine.services.emissions_calculator import EmissionsCalculator
from ghg_engine.services.factor_registry import FactorRegistry, get_factor_registry
from ghg_engine.services.scope_aggregator import ScopeAggregation, aggregate
from ghg_engine.services.uncertainty_engine import uncertainty_budget

logger = logging.getLogger(__name__)


class ReportService:
    """Builds compliance reports; one instance per registry snapshot"""

    def __init__(self, registry: Optional[FactorRegistry] = None):
        # Pin the snapshot so a report never mixes two registry versions
        self.registry = registry or get_factor_registry()
        self.calculator = EmissionsCalculator(self.registry)

    def calculate(
        self, records: Sequence[ActivityRecord], processing_mode: str = "sequential"
    ) -> BatchCalculationResult:
        batch = self.calculator.compute_batch(records, processing_mode)
        record_batch_calculation(batch)
        return batch

    def build_report(
        self,
        records: Sequence[ActivityRecord],
        verification_level: VerificationLevel = VerificationLevel.UNVERIFIED,
        processing_mode: str = "sequential",
    ) -> ComplianceReport:
        """Generate a compliance report for a batch of activity records"""
        start_time = time.time()
        logger.info(
            f"Building compliance report for {len(records)} records "
            f"(registry {self.registry.version}, {processing_mode})"
        )

        batch = self.calculate(records, processing_mode)

        audit_trail: List[AuditTrailEntry] = [self._registry_step()]
        audit_trail.extend(self._record_steps(batch, first_step=len(audit_trail) + 1))

        aggregation = aggregate(batch.results, batch.failures, first_step=len(audit_trail) + 1)
        audit_trail.extend(aggregation.audit_trail)

        budget = uncertainty_budget(aggregation.groups)
        audit_trail.append(self._budget_step(len(audit_trail) + 1, budget))

        relative_uncertainty = aggregation.grand_total.relative_expanded_uncertainty_percent
        data_quality = assess_data_quality(
            batch.results, batch.failures, relative_uncertainty, verification_level
        )
        compliance = score(data_quality)
        audit_trail.append(self._scoring_step(len(audit_trail) + 1, compliance))

        report = self._assemble(batch, aggregation, budget, compliance, audit_trail, data_quality)

        duration = time.time() - start_time
        record_report_generated(compliance.regulatory_risk_level.value, duration)
        logger.info(
            f"Compliance report built: {report.grand_total.total:.3f} kgCO2e "
            f"+/- {report.relative_uncertainty_percent:.1f}%, score "
            f"{report.compliance_score:.1f}, {len(report.failed_records)} failed records "
            f"in {duration:.3f}s"
        )
        return report

    def _assemble(
        self,
        batch: BatchCalculationResult,
        aggregation: ScopeAggregation,
        budget: List[UncertaintyBudgetEntry],
        compliance: ComplianceScore,
        audit_trail: List[AuditTrailEntry],
        data_quality: DataQualityAssessment,
    ) -> ComplianceReport:
        return ComplianceReport(
            registry_version=self.registry.version,
            factor_dataset=self.registry.dataset,
            scope1=aggregation.scope1,
            scope2=aggregation.scope2,
            scope3_upstream=aggregation.scope3_upstream,
            scope3_downstream=aggregation.scope3_downstream,
            scope3=aggregation.scope3,
            grand_total=aggregation.grand_total,
            results=batch.results,
            failed_records=batch.failures,
            primary_data_coverage_percent=data_quality.primary_data_coverage_percent,
            relative_uncertainty_percent=data_quality.relative_uncertainty_percent,
            verification_level=data_quality.verification_level,
            compliance_score=compliance.compliance_score,
            regulatory_risk_level=compliance.regulatory_risk_level,
            recommendations=compliance.recommendations,
            regulatory_references=compliance.regulatory_references,
            uncertainty_budget=budget,
            audit_trail=audit_trail,
        )

    def _registry_step(self) -> AuditTrailEntry:
        return AuditTrailEntry(
            step=1,
            stage="registry",
            description=(
                f"Emission factors from '{self.registry.dataset}' "
                f"version {self.registry.version}; GUM propagation "
                f"({settings.COVERAGE_FACTOR_MODE} coverage factor)"
            ),
            details={
                "registry_version": self.registry.version,
                "factor_dataset": self.registry.dataset,
                "source_coverage_factor": settings.SOURCE_COVERAGE_FACTOR,
                "coverage_factor": settings.COVERAGE_FACTOR,
                "coverage_factor_mode": settings.COVERAGE_FACTOR_MODE,
                "degrees_of_freedom": {
                    "actual": settings.DOF_ACTUAL,
                    "technical": settings.DOF_TECHNICAL,
                    "monetary": settings.DOF_MONETARY,
                    "default": settings.DOF_DEFAULT,
                },
            },
        )

    def _record_steps(
        self, batch: BatchCalculationResult, first_step: int
    ) -> List[AuditTrailEntry]:
        entries = []
        step = first_step
        for position, result in enumerate(batch.results):
            entries.append(self._result_step(step, position, result))
            step += 1
        for failure in batch.failures:
            entries.append(self._failure_step(step, failure))
            step += 1
        return entries

    @staticmethod
    def _result_step(step: int, position: int, result: CalculationResult) -> AuditTrailEntry:
        reference = result.record_id or f"result #{position}"
        return AuditTrailEntry(
            step=step,
            stage="calculation",
            description=(
                f"{reference}: {result.normalized_quantity} {result.normalized_unit} x "
                f"{result.factor_value} {result.factor_unit} = "
                f"{result.emissions_kg:.3f} kgCO2e ({result.method_used.value})"
            ),
            formula="E = q x EF",
            details={
                "record_id": result.record_id,
                "category_id": result.category_id,
                "subcategory_id": result.subcategory_id,
                "scope": result.scope.value,
                "direction": result.direction.value,
                "method_used": result.method_used.value,
                "factor_source": result.factor_source,
                "relative_uncertainty_percent": result.relative_uncertainty_percent,
                "standard_uncertainty_kg": result.standard_uncertainty_kg,
                "degrees_of_freedom": result.degrees_of_freedom,
                "fallback_applied": result.fallback_applied,
                "notes": list(result.notes),
            },
        )

    @staticmethod
    def _failure_step(step: int, failure: FailedRecord) -> AuditTrailEntry:
        reference = failure.record_id or f"record #{failure.index}"
        return AuditTrailEntry(
            step=step,
            stage="rejection",
            description=f"{reference} rejected: {failure.reason}",
            details={
                "index": failure.index,
                "record_id": failure.record_id,
                "category_id": failure.category_id,
                "subcategory_id": failure.subcategory_id,
                "scope": failure.scope.value,
                "error_code": failure.error_code,
            },
        )

    @staticmethod
    def _budget_step(step: int, budget: List[UncertaintyBudgetEntry]) -> AuditTrailEntry:
        return AuditTrailEntry(
            step=step,
            stage="uncertainty_budget",
            description="Share of the combined variance by scope group",
            formula="contribution_g = sum_{i in g} u_i^2 / u_c^2 x 100",
            details={entry.component: entry.contribution_percent for entry in budget},
        )

    @staticmethod
    def _scoring_step(step: int, compliance: ComplianceScore) -> AuditTrailEntry:
        return AuditTrailEntry(
            step=step,
            stage="compliance_scoring",
            description=(
                f"Compliance score {compliance.compliance_score:.1f}, "
                f"{compliance.regulatory_risk_level.value} regulatory risk"
            ),
            formula="score = clamp(100 - sum penalties, 0, 100)",
            details={penalty.category: penalty.points for penalty in compliance.penalties},
        )


def build_compliance_report(
    records: Sequence[ActivityRecord],
    verification_level: VerificationLevel = VerificationLevel.UNVERIFIED,
    registry: Optional[FactorRegistry] = None,
    processing_mode: str = "sequential",
) -> ComplianceReport:
    return ReportService(registry).build_report(records, verification_level, processing_mode)
