"""
Emissions Calculator Service
Quantifies activity records in kg CO2e against one factor registry snapshot
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

from ghg_engine.core.config import settings
from ghg_engine.core.exceptions import (
    CalculationError,
    EmissionsEngineError,
    FactorNotFoundError,
    MethodUnavailableError,
)
from ghg_engine.schemas.emissions import (
    ActivityRecord,
    BatchCalculationResult,
    CalculationResult,
    FailedRecord,
)
from ghg_engine.schemas.factors import CategoryDirection, EmissionFactor, MethodUsed
from ghg_engine.services.factor_registry import FactorRegistry
from ghg_engine.services.method_resolver import resolve
from ghg_engine.services.uncertainty_engine import standard_uncertainty
from ghg_engine.services.unit_normalizer import factor_denominator, normalize

logger = logging.getLogger(__name__)


def degrees_of_freedom_for(method: MethodUsed) -> float:
    """Degrees of freedom attached to a result, by data provenance"""
    policy: Dict[MethodUsed, float] = {
        MethodUsed.ACTUAL: settings.DOF_ACTUAL,
        MethodUsed.TECHNICAL: settings.DOF_TECHNICAL,
        MethodUsed.MONETARY: settings.DOF_MONETARY,
        MethodUsed.DEFAULT: settings.DOF_DEFAULT,
    }
    return policy[method]


class EmissionsCalculator:
    """Pure per-record calculator bound to a registry snapshot"""

    def __init__(self, registry: FactorRegistry):
        self.registry = registry

    def compute(self, record: ActivityRecord) -> CalculationResult:
        """Calculate emissions and item-level uncertainty for one record"""
        if not math.isfinite(record.quantity) or record.quantity < 0:
            raise CalculationError(
                f"Quantity must be a finite number >= 0, got {record.quantity}"
            )

        category = self.registry.get_category(record.category_id)
        if category.scope != record.scope:
            raise CalculationError(
                f"Category '{category.id}' belongs to {category.scope.value}, "
                f"record declares {record.scope.value}"
            )

        notes: List[str] = []
        factor, method_used = self._select_factor(record, notes)
        fallback_applied = method_used == MethodUsed.DEFAULT

        target_unit = factor_denominator(factor.unit)
        normalized_quantity = normalize(record.quantity, record.unit, target_unit)
        if normalized_quantity != record.quantity or target_unit != record.unit:
            notes.append(
                f"Converted {record.quantity} {record.unit} to "
                f"{normalized_quantity} {target_unit}"
            )

        emissions_kg = normalized_quantity * factor.value
        if not math.isfinite(emissions_kg):
            raise CalculationError(
                f"Emissions for {category.id}/{record.subcategory_id} are not finite"
            )

        u_i = standard_uncertainty(emissions_kg, factor.uncertainty_percent)

        logger.debug(
            f"{category.id}/{record.subcategory_id}: {normalized_quantity} {target_unit} "
            f"x {factor.value} {factor.unit} = {emissions_kg} kgCO2e ({method_used.value})"
        )

        return CalculationResult(
            record_id=record.record_id,
            scope=category.scope,
            category_id=category.id,
            subcategory_id=record.subcategory_id,
            direction=category.direction,
            emissions_kg=emissions_kg,
            relative_uncertainty_percent=factor.uncertainty_percent,
            standard_uncertainty_kg=u_i,
            expanded_uncertainty_kg=u_i * settings.SOURCE_COVERAGE_FACTOR,
            degrees_of_freedom=degrees_of_freedom_for(method_used),
            method_used=method_used,
            factor_value=factor.value,
            factor_unit=factor.unit,
            factor_source=factor.source,
            normalized_quantity=normalized_quantity,
            normalized_unit=target_unit,
            fallback_applied=fallback_applied,
            registry_version=self.registry.version,
            notes=notes,
        )

    def _select_factor(
        self, record: ActivityRecord, notes: List[str]
    ) -> Tuple[EmissionFactor, MethodUsed]:
        category = self.registry.get_category(record.category_id)
        try:
            subcategory = self.registry.get_subcategory(
                record.category_id, record.subcategory_id
            )
            method = resolve(
                category, subcategory, record.method_override, record.unit, notes
            )
            factor = self.registry.lookup(category.id, subcategory.id, method)
            return factor, MethodUsed(method.value)
        except MethodUnavailableError as e:
            if record.method_override is not None:
                raise
            reason = str(e)
        except FactorNotFoundError as e:
            reason = str(e)

        if category.default_factor is None:
            raise CalculationError(
                f"{reason}; category '{category.id}' declares no default factor"
            )

        logger.warning(
            f"Default factor applied for {category.id}/{record.subcategory_id}: {reason}"
        )
        notes.append(f"Default factor applied: {reason}")
        return category.default_factor, MethodUsed.DEFAULT

    def _failure(
        self, index: int, record: ActivityRecord, error: EmissionsEngineError
    ) -> FailedRecord:
        direction: Optional[CategoryDirection] = None
        if record.category_id in self.registry:
            direction = self.registry.get_category(record.category_id).direction
        return FailedRecord(
            index=index,
            record_id=record.record_id,
            scope=record.scope,
            category_id=record.category_id,
            subcategory_id=record.subcategory_id,
            direction=direction,
            error_code=error.error_code,
            reason=str(error),
        )

    def _compute_indexed(
        self, item: Tuple[int, ActivityRecord]
    ) -> Tuple[Optional[CalculationResult], Optional[FailedRecord]]:
        index, record = item
        try:
            return self.compute(record), None
        except EmissionsEngineError as e:
            logger.warning(
                f"Record {record.record_id or index} rejected ({e.error_code}): {e}"
            )
            return None, self._failure(index, record, e)

    def compute_batch(
        self, records: Sequence[ActivityRecord], processing_mode: str = "sequential"
    ) -> BatchCalculationResult:
        """
        Calculate a batch of records independently.

        Engine errors are collected as failed records and never abort the
        batch. Output order follows input order in both processing modes.
        """
        if processing_mode not in ("sequential", "parallel"):
            raise ValueError(f"Unknown processing mode '{processing_mode}'")

        items = list(enumerate(records))
        if processing_mode == "parallel" and len(items) > 1:
            with ThreadPoolExecutor(max_workers=settings.PARALLEL_MAX_WORKERS) as pool:
                outcomes = list(pool.map(self._compute_indexed, items))
        else:
            outcomes = [self._compute_indexed(item) for item in items]

        results = [result for result, _ in outcomes if result is not None]
        failures = [failure for _, failure in outcomes if failure is not None]

        logger.info(
            f"Batch calculated against registry {self.registry.version}: "
            f"{len(results)} results, {len(failures)} failures"
        )
        return BatchCalculationResult(
            registry_version=self.registry.version,
            results=results,
            failures=failures,
        )


def compute(record: ActivityRecord, registry: FactorRegistry) -> CalculationResult:
    return EmissionsCalculator(registry).compute(record)


def compute_batch(
    records: Sequence[ActivityRecord],
    registry: FactorRegistry,
    processing_mode: str = "sequential",
) -> BatchCalculationResult:
    return EmissionsCalculator(registry).compute_batch(records, processing_mode)
