"""
Uncertainty Propagation Engine
GUM (ISO/IEC Guide 98-3) combination of independent emission uncertainties

Factor uncertainties are quoted as relative expanded uncertainties at k=2.
Each item is brought back to a standard uncertainty, combined in quadrature,
and re-expanded with the coverage factor of the combined result. Effective
degrees of freedom follow the Welch-Satterthwaite formula (GUM G.4.1).
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from scipy import stats

from ghg_engine.core.config import settings
from ghg_engine.core.exceptions import UncertaintyInputError
from ghg_engine.schemas.emissions import CalculationResult
from ghg_engine.schemas.factors import MethodUsed
from ghg_engine.schemas.report import UncertaintyBudgetEntry

logger = logging.getLogger(__name__)

IMPROVEMENT_HINTS: Dict[MethodUsed, str] = {
    MethodUsed.DEFAULT: "replace default factors with subcategory-specific data",
    MethodUsed.MONETARY: "switch from monetary to actual data",
    MethodUsed.TECHNICAL: "replace engineering estimates with measured activity data",
    MethodUsed.ACTUAL: "collect supplier-specific emission factors",
}


@dataclass(frozen=True)
class UncertaintyComponent:
    """One independent contribution: a value, its standard uncertainty and DOF"""

    value: float
    standard_uncertainty: float
    degrees_of_freedom: float


@dataclass(frozen=True)
class CombinedUncertainty:
    total: float
    standard_uncertainty: float
    expanded_uncertainty: float
    effective_degrees_of_freedom: float
    coverage_factor: float

    @property
    def relative_expanded_uncertainty_percent(self) -> float:
        return relative_uncertainty_percent(self.expanded_uncertainty, self.total)


def _check_finite(name: str, value: float, allow_zero: bool = True) -> None:
    if value is None or not math.isfinite(value):
        raise UncertaintyInputError(f"{name} must be finite, got {value}")
    if value < 0 or (not allow_zero and value == 0):
        bound = ">= 0" if allow_zero else "> 0"
        raise UncertaintyInputError(f"{name} must be {bound}, got {value}")


def standard_uncertainty(
    emissions_kg: float,
    relative_uncertainty_percent: float,
    source_coverage_factor: Optional[float] = None,
) -> float:
    """u_i = E x (rel / 100) / k_source"""
    _check_finite("emissions_kg", emissions_kg)
    _check_finite("relative_uncertainty_percent", relative_uncertainty_percent)
    k_source = source_coverage_factor or settings.SOURCE_COVERAGE_FACTOR
    return emissions_kg * (relative_uncertainty_percent / 100.0) / k_source


def component_from_result(result: CalculationResult) -> UncertaintyComponent:
    return UncertaintyComponent(
        value=result.emissions_kg,
        standard_uncertainty=result.standard_uncertainty_kg,
        degrees_of_freedom=result.degrees_of_freedom,
    )


def welch_satterthwaite(components: Sequence[UncertaintyComponent]) -> float:
    """Effective degrees of freedom, or the sentinel when every u_i is zero"""
    variance = math.fsum(c.standard_uncertainty ** 2 for c in components)
    denominator = math.fsum(
        c.standard_uncertainty ** 4 / c.degrees_of_freedom
        for c in components
        if c.standard_uncertainty > 0
    )
    if variance == 0 or denominator == 0:
        return settings.DOF_SENTINEL
    return variance ** 2 / denominator


def student_t_coverage_factor(
    effective_degrees_of_freedom: float, coverage: Optional[float] = None
) -> float:
    """Two-sided Student-t quantile for the effective degrees of freedom"""
    coverage = coverage or settings.COVERAGE_PROBABILITY
    return float(stats.t.ppf((1 + coverage) / 2, df=effective_degrees_of_freedom))


def coverage_factor_for(effective_degrees_of_freedom: float) -> float:
    if settings.COVERAGE_FACTOR_MODE == "student_t":
        return student_t_coverage_factor(effective_degrees_of_freedom)
    return settings.COVERAGE_FACTOR


def relative_uncertainty_percent(expanded_uncertainty: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return expanded_uncertainty / total * 100.0


def combine(components: Iterable[UncertaintyComponent]) -> CombinedUncertainty:
    """Root-sum-square combination of independent components"""
    items = list(components)
    for c in items:
        _check_finite("value", c.value)
        _check_finite("standard_uncertainty", c.standard_uncertainty)
        _check_finite("degrees_of_freedom", c.degrees_of_freedom, allow_zero=False)

    total = math.fsum(c.value for c in items)
    combined = math.sqrt(math.fsum(c.standard_uncertainty ** 2 for c in items))
    dof_eff = welch_satterthwaite(items)
    k = coverage_factor_for(dof_eff)

    return CombinedUncertainty(
        total=total,
        standard_uncertainty=combined,
        expanded_uncertainty=k * combined,
        effective_degrees_of_freedom=dof_eff,
        coverage_factor=k,
    )


def combine_results(results: Iterable[CalculationResult]) -> CombinedUncertainty:
    return combine(component_from_result(result) for result in results)


def _dominant_method(results: Sequence[CalculationResult]) -> Optional[MethodUsed]:
    variance_by_method: Dict[MethodUsed, float] = defaultdict(float)
    for result in results:
        u = standard_uncertainty(result.emissions_kg, result.relative_uncertainty_percent)
        variance_by_method[result.method_used] += u ** 2
    if not variance_by_method:
        return None
    return max(variance_by_method.items(), key=lambda item: item[1])[0]


def uncertainty_budget(
    groups: Dict[str, Sequence[CalculationResult]],
    top_contributors: Optional[int] = None,
) -> List[UncertaintyBudgetEntry]:
    """
    Share of the combined variance attributable to each group.

    Groups with zero emissions are left out. Entries are sorted by
    decreasing contribution; the top contributors carry an improvement hint
    derived from the method that dominates their variance.
    """
    top_n = settings.BUDGET_TOP_CONTRIBUTORS if top_contributors is None else top_contributors

    variances: List[Tuple[str, float, Sequence[CalculationResult]]] = []
    for name, results in groups.items():
        if sum(result.emissions_kg for result in results) <= 0:
            continue
        variance = math.fsum(
            standard_uncertainty(r.emissions_kg, r.relative_uncertainty_percent) ** 2
            for r in results
        )
        variances.append((name, variance, results))

    total_variance = math.fsum(variance for _, variance, _ in variances)
    if total_variance == 0:
        return [
            UncertaintyBudgetEntry(component=name, contribution_percent=0.0)
            for name, _, _ in variances
        ]

    variances.sort(key=lambda item: (-item[1], item[0]))
    entries = []
    for position, (name, variance, results) in enumerate(variances):
        hint = None
        if position < top_n and variance > 0:
            method = _dominant_method(results)
            if method is not None:
                hint = IMPROVEMENT_HINTS[method]
        entries.append(
            UncertaintyBudgetEntry(
                component=name,
                contribution_percent=min(variance / total_variance * 100.0, 100.0),
                improvement_potential=hint,
            )
        )
    return entries
