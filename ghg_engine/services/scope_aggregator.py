"""
Scope Aggregator Service
Groups item results by scope and value-chain direction and propagates uncertainty
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from ghg_engine.schemas.emissions import CalculationResult, FailedRecord
from ghg_engine.schemas.factors import CategoryDirection, GHGScope
from ghg_engine.schemas.report import AuditTrailEntry, ScopeSummary
from ghg_engine.services.uncertainty_engine import (
    CombinedUncertainty,
    UncertaintyComponent,
    combine,
    combine_results,
)

logger = logging.getLogger(__name__)

SCOPE1 = "scope1"
SCOPE2 = "scope2"
SCOPE3_UPSTREAM = "scope3_upstream"
SCOPE3_DOWNSTREAM = "scope3_downstream"
SCOPE3 = "scope3"
GRAND_TOTAL = "grand_total"

ITEM_GROUPS = (SCOPE1, SCOPE2, SCOPE3_UPSTREAM, SCOPE3_DOWNSTREAM)

ITEM_FORMULA = "u_i = E_i x (rel_i / 100) / 2; u_c = sqrt(sum u_i^2); U = k x u_c"
COMPONENT_FORMULA = "u_c = sqrt(sum u_g^2); nu_eff = u_c^4 / sum(u_g^4 / nu_g); U = k x u_c"


@dataclass
class ScopeAggregation:
    scope1: ScopeSummary
    scope2: ScopeSummary
    scope3_upstream: ScopeSummary
    scope3_downstream: ScopeSummary
    scope3: ScopeSummary
    grand_total: ScopeSummary
    groups: Dict[str, List[CalculationResult]] = field(default_factory=dict)
    audit_trail: List[AuditTrailEntry] = field(default_factory=list)


def group_key(scope: GHGScope, direction: CategoryDirection) -> str:
    if scope == GHGScope.SCOPE1:
        return SCOPE1
    if scope == GHGScope.SCOPE2:
        return SCOPE2
    if direction == CategoryDirection.DOWNSTREAM:
        return SCOPE3_DOWNSTREAM
    return SCOPE3_UPSTREAM


def _failed_groups(failure: FailedRecord) -> List[str]:
    if failure.scope != GHGScope.SCOPE3:
        return [group_key(failure.scope, CategoryDirection.DIRECT)]
    if failure.direction is None:
        return [SCOPE3_UPSTREAM, SCOPE3_DOWNSTREAM]
    return [group_key(failure.scope, failure.direction)]


def _summary(
    name: str, combined: CombinedUncertainty, item_count: int, failed_count: int
) -> ScopeSummary:
    return ScopeSummary(
        name=name,
        total=combined.total,
        standard_uncertainty=combined.standard_uncertainty,
        expanded_uncertainty=combined.expanded_uncertainty,
        effective_degrees_of_freedom=combined.effective_degrees_of_freedom,
        coverage_factor=combined.coverage_factor,
        relative_expanded_uncertainty_percent=combined.relative_expanded_uncertainty_percent,
        item_count=item_count,
        failed_count=failed_count,
        is_complete=failed_count == 0,
    )


def _as_component(summary: ScopeSummary) -> UncertaintyComponent:
    return UncertaintyComponent(
        value=summary.total,
        standard_uncertainty=summary.standard_uncertainty,
        degrees_of_freedom=summary.effective_degrees_of_freedom,
    )


def _combine_summaries(
    name: str, parts: Sequence[ScopeSummary], failed_count: int
) -> ScopeSummary:
    combined = combine(_as_component(part) for part in parts)
    return _summary(
        name,
        combined,
        item_count=sum(part.item_count for part in parts),
        failed_count=failed_count,
    )


def _audit_entry(step: int, summary: ScopeSummary, formula: str, source: str) -> AuditTrailEntry:
    return AuditTrailEntry(
        step=step,
        stage="aggregation",
        description=(
            f"{summary.name}: {summary.total:.3f} kgCO2e +/- "
            f"{summary.expanded_uncertainty:.3f} (k={summary.coverage_factor}) "
            f"combined from {source}"
        ),
        formula=formula,
        details={
            "group": summary.name,
            "total_kg": summary.total,
            "standard_uncertainty": summary.standard_uncertainty,
            "expanded_uncertainty": summary.expanded_uncertainty,
            "coverage_factor": summary.coverage_factor,
            "effective_degrees_of_freedom": summary.effective_degrees_of_freedom,
            "relative_expanded_uncertainty_percent": summary.relative_expanded_uncertainty_percent,
            "item_count": summary.item_count,
            "failed_count": summary.failed_count,
            "is_complete": summary.is_complete,
        },
    )


def aggregate(
    results: Iterable[CalculationResult],
    failures: Iterable[FailedRecord] = (),
    first_step: int = 1,
) -> ScopeAggregation:
    """
    Aggregate item results into scope summaries and a grand total.

    Scope 3 is the combination of its upstream and downstream halves and
    the grand total the combination of the three scopes, each treated as an
    independent contribution. Any failed record marks its group incomplete.
    """
    groups: Dict[str, List[CalculationResult]] = {name: [] for name in ITEM_GROUPS}
    for result in results:
        groups[group_key(result.scope, result.direction)].append(result)

    failed: Dict[str, int] = {name: 0 for name in ITEM_GROUPS}
    failed_scope3 = 0
    failure_list = list(failures)
    for failure in failure_list:
        for name in _failed_groups(failure):
            failed[name] += 1
        if failure.scope == GHGScope.SCOPE3:
            failed_scope3 += 1

    summaries: Dict[str, ScopeSummary] = {}
    for name in ITEM_GROUPS:
        summaries[name] = _summary(
            name,
            combine_results(groups[name]),
            item_count=len(groups[name]),
            failed_count=failed[name],
        )

    scope3 = _combine_summaries(
        SCOPE3,
        [summaries[SCOPE3_UPSTREAM], summaries[SCOPE3_DOWNSTREAM]],
        failed_count=failed_scope3,
    )
    grand_total = _combine_summaries(
        GRAND_TOTAL,
        [summaries[SCOPE1], summaries[SCOPE2], scope3],
        failed_count=len(failure_list),
    )

    audit_trail = []
    step = first_step
    for name in ITEM_GROUPS:
        audit_trail.append(
            _audit_entry(step, summaries[name], ITEM_FORMULA, f"{summaries[name].item_count} items")
        )
        step += 1
    audit_trail.append(
        _audit_entry(step, scope3, COMPONENT_FORMULA, "scope3_upstream and scope3_downstream")
    )
    step += 1
    audit_trail.append(
        _audit_entry(step, grand_total, COMPONENT_FORMULA, "scope1, scope2 and scope3")
    )

    logger.debug(
        f"Aggregated {grand_total.item_count} results, {len(failure_list)} failures: "
        f"total {grand_total.total:.3f} kgCO2e"
    )

    return ScopeAggregation(
        scope1=summaries[SCOPE1],
        scope2=summaries[SCOPE2],
        scope3_upstream=summaries[SCOPE3_UPSTREAM],
        scope3_downstream=summaries[SCOPE3_DOWNSTREAM],
        scope3=scope3,
        grand_total=grand_total,
        groups=groups,
        audit_trail=audit_trail,
    )
