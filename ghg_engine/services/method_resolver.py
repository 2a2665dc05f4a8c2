"""
Calculation Method Resolver
Picks the most trusted calculation method a category and subcategory support
"""

import logging
from typing import List, Optional

from ghg_engine.core.exceptions import MethodUnavailableError
from ghg_engine.schemas.factors import (
    METHOD_PREFERENCE,
    CalculationMethod,
    Category,
    Subcategory,
)
from ghg_engine.services.unit_normalizer import is_compatible

logger = logging.getLogger(__name__)


def candidate_methods(category: Category, subcategory: Subcategory) -> List[CalculationMethod]:
    """Methods both allowed by the category and backed by a factor, in preference order"""
    return [
        method
        for method in METHOD_PREFERENCE
        if method in category.available_methods
        and method in subcategory.emission_factors
    ]


def resolve(
    category: Category,
    subcategory: Subcategory,
    method_override: Optional[CalculationMethod] = None,
    activity_unit: Optional[str] = None,
    notes: Optional[List[str]] = None,
) -> CalculationMethod:
    """
    Resolve the calculation method for one activity record.

    An override is honoured only when the category allows it and the
    subcategory carries a factor for it. Otherwise the first method of the
    preference order (actual, technical, monetary) is chosen; when the
    activity unit is known, methods whose factor cannot take that unit are
    skipped so that spend selects the monetary ratio and physical quantities
    the physical factor. Each skipped method is reported in `notes` so the
    substitution stays visible in the audit trail.
    """
    candidates = candidate_methods(category, subcategory)

    if method_override is not None:
        if method_override not in candidates:
            raise MethodUnavailableError(
                category.id, subcategory.id, method_override.value
            )
        return method_override

    if not candidates:
        raise MethodUnavailableError(category.id, subcategory.id)

    if activity_unit:
        skipped: List[str] = []
        for method in candidates:
            factor = subcategory.emission_factors[method]
            if is_compatible(activity_unit, factor.per_unit):
                if notes is not None:
                    notes.extend(skipped)
                return method
            skipped.append(
                f"{method.value} skipped: factor unit {factor.per_unit} "
                f"incompatible with {activity_unit}"
            )
        logger.debug(
            f"No factor of {category.id}/{subcategory.id} accepts unit "
            f"'{activity_unit}', using preference order"
        )

    return candidates[0]
