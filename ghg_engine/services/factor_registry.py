"""
Emission Factor Registry
Immutable, versioned snapshot of categories, subcategories and factors
"""

import copy
import json
import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ghg_engine.core.config import settings
from ghg_engine.core.exceptions import (
    FactorNotFoundError,
    RegistryLoadError,
    UnsupportedUnitError,
)
from ghg_engine.schemas.factors import (
    CalculationMethod,
    Category,
    CategoryDirection,
    CategorySummary,
    EmissionFactor,
    FactorDataset,
    GHGScope,
    Subcategory,
)
from ghg_engine.services.unit_normalizer import canonical_unit, factor_denominator

logger = logging.getLogger(__name__)

KG_NUMERATOR = "kgCO2e"
TONNE_NUMERATOR = "tCO2e"


def _rebase_factor(raw: Dict[str, Any], where: str) -> Dict[str, Any]:
    """Express a raw factor in kgCO2e per activity unit"""
    unit = raw.get("unit", "")
    if "/" not in unit:
        raise RegistryLoadError(f"Factor unit '{unit}' of {where} has no activity unit")
    numerator, denominator = (part.strip() for part in unit.split("/", 1))
    if numerator == KG_NUMERATOR:
        return raw
    if numerator == TONNE_NUMERATOR:
        if not isinstance(raw.get("value"), (int, float)):
            raise RegistryLoadError(f"Factor value of {where} must be a number")
        rebased = dict(raw)
        rebased["value"] = raw["value"] * 1000.0
        rebased["unit"] = f"{KG_NUMERATOR}/{denominator}"
        return rebased
    raise RegistryLoadError(
        f"Factor unit '{unit}' of {where} must be expressed in kgCO2e or tCO2e"
    )


def _rebase_dataset(data: Dict[str, Any]) -> Dict[str, Any]:
    rebased = copy.deepcopy(data)
    for category in rebased.get("categories", []):
        category_id = category.get("id", "?")
        if category.get("default_factor"):
            category["default_factor"] = _rebase_factor(
                category["default_factor"], f"{category_id} (default)"
            )
        for subcategory in category.get("subcategories", []):
            factors = subcategory.get("emission_factors", {})
            for method, factor in factors.items():
                factors[method] = _rebase_factor(
                    factor, f"{category_id}/{subcategory.get('id', '?')}/{method}"
                )
    return rebased


class FactorRegistry:
    """Read-only view over one loaded factor dataset"""

    def __init__(self, dataset: FactorDataset):
        self._dataset = dataset
        categories: Dict[str, Category] = {}
        for category in dataset.categories:
            if category.id in categories:
                raise RegistryLoadError(f"Duplicate category id '{category.id}'")
            self._check_units(category)
            categories[category.id] = category
        self._categories = MappingProxyType(categories)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FactorRegistry":
        try:
            dataset = FactorDataset.model_validate(_rebase_dataset(data))
        except ValidationError as e:
            raise RegistryLoadError(f"Invalid factor dataset: {e}") from e
        return cls(dataset)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FactorRegistry":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryLoadError(f"Cannot read factor dataset {path}: {e}") from e

        registry = cls.from_dict(data)
        logger.info(
            f"Loaded emission factor dataset '{registry.dataset}' "
            f"version {registry.version} ({len(registry)} categories) from {path}"
        )
        return registry

    @staticmethod
    def _check_units(category: Category) -> None:
        factors: List[EmissionFactor] = []
        if category.default_factor is not None:
            factors.append(category.default_factor)
        try:
            for subcategory in category.subcategories:
                canonical_unit(subcategory.canonical_unit)
                factors.extend(subcategory.emission_factors.values())
            for factor in factors:
                factor_denominator(factor.unit)
        except UnsupportedUnitError as e:
            raise RegistryLoadError(f"Category '{category.id}': {e}") from e

    @property
    def version(self) -> str:
        return self._dataset.version

    @property
    def dataset(self) -> str:
        return self._dataset.dataset

    def __len__(self) -> int:
        return len(self._categories)

    def __contains__(self, category_id: str) -> bool:
        return category_id in self._categories

    def get_category(self, category_id: str) -> Category:
        category = self._categories.get(category_id)
        if category is None:
            raise FactorNotFoundError(category_id)
        return category

    def get_category_by_number(self, number: int) -> Category:
        """Scope 3 category by its GHG Protocol number (1-15)"""
        for category in self._categories.values():
            if category.scope == GHGScope.SCOPE3 and category.number == number:
                return category
        raise FactorNotFoundError(f"scope3 category #{number}")

    def get_subcategory(self, category_id: str, subcategory_id: str) -> Subcategory:
        subcategory = self.get_category(category_id).get_subcategory(subcategory_id)
        if subcategory is None:
            raise FactorNotFoundError(category_id, subcategory_id)
        return subcategory

    def lookup(
        self, category_id: str, subcategory_id: str, method: CalculationMethod
    ) -> EmissionFactor:
        factor = self.get_subcategory(category_id, subcategory_id).factor_for(method)
        if factor is None:
            raise FactorNotFoundError(category_id, subcategory_id, method.value)
        return factor

    def default_factor(self, category_id: str) -> Optional[EmissionFactor]:
        return self.get_category(category_id).default_factor

    def categories(
        self,
        scope: Optional[GHGScope] = None,
        direction: Optional[CategoryDirection] = None,
    ) -> List[Category]:
        """Categories in dataset order, optionally filtered"""
        return [
            category
            for category in self._categories.values()
            if (scope is None or category.scope == scope)
            and (direction is None or category.direction == direction)
        ]

    def upstream_categories(self) -> List[Category]:
        return self.categories(GHGScope.SCOPE3, CategoryDirection.UPSTREAM)

    def downstream_categories(self) -> List[Category]:
        return self.categories(GHGScope.SCOPE3, CategoryDirection.DOWNSTREAM)

    def summaries(
        self,
        scope: Optional[GHGScope] = None,
        direction: Optional[CategoryDirection] = None,
    ) -> List[CategorySummary]:
        return [
            CategorySummary(
                id=category.id,
                number=category.number,
                name=category.name,
                scope=category.scope,
                direction=category.direction,
                default_method=category.default_method,
                available_methods=list(category.available_methods),
                subcategory_ids=[sub.id for sub in category.subcategories],
                has_default_factor=category.default_factor is not None,
            )
            for category in self.categories(scope, direction)
        ]


_registry_lock = threading.Lock()
_current_registry: Optional[FactorRegistry] = None


def get_factor_registry() -> FactorRegistry:
    """Current registry snapshot, loaded on first use"""
    global _current_registry
    with _registry_lock:
        if _current_registry is None:
            _current_registry = FactorRegistry.from_file(settings.FACTOR_DATASET_PATH)
        return _current_registry


def replace_factor_registry(registry: FactorRegistry) -> Optional[FactorRegistry]:
    """Atomically swap the current snapshot, returning the previous one"""
    global _current_registry
    with _registry_lock:
        previous = _current_registry
        _current_registry = registry
    if previous is not None:
        logger.info(
            f"Factor registry replaced: {previous.version} -> {registry.version}"
        )
    else:
        logger.info(f"Factor registry installed: {registry.version}")
    return previous
