"""
Emission factor registry schemas
Categories, subcategories and factors of a versioned factor dataset
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CalculationMethod(str, Enum):
    """Data provenance used to quantify an activity, most trusted first"""

    ACTUAL = "actual"  # Measured or invoiced physical data
    TECHNICAL = "technical"  # Engineering estimate
    MONETARY = "monetary"  # Spend-based ratio


class MethodUsed(str, Enum):
    """Method recorded on a calculation result"""

    ACTUAL = "actual"
    TECHNICAL = "technical"
    MONETARY = "monetary"
    DEFAULT = "default"  # Registry-declared category fallback factor


class GHGScope(str, Enum):
    """GHG Protocol scopes"""

    SCOPE1 = "scope1"
    SCOPE2 = "scope2"
    SCOPE3 = "scope3"


class CategoryDirection(str, Enum):
    """Position of a category in the value chain"""

    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"
    DIRECT = "direct"
    INDIRECT = "indirect"


# Preference order when the caller does not force a method
METHOD_PREFERENCE: Tuple[CalculationMethod, ...] = (
    CalculationMethod.ACTUAL,
    CalculationMethod.TECHNICAL,
    CalculationMethod.MONETARY,
)

SCOPE_DIRECTIONS: Dict[GHGScope, Tuple[CategoryDirection, ...]] = {
    GHGScope.SCOPE1: (CategoryDirection.DIRECT,),
    GHGScope.SCOPE2: (CategoryDirection.INDIRECT,),
    GHGScope.SCOPE3: (CategoryDirection.UPSTREAM, CategoryDirection.DOWNSTREAM),
}


class EmissionFactor(BaseModel):
    """Single emission factor, expressed in kgCO2e per activity unit"""

    value: float = Field(..., ge=0.0)
    unit: str = Field(..., description="Factor unit, e.g. kgCO2e/kWh")
    source: str = Field(..., description="Source citation")
    uncertainty_percent: float = Field(
        ..., ge=0.0, le=100.0, description="Relative uncertainty at k=2 (95%)"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def per_unit(self) -> str:
        """Activity unit the factor applies to (denominator of the factor unit)"""
        if "/" not in self.unit:
            return self.unit
        return self.unit.split("/", 1)[1].strip()


class Subcategory(BaseModel):
    """Activity subcategory with its sparse per-method factors"""

    id: str
    name: str
    description: Optional[str] = None
    canonical_unit: str
    emission_factors: Dict[CalculationMethod, EmissionFactor] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def factor_for(self, method: CalculationMethod) -> Optional[EmissionFactor]:
        return self.emission_factors.get(method)


class Category(BaseModel):
    """GHG Protocol category (Scope 3 categories 1-15, 0 for Scope 1/2 sources)"""

    id: str
    number: int = Field(..., ge=0, le=15)
    name: str
    scope: GHGScope
    direction: CategoryDirection
    default_method: CalculationMethod
    available_methods: Tuple[CalculationMethod, ...]
    subcategories: Tuple[Subcategory, ...] = ()
    default_factor: Optional[EmissionFactor] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("available_methods")
    @classmethod
    def validate_available_methods(cls, v):
        if not v:
            raise ValueError("available_methods must not be empty")
        if len(set(v)) != len(v):
            raise ValueError("available_methods must not contain duplicates")
        return v

    @model_validator(mode="after")
    def validate_consistency(self):
        if self.default_method not in self.available_methods:
            raise ValueError(
                f"Default method '{self.default_method.value}' of '{self.id}' "
                "is not in available_methods"
            )
        if self.direction not in SCOPE_DIRECTIONS[self.scope]:
            raise ValueError(
                f"Direction '{self.direction.value}' is not valid for {self.scope.value}"
            )
        if self.scope == GHGScope.SCOPE3 and self.number == 0:
            raise ValueError("Scope 3 categories must carry a GHG Protocol number 1-15")
        if self.scope != GHGScope.SCOPE3 and self.number != 0:
            raise ValueError("Scope 1 and 2 categories use number 0")
        ids = [sub.id for sub in self.subcategories]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate subcategory ids in '{self.id}'")
        return self

    def get_subcategory(self, subcategory_id: str) -> Optional[Subcategory]:
        for subcategory in self.subcategories:
            if subcategory.id == subcategory_id:
                return subcategory
        return None


class FactorDataset(BaseModel):
    """Serialized factor dataset as stored in the registry source"""

    dataset: str
    version: str
    categories: List[Category] = Field(..., min_length=1)


class CategorySummary(BaseModel):
    """Lightweight category listing for factor browsing"""

    id: str
    number: int
    name: str
    scope: GHGScope
    direction: CategoryDirection
    default_method: CalculationMethod
    available_methods: List[CalculationMethod]
    subcategory_ids: List[str]
    has_default_factor: bool
