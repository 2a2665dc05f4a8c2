"""
Emissions calculation schemas for request/response validation
"""

import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ghg_engine.schemas.factors import (
    CalculationMethod,
    CategoryDirection,
    GHGScope,
    MethodUsed,
)


class ActivityRecord(BaseModel):
    """Schema for a validated activity data record"""

    record_id: Optional[str] = Field(None, description="Caller reference for the record")
    quantity: float = Field(..., ge=0, description="Quantity of activity data")
    unit: str = Field(..., min_length=1, description="Unit of measurement")
    category_id: str = Field(..., min_length=1)
    subcategory_id: str = Field(..., min_length=1)
    scope: GHGScope
    method_override: Optional[CalculationMethod] = Field(
        None, description="Force a calculation method instead of the preference order"
    )
    description: Optional[str] = Field(None, description="Free-text description")

    model_config = ConfigDict(frozen=True)

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if not math.isfinite(v):
            raise ValueError("Quantity must be a finite number")
        return v


class CalculationResult(BaseModel):
    """Item-level emissions result for one activity record"""

    record_id: Optional[str] = None
    scope: GHGScope
    category_id: str
    subcategory_id: str
    direction: CategoryDirection

    emissions_kg: float = Field(..., ge=0.0)
    relative_uncertainty_percent: float = Field(..., ge=0.0, le=100.0)
    standard_uncertainty_kg: float = Field(..., ge=0.0)
    expanded_uncertainty_kg: float = Field(..., ge=0.0, description="At the factor coverage factor, k=2")
    degrees_of_freedom: float = Field(..., gt=0.0)

    method_used: MethodUsed
    factor_value: float
    factor_unit: str
    factor_source: str

    normalized_quantity: float
    normalized_unit: str

    fallback_applied: bool = False
    registry_version: str
    notes: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class FailedRecord(BaseModel):
    """A record rejected by the engine, with the reason"""

    index: int
    record_id: Optional[str] = None
    scope: GHGScope
    category_id: str
    subcategory_id: str
    direction: Optional[CategoryDirection] = None
    error_code: str
    reason: str


class BatchCalculationResult(BaseModel):
    """Partial-failure result of a batch calculation"""

    registry_version: str
    results: List[CalculationResult] = Field(default_factory=list)
    failures: List[FailedRecord] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.failures


class CalculationRequest(BaseModel):
    """Schema for batch calculation requests"""

    records: List[ActivityRecord] = Field(..., min_length=1)
    processing_mode: str = Field("sequential", description="sequential or parallel")

    @field_validator("processing_mode")
    @classmethod
    def validate_processing_mode(cls, v):
        valid_modes = ["sequential", "parallel"]
        if v not in valid_modes:
            raise ValueError(f"Processing mode must be one of: {valid_modes}")
        return v
