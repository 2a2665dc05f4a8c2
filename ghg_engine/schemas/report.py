"""
Compliance report schemas
Scope summaries, uncertainty budget, audit trail and compliance scoring
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ghg_engine.schemas.emissions import ActivityRecord, CalculationResult, FailedRecord


class VerificationLevel(str, Enum):
    """Third-party verification status of the inventory"""

    VERIFIED = "verified"  # Reasonable assurance by an accredited body
    LIMITED = "limited"  # Limited assurance
    UNVERIFIED = "unverified"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ImplementationCost(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non_compliant"


class ScopeSummary(BaseModel):
    """Total and propagated uncertainty of a group of results"""

    name: str
    total: float = Field(..., ge=0.0)
    standard_uncertainty: float = Field(..., ge=0.0)
    expanded_uncertainty: float = Field(..., ge=0.0)
    effective_degrees_of_freedom: float = Field(..., gt=0.0)
    coverage_factor: float = Field(2.0, gt=0.0)
    relative_expanded_uncertainty_percent: float = Field(0.0, ge=0.0)
    item_count: int = 0
    failed_count: int = 0
    is_complete: bool = True

    model_config = ConfigDict(frozen=True)


class UncertaintyBudgetEntry(BaseModel):
    """Share of the combined variance attributable to one component"""

    component: str
    contribution_percent: float = Field(..., ge=0.0, le=100.0)
    improvement_potential: Optional[str] = None


class AuditTrailEntry(BaseModel):
    """Ordered calculation step recorded for re-audit"""

    step: int = Field(..., ge=1)
    stage: str
    description: str
    formula: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class Recommendation(BaseModel):
    """Improvement action derived from a fired compliance penalty"""

    category: str
    priority: Priority
    description: str
    potential_improvement: float = Field(..., ge=0.0, description="Score points recoverable")
    implementation_cost: ImplementationCost
    timeline: str


class DataQualityAssessment(BaseModel):
    """Inputs of the compliance scorer"""

    primary_data_coverage_percent: float = Field(..., ge=0.0, le=100.0)
    relative_uncertainty_percent: float = Field(..., ge=0.0)
    verification_level: VerificationLevel = VerificationLevel.UNVERIFIED
    fallback_count: int = Field(0, ge=0)
    rejected_count: int = Field(0, ge=0, description="Records with no usable factor")


class RegulatoryReference(BaseModel):
    """Status of the inventory against one regulatory requirement"""

    regulation: str
    article: str
    requirement: str
    compliance_status: ComplianceStatus


class PenaltyApplied(BaseModel):
    """One penalty category that reduced the compliance score"""

    category: str
    points: float = Field(..., ge=0.0)
    reason: str


class ComplianceScore(BaseModel):
    """Result of compliance scoring"""

    compliance_score: float = Field(..., ge=0.0, le=100.0)
    regulatory_risk_level: RiskLevel
    penalties: List[PenaltyApplied] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    regulatory_references: List[RegulatoryReference] = Field(default_factory=list)


class ComplianceReport(BaseModel):
    """Derived, disposable view over one batch and one registry snapshot"""

    registry_version: str
    factor_dataset: str

    scope1: ScopeSummary
    scope2: ScopeSummary
    scope3_upstream: ScopeSummary
    scope3_downstream: ScopeSummary
    scope3: ScopeSummary
    grand_total: ScopeSummary

    results: List[CalculationResult] = Field(default_factory=list)
    failed_records: List[FailedRecord] = Field(default_factory=list)

    primary_data_coverage_percent: float = Field(..., ge=0.0, le=100.0)
    relative_uncertainty_percent: float = Field(..., ge=0.0)
    verification_level: VerificationLevel

    compliance_score: float = Field(..., ge=0.0, le=100.0)
    regulatory_risk_level: RiskLevel
    recommendations: List[Recommendation] = Field(default_factory=list)
    regulatory_references: List[RegulatoryReference] = Field(default_factory=list)
    uncertainty_budget: List[UncertaintyBudgetEntry] = Field(default_factory=list)
    audit_trail: List[AuditTrailEntry] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.failed_records


class ReportRequest(BaseModel):
    """Schema for compliance report requests"""

    records: List[ActivityRecord] = Field(..., min_length=1)
    verification_level: VerificationLevel = VerificationLevel.UNVERIFIED
    processing_mode: str = Field("sequential", description="sequential or parallel")

    @field_validator("processing_mode")
    @classmethod
    def validate_processing_mode(cls, v):
        valid_modes = ["sequential", "parallel"]
        if v not in valid_modes:
            raise ValueError(f"Processing mode must be one of: {valid_modes}")
        return v
