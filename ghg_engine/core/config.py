"""
Application Configuration Settings
Handles environment variables and calculation policy settings
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FACTOR_DATASET = str(
    Path(__file__).resolve().parent.parent / "data" / "emission_factors.json"
)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "GHG Quantification Engine"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Monitoring
    PROMETHEUS_METRICS_ENABLED: bool = True

    # Emission factor registry
    FACTOR_DATASET_PATH: str = DEFAULT_FACTOR_DATASET

    # Uncertainty propagation (GUM, ISO/IEC Guide 98-3)
    SOURCE_COVERAGE_FACTOR: float = 2.0  # factor uncertainties are quoted at k=2
    COVERAGE_FACTOR: float = 2.0
    COVERAGE_FACTOR_MODE: str = "fixed"  # fixed or student_t
    COVERAGE_PROBABILITY: float = 0.95  # two-sided level of the Student-t mode
    DOF_SENTINEL: float = 1e6
    BUDGET_TOP_CONTRIBUTORS: int = 3

    # Degrees of freedom by data provenance
    DOF_ACTUAL: float = 30.0
    DOF_TECHNICAL: float = 10.0
    DOF_MONETARY: float = 3.0
    DOF_DEFAULT: float = 3.0

    # Regulatory risk thresholds (score >= threshold)
    RISK_LOW_MIN_SCORE: float = 80.0
    RISK_MEDIUM_MIN_SCORE: float = 50.0

    # Compliance penalties: (threshold, penalty) bands, most severe first
    COVERAGE_PENALTY_BANDS: List[Tuple[float, float]] = [
        (20.0, 25.0),
        (50.0, 15.0),
        (80.0, 8.0),
    ]
    UNCERTAINTY_PENALTY_BANDS: List[Tuple[float, float]] = [
        (30.0, 25.0),
        (15.0, 15.0),
        (10.0, 10.0),
    ]
    UNVERIFIED_PENALTY: float = 10.0
    LIMITED_VERIFICATION_PENALTY: float = 5.0
    FALLBACK_PENALTY_PER_RECORD: float = 5.0
    FALLBACK_PENALTY_CAP: float = 20.0

    # Batch processing
    PARALLEL_MAX_WORKERS: Optional[int] = None

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        if v not in ["development", "staging", "production", "testing"]:
            raise ValueError(
                "ENVIRONMENT must be development, staging, production, or testing"
            )
        return v

    @field_validator("COVERAGE_FACTOR_MODE")
    @classmethod
    def validate_coverage_factor_mode(cls, v):
        if v not in ["fixed", "student_t"]:
            raise ValueError("COVERAGE_FACTOR_MODE must be fixed or student_t")
        return v

    @field_validator("COVERAGE_PROBABILITY")
    @classmethod
    def validate_coverage_probability(cls, v):
        if not 0 < v < 1:
            raise ValueError("COVERAGE_PROBABILITY must be between 0 and 1")
        return v

    @field_validator(
        "COVERAGE_FACTOR",
        "SOURCE_COVERAGE_FACTOR",
        "DOF_SENTINEL",
        "DOF_ACTUAL",
        "DOF_TECHNICAL",
        "DOF_MONETARY",
        "DOF_DEFAULT",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Coverage factors and degrees of freedom must be > 0")
        return v

    @field_validator("RISK_MEDIUM_MIN_SCORE")
    @classmethod
    def validate_risk_thresholds(cls, v, info):
        low = info.data.get("RISK_LOW_MIN_SCORE")
        if low is not None and v > low:
            raise ValueError("RISK_MEDIUM_MIN_SCORE must not exceed RISK_LOW_MIN_SCORE")
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return ["*"]
            return [origin.strip() for origin in v.split(",")]
        return v

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if os.getenv("TESTING") == "true":
            self.ENVIRONMENT = "testing"


# Global settings instance
settings = Settings()
