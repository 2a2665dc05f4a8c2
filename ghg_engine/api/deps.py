"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from fastapi import Depends, HTTPException, status

from ghg_engine.core.exceptions import RegistryLoadError
from ghg_engine.services.factor_registry import FactorRegistry, get_factor_registry
from ghg_engine.services.report_service import ReportService


def get_registry() -> FactorRegistry:
    """
    Factor registry dependency
    Resolves the current snapshot once per request
    """
    try:
        return get_factor_registry()
    except RegistryLoadError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error_code": e.error_code, "message": str(e)},
        )


def get_report_service(
    registry: FactorRegistry = Depends(get_registry),
) -> ReportService:
    return ReportService(registry)
