"""
Emissions calculation endpoints
Factor browsing, batch calculation and compliance reports
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ghg_engine.api.deps import get_registry, get_report_service
from ghg_engine.core.exceptions import EmissionsEngineError, FactorNotFoundError
from ghg_engine.schemas.emissions import BatchCalculationResult, CalculationRequest
from ghg_engine.schemas.factors import Category, CategoryDirection, CategorySummary, GHGScope
from ghg_engine.schemas.report import ComplianceReport, ReportRequest
from ghg_engine.services.factor_registry import FactorRegistry
from ghg_engine.services.report_service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter()


def _engine_http_error(error: EmissionsEngineError) -> HTTPException:
    status_code = (
        status.HTTP_404_NOT_FOUND
        if isinstance(error, FactorNotFoundError)
        else status.HTTP_422_UNPROCESSABLE_ENTITY
    )
    return HTTPException(
        status_code=status_code,
        detail={"error_code": error.error_code, "message": str(error)},
    )


@router.get("/factors", response_model=List[CategorySummary])
def list_factor_categories(
    scope: Optional[GHGScope] = Query(None, description="Filter by GHG scope"),
    direction: Optional[CategoryDirection] = Query(
        None, description="Filter by value-chain direction (upstream, downstream)"
    ),
    registry: FactorRegistry = Depends(get_registry),
):
    """
    List emission factor categories of the current registry snapshot
    """
    return registry.summaries(scope, direction)


@router.get("/factors/{category_id}", response_model=Category)
def get_factor_category(
    category_id: str,
    registry: FactorRegistry = Depends(get_registry),
):
    """
    Get one category with its subcategories and per-method factors
    """
    try:
        return registry.get_category(category_id)
    except FactorNotFoundError as e:
        raise _engine_http_error(e)


@router.post("/calculate", response_model=BatchCalculationResult)
def calculate_emissions(
    request: CalculationRequest,
    service: ReportService = Depends(get_report_service),
):
    """
    Calculate emissions for a batch of activity records

    Records the engine cannot quantify are returned as failures alongside
    the successful results.
    """
    try:
        return service.calculate(request.records, request.processing_mode)
    except EmissionsEngineError as e:
        logger.warning(f"Batch calculation rejected: {e}")
        raise _engine_http_error(e)


@router.post("/report", response_model=ComplianceReport)
def generate_compliance_report(
    request: ReportRequest,
    service: ReportService = Depends(get_report_service),
):
    """
    Generate a compliance report: scope totals with expanded uncertainty,
    uncertainty budget, compliance score, recommendations and audit trail
    """
    try:
        return service.build_report(
            request.records, request.verification_level, request.processing_mode
        )
    except EmissionsEngineError as e:
        logger.warning(f"Compliance report rejected: {e}")
        raise _engine_http_error(e)
