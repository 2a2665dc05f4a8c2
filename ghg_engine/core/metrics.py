"""
Prometheus Metrics Configuration
HTTP request metrics and emissions engine business metrics
"""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

from ghg_engine.schemas.emissions import BatchCalculationResult

# Request metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

ACTIVE_CONNECTIONS = Gauge("active_connections", "Number of active connections")

# Business metrics
EMISSIONS_CALCULATIONS = Counter(
    "emissions_calculations_total",
    "Total number of emissions calculations performed",
    ["scope", "method"],
)

CALCULATION_FAILURES = Counter(
    "emissions_calculation_failures_total",
    "Total number of activity records rejected by the engine",
    ["error_code"],
)

REPORT_GENERATION_DURATION = Histogram(
    "compliance_report_duration_seconds",
    "Compliance report generation duration in seconds",
)

REPORTS_BY_RISK = Counter(
    "compliance_reports_total",
    "Total number of compliance reports generated",
    ["risk_level"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP metrics"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        ACTIVE_CONNECTIONS.inc()

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code,
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method, endpoint=request.url.path
            ).observe(duration)

            return response

        finally:
            ACTIVE_CONNECTIONS.dec()


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format"""
    return generate_latest()


def record_emissions_calculation(scope: str, method: str):
    """Record an emissions calculation"""
    EMISSIONS_CALCULATIONS.labels(scope=scope, method=method).inc()


def record_calculation_failure(error_code: str):
    """Record a rejected activity record"""
    CALCULATION_FAILURES.labels(error_code=error_code).inc()


def record_batch_calculation(batch: BatchCalculationResult):
    """Record every result and failure of a calculated batch"""
    for result in batch.results:
        record_emissions_calculation(result.scope.value, result.method_used.value)
    for failure in batch.failures:
        record_calculation_failure(failure.error_code)


def record_report_generated(risk_level: str, duration: float):
    """Record a generated compliance report and how long it took"""
    REPORTS_BY_RISK.labels(risk_level=risk_level).inc()
    REPORT_GENERATION_DURATION.observe(duration)
