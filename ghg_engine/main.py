"""
GHG Quantification Engine - Main FastAPI Application
Emissions calculation, GUM uncertainty propagation and compliance scoring
"""

from datetime import datetime

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from ghg_engine import __version__
from ghg_engine.api.v1.api import api_router
from ghg_engine.core.config import settings
from ghg_engine.core.logging_config import configure_logging
from ghg_engine.core.metrics import CONTENT_TYPE_LATEST, MetricsMiddleware, get_metrics
from ghg_engine.core.middleware import AuditMiddleware, ErrorHandlingMiddleware

configure_logging()

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "GHG Protocol emissions quantification with GUM uncertainty propagation"
    ),
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

if settings.PROMETHEUS_METRICS_ENABLED:
    app.add_middleware(MetricsMiddleware)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(AuditMiddleware)

app.include_router(api_router, prefix="/v1")


@app.get("/health")
async def health_check():
    """Basic health check endpoint for load balancers and monitoring"""
    return {
        "status": "healthy",
        "service": "ghg-engine",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    uvicorn.run(
        "ghg_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
