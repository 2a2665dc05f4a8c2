"""
API v1 Router Configuration
Aggregates all API endpoints for version 1
"""

from fastapi import APIRouter

from ghg_engine.api.v1.endpoints import emissions

api_router = APIRouter()

api_router.include_router(emissions.router, prefix="/emissions", tags=["Emissions"])
