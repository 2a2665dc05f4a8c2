"""
Pytest configuration and fixtures for the GHG quantification engine tests
"""

import copy
import os

import pytest
from fastapi.testclient import TestClient

# Set test environment variable before any imports
os.environ["TESTING"] = "true"

from ghg_engine.core.config import settings
from ghg_engine.main import app
from ghg_engine.schemas.emissions import ActivityRecord
from ghg_engine.services.factor_registry import (
    FactorRegistry,
    replace_factor_registry,
)

# Compact dataset covering every scope, direction and method edge case
SAMPLE_DATASET = {
    "dataset": "Test factors",
    "version": "test-1",
    "categories": [
        {
            "id": "mobile_combustion",
            "number": 0,
            "name": "Mobile combustion",
            "scope": "scope1",
            "direction": "direct",
            "default_method": "actual",
            "available_methods": ["actual"],
            "default_factor": {
                "value": 2.67,
                "unit": "kgCO2e/L",
                "source": "Default diesel",
                "uncertainty_percent": 10,
            },
            "subcategories": [
                {
                    "id": "diesel",
                    "name": "Diesel",
                    "canonical_unit": "L",
                    "emission_factors": {
                        "actual": {
                            "value": 2.68,
                            "unit": "kgCO2e/L",
                            "source": "ADEME",
                            "uncertainty_percent": 5,
                        }
                    },
                }
            ],
        },
        {
            "id": "purchased_electricity",
            "number": 0,
            "name": "Purchased electricity",
            "scope": "scope2",
            "direction": "indirect",
            "default_method": "actual",
            "available_methods": ["actual"],
            "subcategories": [
                {
                    "id": "grid",
                    "name": "Grid",
                    "canonical_unit": "kWh",
                    "emission_factors": {
                        "actual": {
                            "value": 0.5,
                            "unit": "kgCO2e/kWh",
                            "source": "Grid mix",
                            "uncertainty_percent": 10,
                        }
                    },
                }
            ],
        },
        {
            "id": "purchased_goods_services",
            "number": 1,
            "name": "Purchased goods and services",
            "scope": "scope3",
            "direction": "upstream",
            "default_method": "monetary",
            "available_methods": ["actual", "technical", "monetary"],
            "default_factor": {
                "value": 0.5,
                "unit": "kgCO2e/EUR",
                "source": "Generic spend-based estimate",
                "uncertainty_percent": 50,
            },
            "subcategories": [
                {
                    "id": "steel",
                    "name": "Steel",
                    "canonical_unit": "kg",
                    "emission_factors": {
                        "actual": {
                            "value": 1.46,
                            "unit": "kgCO2e/kg",
                            "source": "Base Carbone ADEME",
                            "uncertainty_percent": 10,
                        },
                        "monetary": {
                            "value": 0.89,
                            "unit": "kgCO2e/EUR",
                            "source": "ADEME - Ratios monetaires",
                            "uncertainty_percent": 30,
                        },
                    },
                },
                {
                    "id": "glass",
                    "name": "Glass",
                    "canonical_unit": "kg",
                    "emission_factors": {
                        "actual": {
                            "value": 0.85,
                            "unit": "kgCO2e/kg",
                            "source": "Base Carbone ADEME",
                            "uncertainty_percent": 15,
                        }
                    },
                },
                {
                    "id": "exact",
                    "name": "Exactly known input",
                    "canonical_unit": "kg",
                    "emission_factors": {
                        "actual": {
                            "value": 1.0,
                            "unit": "kgCO2e/kg",
                            "source": "Measured",
                            "uncertainty_percent": 0,
                        }
                    },
                },
            ],
        },
        {
            "id": "waste_generated",
            "number": 5,
            "name": "Waste generated in operations",
            "scope": "scope3",
            "direction": "upstream",
            "default_method": "actual",
            "available_methods": ["actual"],
            "subcategories": [
                {
                    "id": "landfill",
                    "name": "Landfill",
                    "canonical_unit": "kg",
                    "emission_factors": {
                        "actual": {
                            "value": 0.48,
                            "unit": "kgCO2e/kg",
                            "source": "Base Carbone ADEME",
                            "uncertainty_percent": 25,
                        }
                    },
                }
            ],
        },
        {
            "id": "investments",
            "number": 15,
            "name": "Investments",
            "scope": "scope3",
            "direction": "downstream",
            "default_method": "monetary",
            "available_methods": ["monetary"],
            "subcategories": [
                {
                    "id": "equity_listed",
                    "name": "Listed equity",
                    "canonical_unit": "MEUR",
                    "emission_factors": {
                        "monetary": {
                            "value": 120,
                            "unit": "tCO2e/MEUR",
                            "source": "PCAF",
                            "uncertainty_percent": 35,
                        }
                    },
                }
            ],
        },
    ],
}


@pytest.fixture
def sample_dataset():
    """Mutable copy of the compact dataset"""
    return copy.deepcopy(SAMPLE_DATASET)


@pytest.fixture(scope="session")
def registry():
    """Registry built from the compact test dataset"""
    return FactorRegistry.from_dict(SAMPLE_DATASET)


@pytest.fixture(scope="session")
def bundled_registry():
    """Registry loaded from the dataset shipped with the package"""
    return FactorRegistry.from_file(settings.FACTOR_DATASET_PATH)


@pytest.fixture
def make_record():
    """Factory for activity records with sensible defaults"""

    def _make(
        quantity=1000.0,
        unit="kg",
        category_id="purchased_goods_services",
        subcategory_id="steel",
        scope="scope3",
        **kwargs,
    ):
        return ActivityRecord(
            quantity=quantity,
            unit=unit,
            category_id=category_id,
            subcategory_id=subcategory_id,
            scope=scope,
            **kwargs,
        )

    return _make


@pytest.fixture
def installed_registry(registry):
    """Install the test registry as the current snapshot for the test"""
    previous = replace_factor_registry(registry)
    yield registry
    if previous is not None:
        replace_factor_registry(previous)


@pytest.fixture
def client(installed_registry):
    """Test client bound to the test registry"""
    with TestClient(app) as test_client:
        yield test_client
