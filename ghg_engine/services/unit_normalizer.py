"""
Unit Normalizer Service
Converts activity quantities into the unit an emission factor is expressed in
"""

import logging
from typing import Dict, Tuple

from ghg_engine.core.exceptions import UnitMismatchError, UnsupportedUnitError

logger = logging.getLogger(__name__)

CURRENCY = "currency"

# canonical unit -> (dimension, scale to the dimension's base unit)
UNIT_TABLE: Dict[str, Tuple[str, float]] = {
    # Mass (base kg)
    "kg": ("mass", 1.0),
    "g": ("mass", 0.001),
    "t": ("mass", 1000.0),
    "lb": ("mass", 0.45359237),
    # Energy (base kWh, lower heating value)
    "kWh": ("energy", 1.0),
    "MWh": ("energy", 1000.0),
    "GWh": ("energy", 1e6),
    "MJ": ("energy", 1.0 / 3.6),
    "GJ": ("energy", 1000.0 / 3.6),
    "TJ": ("energy", 1e6 / 3.6),
    "BTU": ("energy", 1055.05585 / 3.6e6),  # International Table BTU
    "MMBtu": ("energy", 1055.05585 / 3.6),
    "thermie": ("energy", 1.163),
    "tep": ("energy", 11630.0),
    "kWh_PCS": ("energy", 0.9),  # higher heating value, PCI = 0.9 x PCS
    # Volume (base L)
    "L": ("volume", 1.0),
    "m3": ("volume", 1000.0),
    "gallon_us": ("volume", 3.785411784),
    "gallon_uk": ("volume", 4.54609),
    # Distance (base km)
    "km": ("distance", 1.0),
    "m": ("distance", 0.001),
    "mile": ("distance", 1.609344),
    "nm": ("distance", 1.852),
    # Freight (base t.km)
    "t.km": ("freight", 1.0),
    "kg.km": ("freight", 0.001),
    # Passenger distance, area
    "p.km": ("passenger_distance", 1.0),
    "m2": ("area", 1.0),
    "m2.year": ("area_year", 1.0),
    # Direct emissions (base kgCO2e)
    "kgCO2e": ("emissions", 1.0),
    "tCO2e": ("emissions", 1000.0),
    # Counted items, each its own dimension
    "unit": ("count_unit", 1.0),
    "vehicle": ("count_vehicle", 1.0),
    "computer": ("count_computer", 1.0),
    "night": ("count_night", 1.0),
    "day": ("count_day", 1.0),
    "hour": ("count_hour", 1.0),
    "parcel": ("count_parcel", 1.0),
    "vehicle.year": ("count_vehicle_year", 1.0),
    # Currencies pass through unchanged; no exchange rates are applied
    "EUR": (CURRENCY, 1.0),
    "kEUR": (CURRENCY, 1.0),
    "MEUR": (CURRENCY, 1.0),
    "USD": (CURRENCY, 1.0),
    "TND": (CURRENCY, 1.0),
}

UNIT_ALIASES: Dict[str, str] = {
    # Mass
    "kilogram": "kg",
    "kilogramme": "kg",
    "gram": "g",
    "tonne": "t",
    "tonnes": "t",
    "metric_ton": "t",
    "lbs": "lb",
    "pound": "lb",
    # Energy
    "kwh pci": "kWh",
    "kwh.an": "kWh",
    "kilowatt_hour": "kWh",
    "kwh pcs": "kWh_PCS",
    "megajoule": "MJ",
    "gigajoule": "GJ",
    "terajoule": "TJ",
    "british_thermal_unit": "BTU",
    "th": "thermie",
    "toe": "tep",
    # Volume
    "l": "L",
    "litre": "L",
    "litres": "L",
    "liter": "L",
    "liters": "L",
    "m³": "m3",
    "cubic_meter": "m3",
    "gallon": "gallon_us",
    "gal": "gallon_us",
    # Distance
    "kilometre": "km",
    "kilometer": "km",
    "meter": "m",
    "metre": "m",
    "miles": "mile",
    # Freight and passenger distance
    "tkm": "t.km",
    "t-km": "t.km",
    "tonne.km": "t.km",
    "kgkm": "kg.km",
    "passager.km": "p.km",
    "passenger.km": "p.km",
    "pkm": "p.km",
    # Area
    "m²": "m2",
    "m².an": "m2.year",
    "m2.an": "m2.year",
    "m2.yr": "m2.year",
    # Counts
    "unité": "unit",
    "units": "unit",
    "véhicule": "vehicle",
    "ordinateur": "computer",
    "nuitée": "night",
    "nights": "night",
    "jour": "day",
    "days": "day",
    "heure": "hour",
    "h": "hour",
    "hours": "hour",
    "colis": "parcel",
    "véh.an": "vehicle.year",
    # Emissions
    "kgco2e": "kgCO2e",
    "tco2e": "tCO2e",
    # Currencies
    "€": "EUR",
    "k€": "kEUR",
    "m€": "MEUR",
    "$": "USD",
    "usd": "USD",
    "dt": "TND",
}

_CASE_INSENSITIVE = {name.lower(): name for name in UNIT_TABLE}


def canonical_unit(unit: str) -> str:
    """Return the canonical spelling of a unit, raising for unknown units"""
    if unit is None:
        raise UnsupportedUnitError("None")
    cleaned = unit.strip()
    if cleaned in UNIT_TABLE:
        return cleaned
    lowered = cleaned.lower()
    if lowered in UNIT_ALIASES:
        return UNIT_ALIASES[lowered]
    if lowered in _CASE_INSENSITIVE:
        return _CASE_INSENSITIVE[lowered]
    raise UnsupportedUnitError(unit)


def dimension_of(unit: str) -> str:
    return UNIT_TABLE[canonical_unit(unit)][0]


def is_currency(unit: str) -> bool:
    try:
        return dimension_of(unit) == CURRENCY
    except UnsupportedUnitError:
        return False


def is_compatible(unit: str, other: str) -> bool:
    """True when a quantity in `unit` can be normalized into `other`"""
    try:
        a = canonical_unit(unit)
        b = canonical_unit(other)
    except UnsupportedUnitError:
        return False
    if UNIT_TABLE[a][0] == CURRENCY or UNIT_TABLE[b][0] == CURRENCY:
        return a == b
    return UNIT_TABLE[a][0] == UNIT_TABLE[b][0]


def factor_denominator(factor_unit: str) -> str:
    """Canonical activity unit of a factor unit such as 'kgCO2e/t.km'"""
    if "/" not in factor_unit:
        raise UnsupportedUnitError(factor_unit)
    return canonical_unit(factor_unit.split("/", 1)[1])


def normalize(quantity: float, unit: str, target_unit: str) -> float:
    """Convert `quantity` expressed in `unit` into `target_unit`"""
    source = canonical_unit(unit)
    target = canonical_unit(target_unit)
    source_dimension, source_scale = UNIT_TABLE[source]
    target_dimension, target_scale = UNIT_TABLE[target]

    if source_dimension == CURRENCY or target_dimension == CURRENCY:
        if source != target:
            raise UnitMismatchError(source, target)
        return quantity

    if source_dimension != target_dimension:
        raise UnsupportedUnitError(source, target)

    if source == target:
        return quantity

    converted = quantity * source_scale / target_scale
    logger.debug(f"Converted {quantity} {source} to {converted} {target}")
    return converted
