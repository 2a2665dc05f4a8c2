"""
Test unit normalization
Conversions, aliases and the rules for currencies and unknown units
"""

import pytest

from ghg_engine.core.exceptions import UnitMismatchError, UnsupportedUnitError
from ghg_engine.services.unit_normalizer import (
    canonical_unit,
    factor_denominator,
    is_compatible,
    normalize,
)


class TestConversions:
    """Test conversions within a dimension"""

    @pytest.mark.parametrize(
        "quantity, unit, target, expected",
        [
            (1, "t", "kg", 1000.0),
            (500, "g", "kg", 0.5),
            (10, "lb", "kg", 4.5359237),
            (1, "MWh", "kWh", 1000.0),
            (2, "GWh", "MWh", 2000.0),
            (3.6, "MJ", "kWh", 1.0),
            (1, "GJ", "kWh", 277.7777777777778),
            (1, "TJ", "MWh", 277.7777777777778),
            (1000, "BTU", "kWh", 0.29307107),
            (1, "MMBtu", "GJ", 1.05505585),
            (1, "tep", "kWh", 11630.0),
            (10, "thermie", "kWh", 11.63),
            (100, "kWh PCS", "kWh", 90.0),
            (2, "m3", "L", 2000.0),
            (10, "gallon_us", "L", 37.85411784),
            (1, "gallon_uk", "L", 4.54609),
            (1, "mile", "km", 1.609344),
            (500, "m", "km", 0.5),
            (1000, "kg.km", "t.km", 1.0),
            (2, "tCO2e", "kgCO2e", 2000.0),
        ],
    )
    def test_physical_conversion(self, quantity, unit, target, expected):
        assert normalize(quantity, unit, target) == pytest.approx(expected)

    def test_same_unit_is_identity(self):
        assert normalize(42.0, "kWh", "kWh") == 42.0

    def test_count_units_pass_through(self):
        assert normalize(3, "nights", "night") == 3
        assert normalize(12, "véhicule", "vehicle") == 12

    def test_zero_quantity(self):
        assert normalize(0.0, "t", "kg") == 0.0


class TestCurrencies:
    """Test currency pass-through rules"""

    def test_identical_currency_passes_through(self):
        assert normalize(250, "€", "EUR") == 250

    def test_different_currencies_raise_mismatch(self):
        with pytest.raises(UnitMismatchError):
            normalize(100, "EUR", "USD")

    def test_scaled_currency_is_not_converted(self):
        with pytest.raises(UnitMismatchError):
            normalize(1, "kEUR", "EUR")

    def test_currency_against_physical_unit_raises_mismatch(self):
        with pytest.raises(UnitMismatchError):
            normalize(1, "kg", "EUR")
        with pytest.raises(UnitMismatchError):
            normalize(1, "EUR", "kg")


class TestUnsupportedUnits:
    """Test that unknown units are never approximated"""

    def test_unknown_unit(self):
        with pytest.raises(UnsupportedUnitError):
            normalize(1, "furlong", "km")

    def test_different_dimensions(self):
        with pytest.raises(UnsupportedUnitError):
            normalize(1, "kg", "kWh")

    def test_count_units_do_not_mix(self):
        with pytest.raises(UnsupportedUnitError):
            normalize(1, "night", "day")


class TestUnitHelpers:
    """Test alias resolution and compatibility helpers"""

    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("litre", "L"),
            ("l", "L"),
            ("tonne", "t"),
            ("m³", "m3"),
            ("tkm", "t.km"),
            ("passager.km", "p.km"),
            ("m².an", "m2.year"),
            ("nuitée", "night"),
            ("k€", "kEUR"),
            ("M€", "MEUR"),
            ("mwh", "MWh"),
            ("terajoule", "TJ"),
            ("Btu", "BTU"),
            ("british_thermal_unit", "BTU"),
            ("mmbtu", "MMBtu"),
            ("  kg ", "kg"),
        ],
    )
    def test_canonical_unit(self, alias, expected):
        assert canonical_unit(alias) == expected

    def test_canonical_unit_unknown(self):
        with pytest.raises(UnsupportedUnitError):
            canonical_unit("bushel")

    def test_is_compatible(self):
        assert is_compatible("kg", "t")
        assert is_compatible("EUR", "€")
        assert not is_compatible("EUR", "kg")
        assert not is_compatible("kEUR", "EUR")
        assert not is_compatible("kg", "kWh")
        assert not is_compatible("bogus", "kg")

    def test_factor_denominator(self):
        assert factor_denominator("kgCO2e/t.km") == "t.km"
        assert factor_denominator("kgCO2e/litre") == "L"

    def test_factor_denominator_requires_activity_unit(self):
        with pytest.raises(UnsupportedUnitError):
            factor_denominator("kgCO2e")
