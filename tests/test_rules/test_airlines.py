"""
Tests for the airline directory.
"""

from app.models.enums import AirlineCategory
from app.rules.airlines import category_for_flight, lookup_airline


class TestLookupAirline:

    def test_by_code(self):
        assert lookup_airline("ac").name == "Air Canada"

    def test_by_name_substring(self):
        assert lookup_airline("westjet").category == AirlineCategory.LARGE

    def test_unknown(self):
        assert lookup_airline("Sky Pirates") is None
        assert lookup_airline("  ") is None


class TestCategoryForFlight:

    def test_from_flight_prefix(self):
        assert category_for_flight("AC871") == AirlineCategory.LARGE
        assert category_for_flight("ac 871") == AirlineCategory.LARGE

    def test_explicit_airline_wins(self):
        assert category_for_flight("XX123", airline="Air Canada") == AirlineCategory.LARGE

    def test_unknown_prefix(self):
        assert category_for_flight("ZZ9") is None
        assert category_for_flight("") is None
