"""
Unit tests for parsing typed form values.
"""

import math

import pytest

from calculations.errors import ParseError
from calculations.parsing import parse_number, parse_optional_number, parse_ratio


class TestParseNumber:

    @pytest.mark.parametrize("raw, expected", [
        ("5", 5.0),
        ("  2.5 ", 2.5),
        ("1e-3", 0.001),
        ("3,75", 3.75),
        ("-4", -4.0),
        (7, 7.0),
        (0.25, 0.25),
    ])
    def test_valid_numbers(self, raw, expected):
        assert parse_number(raw, "concentration") == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "abc", "1.2.3", "1,2,3", "5 mM", True])
    def test_invalid_numbers(self, raw):
        with pytest.raises(ParseError) as exc_info:
            parse_number(raw, "concentration")
        assert exc_info.value.field == "concentration"
        assert exc_info.value.message == "Please enter a valid concentration."

    def test_label_defaults_to_field_name(self):
        with pytest.raises(ParseError) as exc_info:
            parse_number("x", "final_volume")
        assert "final volume" in exc_info.value.message

    def test_range_is_not_checked(self):
        """Zero and non-finite values parse; the calculators reject them."""
        assert parse_number("0", "concentration") == 0.0
        assert math.isnan(parse_number("nan", "concentration"))

    def test_integer_too_large_for_float(self):
        with pytest.raises(ParseError) as exc_info:
            parse_number(10**400, "concentration")
        assert exc_info.value.field == "concentration"
        assert exc_info.value.message == "Please enter a valid concentration."


class TestParseOptionalNumber:

    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_empty_is_none(self, raw):
        assert parse_optional_number(raw, "final_mass") is None

    def test_value_is_parsed(self):
        assert parse_optional_number("12,5", "final_mass") == 12.5

    def test_garbage_still_fails(self):
        with pytest.raises(ParseError):
            parse_optional_number("heavy", "final_mass")


class TestParseRatio:

    @pytest.mark.parametrize("raw, expected", [(1, 1), ("3", 3), (" 2 ", 2), (4.0, 4), ("-1", -1)])
    def test_whole_numbers(self, raw, expected):
        assert parse_ratio(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "1.5", 2.5, "two", False])
    def test_not_whole_numbers(self, raw):
        with pytest.raises(ParseError) as exc_info:
            parse_ratio(raw)
        assert exc_info.value.field == "ratio"
