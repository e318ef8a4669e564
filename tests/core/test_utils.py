"""
Tests for numeric helpers
"""

import math

import pytest

from swipehouse.core.models import Listing
from swipehouse.core.utils import (
    format_number,
    is_finite_number,
    is_number,
    record_value,
    round_half_up,
    to_number,
)


class TestNumericHelpers:
    """Test rounding and coercion helpers"""

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (-0.5, 0), (-1.5, -1), (2.4, 2)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_is_number(self):
        assert is_number(1) and is_number(1.5) and is_number(math.nan)
        assert not is_number(True)
        assert not is_number("1")
        assert not is_number(None)

    def test_is_finite_number(self):
        """Test huge ints that overflow a float are not finite"""
        assert is_finite_number(7) and is_finite_number(-1.5)
        assert not is_finite_number(math.nan)
        assert not is_finite_number(math.inf)
        assert not is_finite_number(10**400)
        assert not is_finite_number(True)
        assert not is_finite_number("7")

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, 0.0), ("", 0.0), ("  12.5 ", 12.5), ("abc", 0.0), (True, 1.0),
            (math.inf, 0.0), ([1], 0.0), (7, 7.0), (10**400, 0.0), (-(10**400), 0.0),
        ],
    )
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    def test_format_number(self):
        assert format_number(40.0) == "40"
        assert format_number(40.5) == "40.5"
        assert format_number(-74.006) == "-74.006"
        assert format_number(7) == "7"
        assert format_number(10**400) == str(10**400)

    def test_record_value(self):
        listing = Listing(id="x", title="T")
        assert record_value(listing, "id") == "x"
        assert record_value({"id": "y"}, "id") == "y"
        assert record_value({}, "missing", "default") == "default"
        assert record_value(listing, "missing") is None
