"""
Tests for listing query models
"""

import pytest
from pydantic import ValidationError

from swipehouse.core.models import ListingMode
from swipehouse.listings.models import RemoteFilters


class TestRemoteFilters:
    """Test RemoteFilters"""

    def test_defaults(self):
        filters = RemoteFilters()

        assert filters.mode == ListingMode.RENT
        assert filters.to_params() == {"mode": "rent"}

    def test_numbers_become_strings(self):
        filters = RemoteFilters(latitude=40.7128, longitude=-74.0, radius=15, bedrooms=2)

        assert filters.latitude == "40.7128"
        assert filters.longitude == "-74"
        assert filters.radius == "15"
        assert filters.bedrooms == "2"

    def test_whitespace_is_stripped(self):
        assert RemoteFilters(city="  New York ").city == "New York"

    def test_to_params_drops_empty(self):
        params = RemoteFilters(city="", state="NY", limit=25).to_params()
        assert params == {"mode": "rent", "state": "NY", "limit": 25}

    @pytest.mark.parametrize("limit", [0, 501])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            RemoteFilters(limit=limit)

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            RemoteFilters(mode="lease")
