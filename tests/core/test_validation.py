"""
Tests for listing validation
"""

import math

import pytest

from swipehouse.core.models import DataQuality, Listing, ListingFeatures, ListingMode, LocalFilters
from swipehouse.core.validation import (
    SERVICE_AREA,
    filter_listings_locally,
    parse_price,
    validate_coordinate,
    validate_listing,
    validate_price,
)


def make_record(**overrides):
    record = {
        "id": "abc",
        "title": "For Rent · 1 Main St",
        "address": "1 Main St, New York, NY",
        "lat": 40.7128,
        "lng": -74.006,
        "price": 3000,
        "beds": 2,
        "baths": 1,
    }
    record.update(overrides)
    return record


class TestValidateCoordinate:
    """Test coordinate validation"""

    def test_inside_service_area(self):
        """Test Manhattan coordinates are accepted"""
        assert validate_coordinate(40.7128, -74.006) is True

    def test_outside_service_area(self):
        """Test valid coordinates outside the service area are rejected"""
        assert validate_coordinate(34.05, -118.24) is False

    def test_outside_service_area_without_bounds(self):
        """Test bounds=None only checks the global range"""
        assert validate_coordinate(34.05, -118.24, bounds=None) is True
        assert validate_coordinate(91, 0, bounds=None) is False
        assert validate_coordinate(0, -181, bounds=None) is False

    @pytest.mark.parametrize(
        "lat,lng",
        [
            (math.nan, -74.0),
            (40.7, math.inf),
            (None, -74.0),
            ("40.7", -74.0),
            (True, -74.0),
            (10**400, -74.0),
            (40.7, -(10**400)),
        ],
    )
    def test_non_numeric_or_non_finite(self, lat, lng):
        """Test NaN, infinity, strings and booleans are rejected"""
        assert validate_coordinate(lat, lng) is False

    def test_bounds_are_inclusive(self):
        """Test the service-area edges count as inside"""
        assert validate_coordinate(SERVICE_AREA.min_lat, SERVICE_AREA.min_lng) is True
        assert validate_coordinate(SERVICE_AREA.max_lat, SERVICE_AREA.max_lng) is True


class TestValidatePrice:
    """Test price validation"""

    def test_valid_rent(self):
        check = validate_price(3000, ListingMode.RENT)
        assert check.valid is True
        assert check.outlier is False

    def test_rent_outlier_is_still_valid(self):
        """Test prices outside soft bounds are flagged, not rejected"""
        assert validate_price(30000, "rent").outlier is True
        assert validate_price(30000, "rent").valid is True
        assert validate_price(400, "rent").outlier is True

    def test_buy_bounds(self):
        assert validate_price(30000, ListingMode.BUY).outlier is True
        assert validate_price(750000, ListingMode.BUY).outlier is False

    @pytest.mark.parametrize("price", [0, -100, math.nan, math.inf, None, "3000", 10**400])
    def test_invalid_prices(self, price):
        """Test non-positive, non-finite and non-numeric prices"""
        check = validate_price(price, ListingMode.RENT)
        assert check.valid is False
        assert check.outlier is False


class TestParsePrice:
    """Test price parsing"""

    def test_numbers(self):
        assert parse_price(2500) == 2500.0
        assert parse_price(2500.5) == 2500.5

    def test_currency_strings(self):
        assert parse_price("$2,500") == 2500.0
        assert parse_price(" 3 100 ") == 3100.0

    @pytest.mark.parametrize("value", [None, "", "call for price", 0, -5, math.nan, True, 10**400])
    def test_unparseable(self, value):
        assert parse_price(value) is None


class TestValidateListing:
    """Test single-record validation"""

    def test_complete_record_is_high_quality(self):
        result = validate_listing(make_record(), ListingMode.RENT)

        assert result.valid is True
        assert result.quality == DataQuality.HIGH
        assert result.issues == []

    def test_nan_latitude_is_rejected(self):
        """Test NaN latitude yields invalid_coordinates"""
        result = validate_listing({"id": "x", "lat": math.nan, "lng": 0, "price": 2000}, "rent")

        assert result.valid is False
        assert "invalid_coordinates" in result.issues
        assert result.quality == DataQuality.SUSPECT

    def test_zero_price_is_rejected(self):
        result = validate_listing(make_record(price=0), ListingMode.RENT)

        assert result.valid is False
        assert result.issues == ["invalid_price"]

    def test_price_outlier_is_medium(self):
        result = validate_listing(make_record(price=30000), ListingMode.RENT)

        assert result.valid is True
        assert result.quality == DataQuality.MEDIUM
        assert result.issues == ["price_outlier"]

    def test_missing_id_and_title(self):
        result = validate_listing(make_record(id="", title="", address=None), ListingMode.RENT)

        assert result.valid is False
        assert "missing_id" in result.issues
        assert "missing_title" in result.issues

    def test_address_satisfies_title(self):
        result = validate_listing(make_record(title=""), ListingMode.RENT)
        assert "missing_title" not in result.issues

    def test_suspicious_counts_lower_quality(self):
        """Test out-of-range beds and baths are soft issues"""
        result = validate_listing(make_record(beds=25, baths=-1), ListingMode.RENT)

        assert result.valid is True
        assert result.quality == DataQuality.LOW
        assert result.issues == ["suspicious_beds", "suspicious_baths"]

    def test_accepts_listing_models(self):
        listing = Listing(id="m1", title="Loft", lat=40.72, lng=-73.99, price=4200)
        assert validate_listing(listing, ListingMode.RENT).valid is True


class TestFilterListingsLocally:
    """Test in-memory filtering of fetched listings"""

    @pytest.fixture
    def listings(self):
        return [
            Listing(id="1", title="A", price=2500, beds=1, baths=1,
                    features=ListingFeatures(pets=True, laundry=False, elevator=False, walkup=True)),
            Listing(id="2", title="B", price=4000, beds=2, baths=2,
                    features=ListingFeatures(pets=False, laundry=True, elevator=True, walkup=False)),
            Listing(id="3", title="C", price=6000, beds=3, baths=2,
                    features=ListingFeatures(pets=True, laundry=True, elevator=True, walkup=False)),
        ]

    def test_no_filters(self, listings):
        assert filter_listings_locally(listings, LocalFilters()) == listings

    def test_price_and_beds(self, listings):
        filters = LocalFilters(price_min=3000, price_max=5000, beds_min=2)
        assert [l.id for l in filter_listings_locally(listings, filters)] == ["2"]

    def test_zero_bounds_are_ignored(self, listings):
        filters = LocalFilters(price_min=0, beds_max=0)
        assert len(filter_listings_locally(listings, filters)) == 3

    def test_feature_requirements(self, listings):
        assert [l.id for l in filter_listings_locally(listings, LocalFilters(pets_required=True))] == ["1", "3"]
        assert [l.id for l in filter_listings_locally(listings, LocalFilters(no_walkup=True))] == ["2", "3"]
        filters = LocalFilters(pets_required=True, laundry_required=True, elevator_required=True)
        assert [l.id for l in filter_listings_locally(listings, filters)] == ["3"]
