"""
Coordinate, price and record validation for listing data
All functions here are pure
"""

import math
import re
from typing import Any, Iterable, List, NamedTuple, Optional, Union

from .models import (
    DataQuality,
    Listing,
    ListingMode,
    LocalFilters,
    PriceCheck,
    ValidationResult,
)
from .utils import is_finite_number, is_number, record_value


class BoundingBox(NamedTuple):
    """Inclusive lat/lng rectangle"""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


# New York City, loose enough to cover all five boroughs
SERVICE_AREA = BoundingBox(min_lat=40.4, max_lat=41.0, min_lng=-74.3, max_lng=-73.6)

# Soft bounds; prices outside are flagged, not rejected
PRICE_BOUNDS = {
    ListingMode.RENT: (500, 25_000),
    ListingMode.BUY: (50_000, 50_000_000),
}

# Issue codes that reject a record outright
HARD_ISSUES = frozenset(
    {"missing_id", "missing_title", "invalid_coordinates", "invalid_price"}
)

MAX_BEDS = 20
MAX_BATHS = 15


def validate_coordinate(
    lat: Any, lng: Any, bounds: Optional[BoundingBox] = SERVICE_AREA
) -> bool:
    """
    Check that a coordinate pair is usable

    Args:
        lat: Latitude
        lng: Longitude
        bounds: Service-area box to require; None checks only the global range

    Returns:
        True if both values are finite numbers in range
    """
    if not (is_finite_number(lat) and is_finite_number(lng)):
        return False
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return False
    return bounds is None or bounds.contains(lat, lng)


def validate_price(price: Any, mode: Union[ListingMode, str]) -> PriceCheck:
    """Price must be a finite positive number; outliers are only flagged"""
    if not is_finite_number(price) or price <= 0:
        return PriceCheck(valid=False, outlier=False)

    low, high = PRICE_BOUNDS[ListingMode(mode)]
    return PriceCheck(valid=True, outlier=price < low or price > high)


def parse_price(value: Any) -> Optional[float]:
    """Parse a price from a number or a string like "$2,500" """
    if is_finite_number(value) and value > 0:
        return float(value)

    if isinstance(value, str):
        cleaned = re.sub(r"[$,\s]", "", value)
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
        if math.isfinite(parsed) and parsed > 0:
            return parsed

    return None


def validate_listing(record: Any, mode: Union[ListingMode, str]) -> ValidationResult:
    """
    Validate a single listing-shaped record and assign a quality tier

    Args:
        record: Listing model or mapping with id/title/address/lat/lng/price
        mode: Rent or buy, selects the price bounds

    Returns:
        ValidationResult with validity, tier and issue codes
    """
    issues: List[str] = []

    if not record_value(record, "id"):
        issues.append("missing_id")
    if not record_value(record, "title") and not record_value(record, "address"):
        issues.append("missing_title")

    if not validate_coordinate(record_value(record, "lat"), record_value(record, "lng")):
        issues.append("invalid_coordinates")

    price_check = validate_price(record_value(record, "price"), mode)
    if not price_check.valid:
        issues.append("invalid_price")
    elif price_check.outlier:
        issues.append("price_outlier")

    beds = record_value(record, "beds")
    if is_number(beds) and (beds < 0 or beds > MAX_BEDS):
        issues.append("suspicious_beds")
    baths = record_value(record, "baths")
    if is_number(baths) and (baths < 0 or baths > MAX_BATHS):
        issues.append("suspicious_baths")

    valid = not any(issue in HARD_ISSUES for issue in issues)

    if not issues:
        quality = DataQuality.HIGH
    elif not valid:
        quality = DataQuality.SUSPECT
    elif any("outlier" in issue for issue in issues):
        quality = DataQuality.MEDIUM
    else:
        quality = DataQuality.LOW

    return ValidationResult(valid=valid, quality=quality, issues=issues)


def filter_listings_locally(
    listings: Iterable[Listing], filters: LocalFilters
) -> List[Listing]:
    """
    Filter an already fetched batch in memory

    Lets a single large upstream fetch serve several narrower views without
    spending extra API quota. Zero bounds are treated as unset.
    """
    filtered = []

    for listing in listings:
        if filters.price_min and listing.price < filters.price_min:
            continue
        if filters.price_max and listing.price > filters.price_max:
            continue
        if filters.beds_min and listing.beds < filters.beds_min:
            continue
        if filters.beds_max and listing.beds > filters.beds_max:
            continue
        if filters.baths_min and listing.baths < filters.baths_min:
            continue
        if filters.baths_max and listing.baths > filters.baths_max:
            continue
        if filters.pets_required and not listing.features.pets:
            continue
        if filters.laundry_required and not listing.features.laundry:
            continue
        if filters.elevator_required and not listing.features.elevator:
            continue
        if filters.no_walkup and listing.features.walkup:
            continue
        filtered.append(listing)

    return filtered
