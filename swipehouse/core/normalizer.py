"""
Normalization of raw RentCast listing records into Listing models
"""

import hashlib
import math
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote

from .models import DataQuality, Listing, ListingFeatures, ListingMode
from .utils import format_number, round_half_up, to_number
from .validation import parse_price, validate_coordinate, validate_price

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="
FALLBACK_PHOTO_URL = (
    "https://images.unsplash.com/photo-1560448204-e02f11c3d0e2"
    "?w=1200&h=800&fit=crop&q=80&sig="
)
SOURCE_NAME = "rentcast"


def seeded_random(seed: str) -> float:
    """
    Deterministic pseudo-random value in [0, 1) for a seed string

    A 31-multiplier string hash over UTF-16 code units, wrapped to a signed
    32-bit integer, then scrambled through sin(). The same seed always gives
    the same value; seeded_random("") == 0.0.
    """
    h = 0
    data = seed.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = int.from_bytes(data[i : i + 2], "little")
        h = (31 * h + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000

    x = math.sin(h) * 10000
    return x - math.floor(x)


def match_score_for(seed: str) -> int:
    """Synthetic match score in 50..99, centred on 60-90"""
    return int(min(99, max(50, round_half_up(60 + seeded_random(seed) * 30))))


def fallback_photo_for(seed: str) -> str:
    """Stock photo URL whose variant is picked by the seed"""
    variant = abs(int(round_half_up(seeded_random(seed) * 100000)))
    return f"{FALLBACK_PHOTO_URL}{variant}"


def _encode_component(value: str) -> str:
    return quote(value, safe="-_.!~*'()")


def _resolve_address(x: Mapping[str, Any]) -> str:
    if x.get("formattedAddress"):
        return str(x["formattedAddress"]).strip()
    parts = [x.get("addressLine1"), x.get("city"), x.get("state"), x.get("zipCode")]
    return ", ".join(str(part) for part in parts if part).strip()


def _photo_urls(x: Mapping[str, Any]) -> List[str]:
    photos = x.get("photos")
    if not isinstance(photos, list):
        return []
    return [photo for photo in photos if isinstance(photo, str) and photo]


def _text(value: Any) -> Optional[str]:
    return str(value).strip() if value else None


def _contact(value: Any, *keys: str) -> Optional[str]:
    if not isinstance(value, Mapping):
        return None
    for key in keys:
        if value.get(key):
            return str(value[key])
    return None


def assess_quality(
    x: Mapping[str, Any],
    lat: float,
    lng: float,
    price: float,
    mode: Union[ListingMode, str],
) -> DataQuality:
    """
    Assign a quality tier from validity and completeness

    Invalid coordinates or price make the record suspect. Otherwise every
    completeness gap (price outlier, no address, no beds, no photos, no
    square footage) counts as one issue: none is high, 1-2 medium, 3+ low.
    """
    if not validate_coordinate(lat, lng):
        return DataQuality.SUSPECT

    price_check = validate_price(price, mode)
    if not price_check.valid:
        return DataQuality.SUSPECT

    issues = []
    if price_check.outlier:
        issues.append("price_outlier")
    if not x.get("formattedAddress") and not x.get("addressLine1"):
        issues.append("no_address")
    if not x.get("bedrooms") and not x.get("beds"):
        issues.append("no_beds")
    if not _photo_urls(x):
        issues.append("no_photos")
    if not x.get("squareFootage"):
        issues.append("no_sqft")

    if not issues:
        return DataQuality.HIGH
    if len(issues) <= 2:
        return DataQuality.MEDIUM
    return DataQuality.LOW


def rentcast_to_listing(record: Any, mode: Union[ListingMode, str]) -> Listing:
    """
    Map one upstream record into a Listing

    Args:
        record: Raw RentCast listing (any shape; non-mappings are treated as empty)
        mode: Rent or buy

    Returns:
        Listing with derived title, links, match score and quality tier.
        Normalizing the same record twice yields equal listings.
    """
    mode = ListingMode(mode)
    x: Dict[str, Any] = dict(record) if isinstance(record, Mapping) else {}

    lat = to_number(x.get("latitude"))
    lng = to_number(x.get("longitude"))
    raw_price = x.get("price") if x.get("price") is not None else x.get("rent")
    price = parse_price(raw_price) or 0.0

    address = _resolve_address(x)
    neighborhood = _text(
        x.get("neighborhood") or x.get("subdivision") or x.get("city") or x.get("county")
    )

    label = "For Sale" if mode == ListingMode.BUY else "For Rent"
    title = _text(x.get("listingTitle") or x.get("propertyDescription")) or (
        f"{label} · {address}" if address else ""
    )
    description = _text(
        x.get("publicRemarks") or x.get("description") or x.get("propertyDescription")
    )

    coords = f"{format_number(lat)},{format_number(lng)}"
    external_url = MAPS_SEARCH_URL + _encode_component(address or coords)

    if x.get("id") is not None:
        listing_id = str(x["id"])
        seed = listing_id
    else:
        # No upstream id: derive one from the record content so refetches agree
        digest = hashlib.md5(address.encode("utf-8")).hexdigest()[:8]
        listing_id = f"{format_number(lat)}-{format_number(lng)}-{mode.value}-{digest}"
        seed = address or f"{format_number(lat)}-{format_number(lng)}-{mode.value}"

    images = _photo_urls(x) or [fallback_photo_for(seed)]
    elevator = bool(x.get("hasElevator"))

    return Listing(
        id=listing_id,
        source=SOURCE_NAME,
        type=mode,
        address=address or None,
        neighborhood=neighborhood,
        lat=lat,
        lng=lng,
        title=title,
        description=description,
        price=price,
        beds=to_number(x.get("bedrooms") if x.get("bedrooms") is not None else x.get("beds")),
        baths=to_number(x.get("bathrooms") if x.get("bathrooms") is not None else x.get("baths")),
        sqft=to_number(
            x.get("squareFootage") if x.get("squareFootage") is not None else x.get("lotSize")
        ),
        features=ListingFeatures(
            pets=bool(x.get("petsAllowed")),
            laundry=bool(x.get("hasWasherDryer") or x.get("hasLaundry")),
            elevator=elevator,
            walkup=not elevator,
        ),
        images=images,
        commute_mins=0,
        match_score=match_score_for(seed),
        why=f"Based on your filters in {neighborhood or 'your search area'}",
        data_quality=assess_quality(x, lat, lng, price, mode),
        external_url=external_url,
        agent_url=_contact(x.get("listingAgent"), "website", "email"),
        office_url=_contact(x.get("listingOffice"), "website"),
    )
