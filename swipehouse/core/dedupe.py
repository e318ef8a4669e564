"""
Heuristic near-duplicate removal for listing batches

Two records are treated as the same physical listing when their coordinates
(rounded to ~10m), price (rounded to the nearest 50) and the first 20
alphanumeric characters of their address all match. This is fuzzy, not
exact-match, dedup: distinct units in one building listed at similar prices
can be merged.
"""

import re
from typing import Any, Dict, List, Sequence, TypeVar

from .utils import format_number, record_value, round_half_up, to_number

T = TypeVar("T")

COORDINATE_PRECISION = 10_000  # 4 decimal places
PRICE_STEP = 50
ADDRESS_PREFIX_LENGTH = 20


def dedupe_key(record: Any) -> str:
    """Build the composite lat|lng|price|address fingerprint for a record"""
    lat = round_half_up(to_number(record_value(record, "lat")) * COORDINATE_PRECISION)
    lng = round_half_up(to_number(record_value(record, "lng")) * COORDINATE_PRECISION)
    price = round_half_up(to_number(record_value(record, "price")) / PRICE_STEP) * PRICE_STEP

    address = record_value(record, "address") or ""
    address_norm = re.sub(r"[^a-z0-9]", "", str(address).lower())[:ADDRESS_PREFIX_LENGTH]

    return "|".join(
        [
            format_number(lat / COORDINATE_PRECISION),
            format_number(lng / COORDINATE_PRECISION),
            format_number(price),
            address_norm,
        ]
    )


def deduplicate_listings(records: Sequence[T]) -> List[T]:
    """
    Remove near-duplicates, keeping the first occurrence of each key

    Args:
        records: Listings or mappings exposing lat, lng, price and address

    Returns:
        Records in first-seen order with duplicates dropped
    """
    seen: Dict[str, T] = {}

    for record in records:
        key = dedupe_key(record)
        if key not in seen:
            seen[key] = record

    return list(seen.values())
