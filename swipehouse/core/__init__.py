"""
Core listing models, validation, normalization and deduplication
"""

from .dedupe import dedupe_key, deduplicate_listings
from .models import (
    DataQuality,
    Listing,
    ListingFeatures,
    ListingMode,
    LocalFilters,
    PipelineResult,
    PriceCheck,
    RejectedRecord,
    ValidationResult,
    ValidationStats,
)
from .normalizer import rentcast_to_listing, seeded_random
from .pipeline import validate_and_filter
from .storage import (
    CacheStorage,
    CacheStorageError,
    CacheStorageFullError,
    MemoryCacheStorage,
    SQLiteCacheStorage,
)
from .validation import (
    SERVICE_AREA,
    BoundingBox,
    filter_listings_locally,
    parse_price,
    validate_coordinate,
    validate_listing,
    validate_price,
)

__all__ = [
    # Models
    "Listing",
    "ListingFeatures",
    "ListingMode",
    "DataQuality",
    "LocalFilters",
    "PriceCheck",
    "ValidationResult",
    "RejectedRecord",
    "ValidationStats",
    "PipelineResult",
    # Validation
    "BoundingBox",
    "SERVICE_AREA",
    "validate_coordinate",
    "validate_price",
    "parse_price",
    "validate_listing",
    "filter_listings_locally",
    # Normalization and dedup
    "rentcast_to_listing",
    "seeded_random",
    "dedupe_key",
    "deduplicate_listings",
    "validate_and_filter",
    # Storage
    "CacheStorage",
    "CacheStorageError",
    "CacheStorageFullError",
    "MemoryCacheStorage",
    "SQLiteCacheStorage",
]
