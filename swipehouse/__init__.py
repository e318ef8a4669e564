"""
SwipeHouse: listing search with cached results and commute times

Validates, normalizes and deduplicates RentCast listings, serves searches
through a stale-while-revalidate cache and computes commute times from
Mapbox travel-time matrices.
"""

__version__ = "0.1.0"

from .commute import CommuteMode, CommuteService, MapboxClient
from .core import Listing, ListingMode, validate_and_filter
from .listings import ListingCache, ListingService, RemoteFilters, RentCastClient

__all__ = [
    "Listing",
    "ListingMode",
    "validate_and_filter",
    "ListingCache",
    "ListingService",
    "RemoteFilters",
    "RentCastClient",
    "CommuteService",
    "CommuteMode",
    "MapboxClient",
]
