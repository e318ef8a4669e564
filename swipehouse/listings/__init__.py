"""
Listing search: RentCast client, SWR response cache and search service
"""

from .cache import ListingCache, stable_key
from .client import ListingsAPIError, RentCastClient, extract_records
from .models import CacheEntry, FetchResult, RefreshEvent, RemoteFilters, SearchResult
from .service import ListingService

__all__ = [
    "ListingCache",
    "ListingService",
    "RentCastClient",
    "ListingsAPIError",
    "RemoteFilters",
    "CacheEntry",
    "FetchResult",
    "RefreshEvent",
    "SearchResult",
    "stable_key",
    "extract_records",
]
