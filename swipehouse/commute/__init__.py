"""
Commute times from listings to a destination via Mapbox
"""

from .cache import CommuteCache
from .client import MapboxClient
from .models import CommuteMode, GeoPoint
from .service import CommuteService, apply_commute_durations, listing_ids_hash

__all__ = [
    "CommuteService",
    "CommuteCache",
    "MapboxClient",
    "CommuteMode",
    "GeoPoint",
    "apply_commute_durations",
    "listing_ids_hash",
]
