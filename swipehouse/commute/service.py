"""
Commute service: minutes from many listings to one destination
"""

import asyncio
import hashlib
import logging
from typing import Any, Dict, List, Optional, Sequence, TypeVar, Union

from swipehouse.core.models import Listing
from swipehouse.core.utils import is_finite_number, record_value, round_half_up
from swipehouse.core.validation import validate_coordinate

from .cache import CommuteCache
from .client import MapboxClient
from .models import CommuteMode, GeoPoint, MatrixOrigin

# Mapbox allows 25 coordinates per matrix request, one of them the destination
DEFAULT_CHUNK_SIZE = 24
DEFAULT_MAX_CONCURRENT = 5

T = TypeVar("T")


def listing_ids_hash(listings: Sequence[Any]) -> str:
    """Identity of an ordered listing set"""
    joined = "|".join(str(record_value(listing, "id", "")) for listing in listings)
    return hashlib.md5(joined.encode("utf-8")).hexdigest()


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def seconds_to_minutes(seconds: float) -> int:
    return max(1, round_half_up(seconds / 60))


def apply_commute_durations(listings: List[Listing], durations: Dict[str, int]) -> List[Listing]:
    """Copies of the listings with commute_mins set wherever a duration is known"""
    return [
        listing.model_copy(update={"commute_mins": durations[listing.id]})
        if listing.id in durations
        else listing
        for listing in listings
    ]


class CommuteService:
    """
    Computes commute minutes for a batch of listings

    Listings are routed in chunks, one matrix request per chunk, issued
    concurrently. A failed chunk only loses the durations for its own
    listings. The last result is kept in a single-slot cache.
    """

    def __init__(
        self,
        client: MapboxClient,
        cache: Optional[CommuteCache] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    ):
        self.client = client
        self.cache = cache or CommuteCache()
        self.chunk_size = chunk_size
        self.max_concurrent = max_concurrent
        self.logger = logging.getLogger(__name__)

    async def get_commute_durations(
        self,
        address: str,
        listings: Sequence[Any],
        mode: Union[CommuteMode, str] = CommuteMode.DRIVING,
    ) -> Optional[Dict[str, int]]:
        """
        Commute minutes from each listing to an address

        Args:
            address: Destination address
            listings: Listings (or listing-shaped mappings) with id, lat and lng
            mode: Travel mode

        Returns:
            Minutes by listing id for every listing that could be routed,
            or None when nothing could be computed
        """
        address = (address or "").strip()
        if not address or not listings:
            return None

        mode = CommuteMode(mode)
        identity = listing_ids_hash(listings)

        cached = self.cache.get(address, identity, mode)
        if cached is not None:
            self.logger.debug(f"Commute cache hit for {address} ({mode.value})")
            return cached

        origins = self._origins(listings)
        if not origins:
            self.logger.warning("No listings with usable coordinates for commute calculation")
            return None

        destination = await self.client.geocode(address)
        if destination is None:
            self.logger.warning(f"Failed to geocode commute destination: {address}")
            return None

        durations = await self._route_chunks(origins, destination, mode)
        if not durations:
            self.logger.warning(f"No commute durations computed for {address}")
            return None

        self.cache.set(address, identity, mode, durations)
        self.logger.info(f"Computed {len(durations)}/{len(origins)} commutes to {address}")
        return durations

    def _origins(self, listings: Sequence[Any]) -> List[MatrixOrigin]:
        origins = []
        for listing in listings:
            listing_id = record_value(listing, "id")
            lat = record_value(listing, "lat")
            lng = record_value(listing, "lng")
            if listing_id is None or listing_id == "":
                continue
            if not validate_coordinate(lat, lng, bounds=None):
                continue
            origins.append(MatrixOrigin(id=str(listing_id), lat=lat, lng=lng))
        return origins

    async def _route_chunks(
        self, origins: List[MatrixOrigin], destination: GeoPoint, mode: CommuteMode
    ) -> Dict[str, int]:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def route(batch: List[MatrixOrigin]) -> Optional[Dict[str, float]]:
            async with semaphore:
                return await self.client.matrix_durations(batch, destination, mode)

        batches = chunk(origins, self.chunk_size)
        results = await asyncio.gather(*[route(batch) for batch in batches], return_exceptions=True)

        durations: Dict[str, int] = {}
        for batch, result in zip(batches, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                self.logger.error(f"Matrix request failed for {len(batch)} listings: {result}")
                continue
            if result is None:
                self.logger.warning(f"Skipping failed matrix chunk of {len(batch)} listings")
                continue
            for listing_id, seconds in result.items():
                if is_finite_number(seconds):
                    durations[listing_id] = seconds_to_minutes(seconds)

        return durations
