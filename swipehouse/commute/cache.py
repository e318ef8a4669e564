"""
Single-slot cache for the most recent commute computation
"""

import logging
from typing import Dict, Optional, Union

from pydantic import ValidationError

from swipehouse.core.storage import CacheStorage, CacheStorageError, MemoryCacheStorage

from .models import CommuteCacheEntry, CommuteMode

CACHE_KEY = "commute:last"


class CommuteCache:
    """
    Holds exactly one commute result, keyed by (address, listing set, mode)
    A new computation always replaces the previous one
    """

    def __init__(self, storage: Optional[CacheStorage] = None):
        self.storage = storage or MemoryCacheStorage()
        self.logger = logging.getLogger(__name__)

    def get(
        self, address: str, listing_set_identity: str, mode: Union[CommuteMode, str]
    ) -> Optional[Dict[str, int]]:
        """Durations for the exact inputs, or None on any mismatch"""
        try:
            raw = self.storage.get(CACHE_KEY)
        except CacheStorageError as e:
            self.logger.error(f"Error reading commute cache: {e}")
            return None
        if raw is None:
            return None

        try:
            entry = CommuteCacheEntry.model_validate(raw)
        except ValidationError as e:
            self.logger.warning(f"Ignoring malformed commute cache entry: {e}")
            return None

        if (
            entry.address == address
            and entry.listing_set_identity == listing_set_identity
            and entry.travel_mode == CommuteMode(mode)
        ):
            return dict(entry.durations)
        return None

    def set(
        self,
        address: str,
        listing_set_identity: str,
        mode: Union[CommuteMode, str],
        durations: Dict[str, int],
    ):
        entry = CommuteCacheEntry(
            address=address,
            listing_set_identity=listing_set_identity,
            travel_mode=CommuteMode(mode),
            durations=durations,
        )
        try:
            self.storage.set(CACHE_KEY, entry.model_dump(mode="json"))
        except CacheStorageError as e:
            self.logger.warning(f"Could not store commute result: {e}")

    def clear(self):
        try:
            self.storage.delete(CACHE_KEY)
        except CacheStorageError as e:
            self.logger.error(f"Error clearing commute cache: {e}")
