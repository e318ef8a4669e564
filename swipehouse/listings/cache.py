"""
Stale-while-revalidate cache for listing search responses

Entry age decides the path taken by fetch_listings:
- younger than fresh_ttl: served as-is; past background_refresh_after a
  non-blocking refresh is scheduled
- younger than stale_ttl: served with stale=True while a refresh runs
- older, or missing: blocking fetch; on failure any old entry is served
  as a stale fallback, otherwise the error propagates

Availability wins over freshness: data up to stale_ttl old is served rather
than blocking on the network.
"""

import asyncio
import json
import logging
import time
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from swipehouse.core.storage import (
    CacheStorage,
    CacheStorageError,
    CacheStorageFullError,
    MemoryCacheStorage,
)

from .models import CacheEntry, CacheStats, FetchResult, RefreshEvent, RemoteFilters

FRESH_TTL = 24 * 60 * 60  # quota protection
STALE_TTL = 7 * 24 * 60 * 60  # stale but usable
BACKGROUND_REFRESH_AFTER = 30 * 60

# A persisted refreshing flag older than this is treated as abandoned
REFRESH_LEASE = 5 * 60

RefreshListener = Callable[[RefreshEvent], None]
FiltersLike = Union[RemoteFilters, Mapping[str, Any]]


class ListingFetcher(Protocol):
    async def fetch_listings(self, filters: RemoteFilters) -> Any:
        ...


def stable_key(filters: FiltersLike) -> str:
    """
    Canonical cache key for a filter set

    None and empty-string fields are dropped and keys are sorted, so field
    order and unset optional fields never change the key.
    """
    if isinstance(filters, RemoteFilters):
        values = filters.model_dump(mode="json")
    else:
        values = {
            key: value.value if isinstance(value, Enum) else value
            for key, value in dict(filters).items()
        }

    ordered = {
        key: values[key]
        for key in sorted(values)
        if values[key] is not None and values[key] != ""
    }
    return json.dumps(ordered, separators=(",", ":"), sort_keys=True, default=str)


def coerce_filters(filters: FiltersLike) -> RemoteFilters:
    if isinstance(filters, RemoteFilters):
        return filters
    return RemoteFilters.model_validate(dict(filters))


class ListingCache:
    """
    Listing response cache with background revalidation

    At most one fetch (blocking or background) is in flight per key.
    Concurrent blocking callers share it; background triggers are dropped
    while one is running. Subscribers are told when a background refresh
    lands new data for their key.
    """

    def __init__(
        self,
        client: ListingFetcher,
        storage: Optional[CacheStorage] = None,
        fresh_ttl: float = FRESH_TTL,
        stale_ttl: float = STALE_TTL,
        background_refresh_after: float = BACKGROUND_REFRESH_AFTER,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.storage = storage or MemoryCacheStorage()
        self.fresh_ttl = fresh_ttl
        self.stale_ttl = stale_ttl
        self.background_refresh_after = background_refresh_after
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self._in_flight: Dict[str, asyncio.Task] = {}
        self._listeners: Dict[str, List[RefreshListener]] = defaultdict(list)

    async def fetch_listings(self, filters: FiltersLike) -> FetchResult:
        """
        Return listings for the filters, from cache when possible

        Args:
            filters: RemoteFilters or an equivalent mapping

        Returns:
            FetchResult envelope with the raw payload and cache flags

        Raises:
            Exception: Whatever the client raised, only when no cache entry
                exists at all for the key. asyncio.CancelledError propagates
                unchanged and leaves the cache untouched.
        """
        filters = coerce_filters(filters)
        key = stable_key(filters)
        entry = self._load_entry(key)

        if entry is not None:
            age = self.clock() - entry.timestamp

            if age < self.fresh_ttl:
                if age > self.background_refresh_after:
                    self._schedule_refresh(filters, key, entry)
                self.logger.debug(f"Fresh cache hit for {key}")
                return FetchResult(data=entry.payload, from_cache=True, stale=False, refreshing=False)

            if age < self.stale_ttl:
                self._schedule_refresh(filters, key, entry)
                self.logger.debug(f"Stale cache hit for {key}")
                return FetchResult(data=entry.payload, from_cache=True, stale=True, refreshing=True)

        try:
            data = await self._fetch_now(filters, key)
        except Exception as e:
            if entry is None:
                raise
            self.logger.warning(f"Fetch failed for {key}, serving expired cache entry: {e}")
            return FetchResult(data=entry.payload, from_cache=True, stale=True, refreshing=False)

        return FetchResult(data=data, from_cache=False, stale=False, refreshing=False)

    def is_refreshing(self, key: str, entry: Optional[CacheEntry] = None) -> bool:
        """True while a fetch for the key is in flight here or, per its lease, elsewhere"""
        if key in self._in_flight:
            return True
        if entry is None:
            entry = self._load_entry(key)
        if entry is None or not entry.refreshing:
            return False
        started = entry.refresh_started or 0.0
        return self.clock() - started < REFRESH_LEASE

    def subscribe(self, filters: Union[FiltersLike, str], listener: RefreshListener) -> Callable[[], None]:
        """
        Register a listener for background refreshes of one cache key

        Args:
            filters: Filters (or a precomputed stable key) to watch
            listener: Called with a RefreshEvent after each successful refresh

        Returns:
            Function that removes the listener
        """
        key = filters if isinstance(filters, str) else stable_key(coerce_filters(filters))
        self._listeners[key].append(listener)

        def unsubscribe():
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(key, None)

        return unsubscribe

    async def wait_for_refreshes(self):
        """Wait until every in-flight fetch has finished"""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()), return_exceptions=True)

    def clear(self):
        """Drop every cached response"""
        try:
            self.storage.clear()
            self.logger.info("Listing cache cleared")
        except CacheStorageError as e:
            self.logger.error(f"Error clearing listing cache: {e}")

    def stats(self) -> CacheStats:
        """Entry count, oldest entry age and serialized size"""
        try:
            items = self.storage.items()
        except CacheStorageError as e:
            self.logger.error(f"Error reading listing cache: {e}")
            return CacheStats()

        now = self.clock()
        ages = [now - float(value.get("timestamp") or 0) for value in items.values()]
        return CacheStats(
            entries=len(items),
            oldest_age=max(ages) if ages else 0.0,
            total_size=len(json.dumps(items, default=str)),
        )

    def _load_entry(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = self.storage.get(key)
        except CacheStorageError as e:
            self.logger.error(f"Error reading cache entry {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate(raw)
        except ValidationError as e:
            self.logger.warning(f"Ignoring malformed cache entry {key}: {e}")
            return None

    def _persist(self, key: str, entry: CacheEntry) -> bool:
        """Write an entry, evicting the oldest entries while storage is full"""
        value = entry.model_dump(mode="json")

        while True:
            try:
                self.storage.set(key, value)
                return True
            except CacheStorageFullError as e:
                if not self._evict_oldest():
                    self.logger.warning(f"Cache storage full and nothing left to evict: {e}")
                    return False
            except CacheStorageError as e:
                self.logger.error(f"Error writing cache entry {key}: {e}")
                return False

    def _evict_oldest(self) -> bool:
        try:
            items = self.storage.items()
            if not items:
                return False
            oldest = min(items, key=lambda k: float(items[k].get("timestamp") or 0))
            self.storage.delete(oldest)
        except CacheStorageError as e:
            self.logger.error(f"Error evicting cache entry: {e}")
            return False

        self.logger.info(f"Evicted oldest cache entry {oldest}")
        return True

    def _start_fetch(self, filters: RemoteFilters, key: str, background: bool) -> asyncio.Task:
        task = asyncio.ensure_future(self._fetch_and_store(filters, key, background))
        self._in_flight[key] = task

        def forget(done: asyncio.Task):
            if self._in_flight.get(key) is done:
                del self._in_flight[key]
            if not done.cancelled() and done.exception() is not None and background:
                self.logger.warning(f"Background refresh failed for {key}: {done.exception()}")

        task.add_done_callback(forget)
        return task

    async def _fetch_now(self, filters: RemoteFilters, key: str) -> Any:
        task = self._in_flight.get(key)
        if task is not None:
            # Share the in-flight fetch; cancelling this caller must not abort it
            return await asyncio.shield(task)
        return await self._start_fetch(filters, key, background=False)

    def _schedule_refresh(self, filters: RemoteFilters, key: str, entry: CacheEntry):
        if self.is_refreshing(key, entry):
            return

        entry.refreshing = True
        entry.refresh_started = self.clock()
        self._persist(key, entry)

        self._start_fetch(filters, key, background=True)
        self.logger.info(f"Background refresh started for {key}")

    async def _fetch_and_store(self, filters: RemoteFilters, key: str, background: bool) -> Any:
        try:
            data = await self.client.fetch_listings(filters)
        except (Exception, asyncio.CancelledError):
            if background:
                self._clear_refreshing(key)
            raise

        self._persist(key, CacheEntry(timestamp=self.clock(), payload=data, refreshing=False))
        self.logger.info(f"Cached listings for {key}")

        if background:
            self._notify(RefreshEvent(key=key, data=data))

        return data

    def _clear_refreshing(self, key: str):
        entry = self._load_entry(key)
        if entry is not None and entry.refreshing:
            entry.refreshing = False
            entry.refresh_started = None
            self._persist(key, entry)

    def _notify(self, event: RefreshEvent):
        for listener in list(self._listeners.get(event.key, [])):
            try:
                listener(event)
            except Exception as e:
                self.logger.error(f"Refresh listener failed for {event.key}: {e}")
