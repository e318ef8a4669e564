"""
Listing search service
Combines the response cache with normalization and validation
"""

import logging
from typing import Any, Callable, Optional, Union

from swipehouse.core.models import ListingMode, LocalFilters, PipelineResult
from swipehouse.core.normalizer import rentcast_to_listing
from swipehouse.core.pipeline import validate_and_filter
from swipehouse.core.validation import filter_listings_locally

from .cache import FiltersLike, ListingCache, coerce_filters
from .client import extract_records
from .models import FetchResult, RefreshEvent, SearchResult


class ListingService:
    """
    Turns raw cached search responses into validated listings
    """

    def __init__(self, cache: ListingCache):
        self.cache = cache
        self.logger = logging.getLogger(__name__)

    def process_payload(self, payload: Any, mode: Union[ListingMode, str]) -> PipelineResult:
        """
        Normalize and validate one raw search response

        Args:
            payload: Response body (array or {"listings": [...]})
            mode: Rent or buy

        Returns:
            PipelineResult for the records in the payload
        """
        records = extract_records(payload)
        if not records and payload is not None:
            self.logger.warning("Listing response contained no usable records")

        listings = [rentcast_to_listing(record, mode) for record in records]
        return validate_and_filter(listings, mode)

    def build_result(
        self,
        fetch: FetchResult,
        mode: Union[ListingMode, str],
        local_filters: Optional[LocalFilters] = None,
    ) -> SearchResult:
        """Apply the pipeline and optional local filters to a fetch result"""
        pipeline = self.process_payload(fetch.data, mode)

        listings = pipeline.accepted
        if local_filters is not None:
            listings = filter_listings_locally(listings, local_filters)

        return SearchResult(
            listings=listings,
            rejected=pipeline.rejected,
            stats=pipeline.stats,
            from_cache=fetch.from_cache,
            stale=fetch.stale,
            refreshing=fetch.refreshing,
        )

    async def search(
        self,
        filters: FiltersLike,
        local_filters: Optional[LocalFilters] = None,
    ) -> SearchResult:
        """
        Search listings through the SWR cache

        Args:
            filters: Upstream search filters
            local_filters: Extra in-memory filters over the fetched batch

        Returns:
            SearchResult with validated listings and cache flags
        """
        filters = coerce_filters(filters)
        fetch = await self.cache.fetch_listings(filters)
        result = self.build_result(fetch, filters.mode, local_filters)

        self.logger.info(
            f"Search returned {len(result.listings)} listings "
            f"(from_cache={result.from_cache}, stale={result.stale})"
        )
        return result

    def subscribe(
        self,
        filters: FiltersLike,
        callback: Callable[[SearchResult], None],
        local_filters: Optional[LocalFilters] = None,
    ) -> Callable[[], None]:
        """
        Receive refreshed, validated results when a background refresh lands

        Returns:
            Function that removes the subscription
        """
        filters = coerce_filters(filters)

        def on_refresh(event: RefreshEvent):
            fetch = FetchResult(data=event.data, from_cache=True, stale=False, refreshing=False)
            callback(self.build_result(fetch, filters.mode, local_filters))

        return self.cache.subscribe(filters, on_refresh)
