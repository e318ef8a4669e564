"""
RentCast API client for listing searches
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from swipehouse.core.models import ListingMode

from .models import RemoteFilters

RENTCAST_BASE_URL = "https://api.rentcast.io/v1"

ENDPOINTS = {
    ListingMode.RENT: "/listings/rental/long-term",
    ListingMode.BUY: "/listings/sale",
}

RANGE_PARAMS = {
    "price": ("priceMin", "priceMax"),
    "bedrooms": ("bedroomsMin", "bedroomsMax"),
    "bathrooms": ("bathroomsMin", "bathroomsMax"),
}

PASSTHROUGH_PARAMS = ("city", "state", "latitude", "longitude", "limit", "offset")


class ListingsAPIError(Exception):
    """Listing search request failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def split_range(value: str) -> Tuple[Optional[str], Optional[str]]:
    """Split "min-max" into its parts; a single value is both bounds"""
    if "-" not in value:
        return value or None, value or None
    low, _, high = value.partition("-")
    return low.strip() or None, high.strip() or None


def extract_records(payload: Any) -> List[Any]:
    """
    Pull the listing array out of a search response

    The endpoint returns either a bare array or an object with a "listings"
    array; anything else yields no records.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("listings"), list):
        return payload["listings"]
    return []


class RentCastClient:
    """
    Async client for the RentCast listings API
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = RENTCAST_BASE_URL,
        timeout: int = 30,
    ):
        self.api_key = api_key or os.getenv("RENTCAST_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

        if not self.api_key:
            raise ValueError("RentCast API key required. Set RENTCAST_API_KEY")

    @property
    def headers(self) -> Dict[str, str]:
        """HTTP headers for API requests"""
        return {
            "X-Api-Key": self.api_key,
            "accept": "application/json",
        }

    def endpoint_for(self, mode: Union[ListingMode, str]) -> str:
        """Full URL of the search endpoint for a mode"""
        return f"{self.base_url}{ENDPOINTS[ListingMode(mode)]}"

    def build_params(self, filters: RemoteFilters) -> Dict[str, str]:
        """
        Translate filter fields into RentCast query parameters

        Ranges become Min/Max pairs and radius is only sent together with
        coordinates.
        """
        params: Dict[str, str] = {}
        values = filters.to_params()
        has_coords = bool(values.get("latitude") and values.get("longitude"))

        for name, value in values.items():
            if name == "mode":
                continue

            if name in RANGE_PARAMS:
                low, high = split_range(str(value))
                min_param, max_param = RANGE_PARAMS[name]
                if low:
                    params[min_param] = low
                if high:
                    params[max_param] = high
            elif name == "radius":
                if has_coords:
                    params["radius"] = str(value)
            elif name in PASSTHROUGH_PARAMS:
                params[name] = str(value)

        return params

    async def fetch_listings(self, filters: RemoteFilters) -> Any:
        """
        Run a listing search

        Args:
            filters: Search filters

        Returns:
            Parsed JSON response body

        Raises:
            ListingsAPIError: On HTTP failure or an unparseable body
        """
        url = self.endpoint_for(filters.mode)
        params = self.build_params(filters)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self.headers, params=params)
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            self.logger.error(f"Remote listings failed ({status}) for {url}")
            raise ListingsAPIError(f"Remote listings failed ({status})", status_code=status) from e
        except httpx.HTTPError as e:
            self.logger.error(f"HTTP error fetching listings: {e}")
            raise ListingsAPIError(f"Remote listings failed: {e}") from e
        except ValueError as e:
            self.logger.error(f"Invalid JSON in listings response: {e}")
            raise ListingsAPIError(f"Invalid listings response: {e}") from e
