"""
Mapbox API client for geocoding and travel-time matrices
"""

import logging
import os
from typing import Dict, List, Optional, Union
from urllib.parse import quote

import httpx

from swipehouse.core.utils import is_finite_number

from .models import PROFILE_MAP, CommuteMode, GeoPoint, MatrixOrigin

MAPBOX_BASE_URL = "https://api.mapbox.com"


class MapboxClient:
    """
    Async client for the Mapbox geocoding and directions-matrix APIs
    Every failure is logged and reported as None rather than raised
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: str = MAPBOX_BASE_URL,
        timeout: int = 30,
    ):
        self.access_token = access_token or os.getenv("MAPBOX_TOKEN")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

        if not self.access_token:
            raise ValueError("Mapbox access token required. Set MAPBOX_TOKEN")

    async def geocode(self, address: str) -> Optional[GeoPoint]:
        """
        Geocode a free-text address to its best match

        Args:
            address: Address to geocode

        Returns:
            GeoPoint or None if the lookup failed or found nothing usable
        """
        url = f"{self.base_url}/geocoding/v5/mapbox.places/{quote(address, safe='')}.json"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    url,
                    params={"limit": 1, "access_token": self.access_token},
                )
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPError as e:
            self.logger.error(f"HTTP error geocoding address {address}: {e}")
            return None
        except ValueError as e:
            self.logger.error(f"Invalid geocoding response for {address}: {e}")
            return None

        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list) or not features or not isinstance(features[0], dict):
            self.logger.warning(f"No geocoding results for address: {address}")
            return None

        center = features[0].get("center")
        if not isinstance(center, list) or len(center) < 2:
            self.logger.warning(f"Geocoding result for {address} has no center")
            return None

        lng, lat = center[0], center[1]  # Mapbox returns [lng, lat]
        if not (is_finite_number(lat) and is_finite_number(lng)):
            self.logger.warning(f"Geocoding result for {address} has invalid coordinates")
            return None

        return GeoPoint(lat=lat, lng=lng)

    async def matrix_durations(
        self,
        origins: List[MatrixOrigin],
        destination: GeoPoint,
        mode: Union[CommuteMode, str] = CommuteMode.DRIVING,
    ) -> Optional[Dict[str, float]]:
        """
        Travel durations from each origin to one destination

        Args:
            origins: Listings to route from
            destination: Commute destination
            mode: Travel mode; transit is routed with the driving profile

        Returns:
            Seconds by origin id for every finite cell, or None if the
            request failed or returned no matrix
        """
        if not origins:
            return {}

        profile = PROFILE_MAP.get(CommuteMode(mode), PROFILE_MAP[CommuteMode.DRIVING])
        coords = ";".join(
            [f"{origin.lng},{origin.lat}" for origin in origins]
            + [f"{destination.lng},{destination.lat}"]
        )
        params = {
            "sources": ";".join(str(i) for i in range(len(origins))),
            "destinations": str(len(origins)),  # destination is the last coordinate
            "annotations": "duration",
            "access_token": self.access_token,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/directions-matrix/v1/{profile}/{coords}",
                    params=params,
                )
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPError as e:
            self.logger.error(f"HTTP error fetching matrix for {len(origins)} origins: {e}")
            return None
        except ValueError as e:
            self.logger.error(f"Invalid matrix response: {e}")
            return None

        matrix = data.get("durations") if isinstance(data, dict) else None
        if not isinstance(matrix, list):
            self.logger.warning("Matrix response contained no durations")
            return None

        durations = {}
        for idx, origin in enumerate(origins):
            row = matrix[idx] if idx < len(matrix) else None
            seconds = row[0] if isinstance(row, list) and row else None
            if is_finite_number(seconds):
                durations[origin.id] = float(seconds)

        return durations
