"""
Commute data models
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field


class CommuteMode(str, Enum):
    """Travel mode requested by the user"""

    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"
    TRANSIT = "transit"


# Mapbox Matrix has no transit profile; driving is the closest approximation
PROFILE_MAP: Dict[CommuteMode, str] = {
    CommuteMode.DRIVING: "mapbox/driving",
    CommuteMode.WALKING: "mapbox/walking",
    CommuteMode.CYCLING: "mapbox/cycling",
    CommuteMode.TRANSIT: "mapbox/driving",
}


class GeoPoint(BaseModel):
    """Geographic point"""

    lat: float = Field(description="Latitude")
    lng: float = Field(description="Longitude")


class MatrixOrigin(BaseModel):
    """One listing used as a matrix origin"""

    id: str = Field(description="Listing identifier")
    lat: float = Field(description="Latitude")
    lng: float = Field(description="Longitude")


class CommuteCacheEntry(BaseModel):
    """The single stored commute computation"""

    address: str = Field(description="Trimmed destination address")
    listing_set_identity: str = Field(description="Hash of the ordered listing ids")
    travel_mode: CommuteMode = Field(description="Requested travel mode")
    durations: Dict[str, int] = Field(default_factory=dict, description="Minutes by listing id")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="When computed"
    )
