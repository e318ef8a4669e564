"""
Listing query and cache data models
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from swipehouse.core.models import (
    Listing,
    ListingMode,
    RejectedRecord,
    ValidationStats,
)
from swipehouse.core.utils import format_number, is_number


class RemoteFilters(BaseModel):
    """
    Filter criteria for the upstream listing search
    Ranges use "min-max" strings, e.g. price="2200-5200"
    """

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    mode: ListingMode = Field(ListingMode.RENT, description="Rent or buy")

    # Location
    city: Optional[str] = Field(None, description="City name")
    state: Optional[str] = Field(None, description="Two-letter state code")
    latitude: Optional[str] = Field(None, description="Search centre latitude")
    longitude: Optional[str] = Field(None, description="Search centre longitude")
    radius: Optional[str] = Field(None, description="Radius in miles (needs coordinates)")

    # Ranges
    price: Optional[str] = Field(None, description="Price range min-max")
    bedrooms: Optional[str] = Field(None, description="Bedroom range min-max")
    bathrooms: Optional[str] = Field(None, description="Bathroom range min-max")

    # Paging
    limit: Optional[int] = Field(None, ge=1, le=500, description="Page size")
    offset: Optional[int] = Field(None, ge=0, description="Page offset")

    @field_validator(
        "latitude", "longitude", "radius", "price", "bedrooms", "bathrooms", mode="before"
    )
    @classmethod
    def stringify_numbers(cls, v):
        """Accept plain numbers for string-typed query fields"""
        if is_number(v):
            return format_number(v)
        return v

    def to_params(self) -> Dict[str, Any]:
        """Non-empty fields as plain JSON values"""
        data = self.model_dump(mode="json")
        return {key: value for key, value in data.items() if value is not None and value != ""}


class CacheEntry(BaseModel):
    """Stored listing query response"""

    timestamp: float = Field(description="Epoch seconds when the payload was fetched")
    payload: Any = Field(None, description="Raw upstream response body")
    refreshing: bool = Field(False, description="A background refresh is in flight")
    refresh_started: Optional[float] = Field(
        None, description="Epoch seconds when the current refresh began"
    )


class FetchResult(BaseModel):
    """Response envelope returned by the listing cache"""

    data: Any = None
    from_cache: bool = False
    stale: bool = False
    refreshing: bool = False


class RefreshEvent(BaseModel):
    """Published to subscribers when a background refresh succeeds"""

    key: str
    data: Any = None


class CacheStats(BaseModel):
    """Summary of the listing cache contents"""

    entries: int = 0
    oldest_age: float = Field(0.0, description="Age of the oldest entry in seconds")
    total_size: int = Field(0, description="Serialized size in characters")


class SearchResult(BaseModel):
    """Validated listings for one query plus cache status"""

    listings: List[Listing] = Field(default_factory=list)
    rejected: List[RejectedRecord] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)
    from_cache: bool = False
    stale: bool = False
    refreshing: bool = False
