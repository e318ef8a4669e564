"""
Runtime settings for SwipeHouse
Loaded from defaults, an optional YAML/JSON file and environment variables
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from swipehouse.commute.client import MAPBOX_BASE_URL
from swipehouse.commute.service import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_CONCURRENT
from swipehouse.core.models import ListingMode
from swipehouse.listings.cache import BACKGROUND_REFRESH_AFTER, FRESH_TTL, STALE_TTL
from swipehouse.listings.client import RENTCAST_BASE_URL
from swipehouse.listings.models import RemoteFilters


class ConfigFormat(str, Enum):
    """Supported configuration file formats"""

    YAML = "yaml"
    JSON = "json"


def default_search_filters() -> RemoteFilters:
    """Rentals around central New York City"""
    return RemoteFilters(
        mode=ListingMode.RENT,
        latitude="40.7128",
        longitude="-74.0060",
        radius="15",
        price="2200-5200",
        bedrooms="1-3",
        bathrooms="1-2",
        limit=50,
    )


class Settings(BaseModel):
    """Application settings"""

    # API credentials and endpoints
    rentcast_api_key: Optional[str] = Field(None, description="RentCast API key")
    rentcast_base_url: str = Field(RENTCAST_BASE_URL, description="RentCast API base URL")
    mapbox_token: Optional[str] = Field(None, description="Mapbox access token")
    mapbox_base_url: str = Field(MAPBOX_BASE_URL, description="Mapbox API base URL")
    request_timeout: int = Field(30, ge=1, description="HTTP timeout in seconds")

    # Listing cache
    cache_db_url: Optional[str] = Field(
        "sqlite:///swipehouse_cache.db",
        description="SQLAlchemy URL of the durable cache; None keeps it in memory",
    )
    fresh_ttl: float = Field(FRESH_TTL, gt=0, description="Seconds a response is fresh")
    stale_ttl: float = Field(STALE_TTL, gt=0, description="Seconds a response stays usable")
    background_refresh_after: float = Field(
        BACKGROUND_REFRESH_AFTER, ge=0, description="Age that triggers a background refresh"
    )
    cache_max_bytes: Optional[int] = Field(None, ge=1, description="Cache size quota")

    # Commute matrix
    matrix_chunk_size: int = Field(
        DEFAULT_CHUNK_SIZE, ge=1, le=24, description="Origins per matrix request"
    )
    matrix_max_concurrent: int = Field(
        DEFAULT_MAX_CONCURRENT, ge=1, description="Concurrent matrix requests"
    )

    default_filters: RemoteFilters = Field(
        default_factory=default_search_filters,
        description="Filters used when a search gives none",
    )

    @field_validator("stale_ttl")
    @classmethod
    def validate_stale_ttl(cls, v, info):
        """Stale window must extend past the fresh window"""
        fresh_ttl = info.data.get("fresh_ttl")
        if fresh_ttl is not None and v < fresh_ttl:
            raise ValueError("stale_ttl must be at least fresh_ttl")
        return v

    @field_validator("cache_db_url", mode="before")
    @classmethod
    def empty_url_is_memory(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v
