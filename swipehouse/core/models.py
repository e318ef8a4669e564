"""
Core data models for SwipeHouse listings and validation results
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ListingMode(str, Enum):
    """Listing search mode"""

    RENT = "rent"
    BUY = "buy"


class DataQuality(str, Enum):
    """Confidence tier assigned to a normalized listing"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    SUSPECT = "suspect"

    @property
    def rank(self) -> int:
        return _QUALITY_RANK[self]

    def worst(self, other: "DataQuality") -> "DataQuality":
        """Return whichever of the two tiers is less trustworthy"""
        return self if self.rank >= other.rank else other


_QUALITY_RANK = {
    DataQuality.HIGH: 0,
    DataQuality.MEDIUM: 1,
    DataQuality.LOW: 2,
    DataQuality.SUSPECT: 3,
}


class ListingFeatures(BaseModel):
    """Amenity flags shown on a listing card"""

    pets: bool = Field(False, description="Pets allowed")
    laundry: bool = Field(False, description="In-unit washer/dryer or laundry")
    elevator: bool = Field(False, description="Building has an elevator")
    walkup: bool = Field(True, description="Walk-up building (no elevator)")


class Listing(BaseModel):
    """
    Normalized property listing
    Built by the normalizer from upstream records and replaced wholesale
    whenever a new filter query resolves
    """

    model_config = ConfigDict(
        str_strip_whitespace=True, validate_assignment=True, extra="ignore"
    )

    # Identification
    id: str = Field(..., description="Stable identifier across refetches")
    source: Optional[str] = Field(None, description="Upstream provider name")
    type: ListingMode = Field(ListingMode.RENT, description="Rent or buy listing")

    # Location
    address: Optional[str] = Field(None, description="Resolved street address")
    neighborhood: Optional[str] = Field(None, description="Neighborhood or city")
    lat: float = Field(0.0, description="Latitude")
    lng: float = Field(0.0, description="Longitude")

    # Property details
    title: str = Field("", description="Display title")
    description: Optional[str] = Field(None, description="Listing remarks")
    price: float = Field(0.0, description="Monthly rent or asking price")
    beds: float = Field(0, description="Bedrooms")
    baths: float = Field(0, description="Bathrooms")
    sqft: float = Field(0, description="Square footage")
    features: ListingFeatures = Field(default_factory=ListingFeatures)
    images: List[str] = Field(default_factory=list, description="Photo URLs")

    # Derived fields
    commute_mins: int = Field(0, ge=0, description="Commute minutes, 0 until computed")
    match_score: int = Field(60, ge=50, le=99, description="Synthetic match score")
    why: Optional[str] = Field(None, description="Match explanation")
    data_quality: Optional[DataQuality] = Field(None, description="Quality tier")

    # Links
    external_url: Optional[str] = Field(None, description="Map search link")
    agent_url: Optional[str] = Field(None, description="Listing agent contact")
    office_url: Optional[str] = Field(None, description="Listing office website")


class PriceCheck(BaseModel):
    """Result of validating a price"""

    valid: bool
    outlier: bool


class ValidationResult(BaseModel):
    """Per-record validation outcome"""

    valid: bool
    quality: DataQuality
    issues: List[str] = Field(default_factory=list)


class RejectedRecord(BaseModel):
    """A record dropped by the validation pipeline"""

    original_record: Any = Field(description="Record as it was received")
    reason: str = Field(description="Comma-joined issue codes")


class ValidationStats(BaseModel):
    """Aggregate counts for one pipeline run"""

    total: int = 0
    accepted: int = 0
    rejected: int = 0
    high_quality: int = 0
    medium_quality: int = 0
    low_quality: int = 0
    deduped_count: int = Field(0, description="Records removed as duplicates")


class PipelineResult(BaseModel):
    """Output of validate_and_filter"""

    accepted: List[Listing] = Field(default_factory=list)
    rejected: List[RejectedRecord] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)


class LocalFilters(BaseModel):
    """Client-side filters applied over an already fetched batch"""

    price_min: Optional[float] = None
    price_max: Optional[float] = None
    beds_min: Optional[float] = None
    beds_max: Optional[float] = None
    baths_min: Optional[float] = None
    baths_max: Optional[float] = None
    pets_required: bool = False
    laundry_required: bool = False
    elevator_required: bool = False
    no_walkup: bool = False
