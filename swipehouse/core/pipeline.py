"""
Batch validation pipeline: validate, tier, reject and deduplicate listings
"""

import logging
from typing import Any, Iterable, List, Mapping, Union

from pydantic import ValidationError

from .dedupe import deduplicate_listings
from .models import (
    DataQuality,
    Listing,
    ListingMode,
    PipelineResult,
    RejectedRecord,
    ValidationStats,
)
from .validation import validate_listing

logger = logging.getLogger(__name__)


def _to_listing(record: Union[Listing, Mapping[str, Any]], quality: DataQuality) -> Listing:
    if isinstance(record, Listing):
        existing = record.data_quality or DataQuality.HIGH
        return record.model_copy(update={"data_quality": existing.worst(quality)})

    # explicit nulls fall back to the model defaults
    data = {key: value for key, value in record.items() if value is not None}
    data["id"] = str(data["id"])
    existing = data.get("data_quality") or data.get("dataQuality")
    try:
        tier = DataQuality(existing).worst(quality) if existing else quality
    except ValueError:
        tier = quality
    data["data_quality"] = tier
    data.pop("dataQuality", None)
    return Listing.model_validate(data)


def validate_and_filter(
    records: Iterable[Union[Listing, Mapping[str, Any]]],
    mode: Union[ListingMode, str],
) -> PipelineResult:
    """
    Validate a batch of listing records

    Records missing an id, missing both title and address, or carrying
    invalid coordinates or price are rejected. Price outliers and
    completeness gaps only lower the quality tier. Survivors are then
    deduplicated.

    Args:
        records: Listing models or listing-shaped mappings
        mode: Rent or buy, selects price bounds

    Returns:
        PipelineResult with accepted listings, rejections and stats
    """
    records = list(records)
    validated: List[Listing] = []
    rejected: List[RejectedRecord] = []

    for record in records:
        result = validate_listing(record, mode)

        if not result.valid:
            rejected.append(
                RejectedRecord(original_record=record, reason=", ".join(result.issues))
            )
            continue

        try:
            listing = _to_listing(record, result.quality)
        except (TypeError, ValueError, ValidationError) as e:
            logger.debug(f"Could not coerce record into a listing: {e}")
            rejected.append(RejectedRecord(original_record=record, reason="malformed_record"))
            continue

        if listing.data_quality == DataQuality.SUSPECT:
            rejected.append(RejectedRecord(original_record=record, reason="suspect_quality"))
            continue

        validated.append(listing)

    deduped = deduplicate_listings(validated)

    stats = ValidationStats(
        total=len(records),
        accepted=len(deduped),
        rejected=len(rejected),
        high_quality=sum(1 for l in deduped if l.data_quality == DataQuality.HIGH),
        medium_quality=sum(1 for l in deduped if l.data_quality == DataQuality.MEDIUM),
        low_quality=sum(1 for l in deduped if l.data_quality == DataQuality.LOW),
        deduped_count=len(validated) - len(deduped),
    )

    if rejected:
        logger.info(f"Rejected {len(rejected)}/{len(records)} listing records")
    if stats.deduped_count:
        logger.info(f"Removed {stats.deduped_count} duplicate listings")

    return PipelineResult(accepted=deduped, rejected=rejected, stats=stats)
