import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from advo.geocoding import BatchGeocodeOutcome, Geocoder, GeocodingError, get_geocoder
from advo.models import AddressBatch, BatchGeocodeResult, GeoLocation

logger = logging.getLogger(__name__)

router = APIRouter(tags=["geocode"])


def batch_result(outcome: BatchGeocodeOutcome) -> BatchGeocodeResult:
    return BatchGeocodeResult(
        results={address: coords.as_dict() for address, coords in outcome.results.items()},
        errors=outcome.errors,
        total_processed=outcome.total_processed,
        success_count=outcome.success_count,
        error_count=outcome.error_count,
    )


@router.get("/geocode", response_model=GeoLocation)
async def geocode_address(
    address: str | None = Query(default=None),
    geocoder: Geocoder = Depends(get_geocoder),
) -> Any:
    if not address or not address.strip():
        raise HTTPException(status_code=400, detail="Address parameter is required")
    try:
        coordinates = await geocoder.geocode(address)
    except GeocodingError as e:
        logger.error("Geocoding %r failed: %s", address, e)
        raise HTTPException(status_code=500, detail="Failed to geocode address")
    return coordinates.as_dict()


@router.post("/geocode-addresses", response_model=BatchGeocodeResult)
async def geocode_addresses(
    body: AddressBatch, geocoder: Geocoder = Depends(get_geocoder)
) -> Any:
    addresses = [a for a in body.addresses or [] if a and a.strip()]
    if not addresses:
        raise HTTPException(status_code=400, detail="Addresses array is required")
    outcome = await geocoder.geocode_many(addresses)
    return batch_result(outcome)
