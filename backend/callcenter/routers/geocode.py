"""Address lookup for intake forms."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from callcenter.dependencies import get_geocoder
from callcenter.schemas.call import GeocodeResponse
from callcenter.services.geocoder import Geocoder, GeocoderError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["geocode"])


@router.get("/geocode", response_model=GeocodeResponse)
async def geocode_address(
    geocoder: Annotated[Geocoder, Depends(get_geocoder)],
    address: str = Query(..., min_length=3, max_length=255),
) -> GeocodeResponse:
    """Resolve an address to coordinates so it can be submitted with a report."""
    try:
        point = await geocoder.geocode(address)
    except GeocoderError as e:
        logger.warning(f"Geocoding failed for {address!r}: {e}")
        raise HTTPException(status_code=502, detail="Geocoder unavailable") from e

    if point is None:
        raise HTTPException(status_code=404, detail="Address not found")

    lat, lng = point
    return GeocodeResponse(address=address, lat=lat, lng=lng)
