# app/api/v1/endpoints/navigation.py
"""Google Maps proxy: geocoding, driving directions and voice prompts."""
from fastapi import APIRouter, Depends, Request

from app.api import deps
from app.core.limiter import limiter, MAPS_RATE
from app.schemas.navigation import (
    DirectionsRequest,
    DirectionsResult,
    GeocodeRequest,
    GeocodeResult,
    TtsRequest,
    TtsResult,
)
from app.schemas.token import TokenPayload
from app.services.maps_client import GoogleMapsClient, get_maps_client

router = APIRouter(prefix="/navigation", tags=["Navigation"])


@router.post("/geocode", response_model=GeocodeResult)
@limiter.limit(MAPS_RATE)
def geocode(
    request: Request,
    geocode_in: GeocodeRequest,
    current_user: TokenPayload = Depends(deps.get_current_user),
    maps: GoogleMapsClient = Depends(get_maps_client),
):
    return maps.geocode(geocode_in.address)


@router.post("/directions", response_model=DirectionsResult)
@limiter.limit(MAPS_RATE)
def directions(
    request: Request,
    directions_in: DirectionsRequest,
    current_user: TokenPayload = Depends(deps.get_current_user),
    maps: GoogleMapsClient = Depends(get_maps_client),
):
    return maps.directions(
        directions_in.origin.model_dump(),
        directions_in.destination.model_dump(),
        [w.model_dump() for w in directions_in.waypoints],
    )


@router.post("/tts", response_model=TtsResult)
@limiter.limit(MAPS_RATE)
def text_to_speech(
    request: Request,
    tts_in: TtsRequest,
    current_user: TokenPayload = Depends(deps.get_current_user),
    maps: GoogleMapsClient = Depends(get_maps_client),
):
    """503 means: use the device's own speech engine."""
    return {"audio_content": maps.synthesize_speech(tts_in.text, tts_in.language)}
