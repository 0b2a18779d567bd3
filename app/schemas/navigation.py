# app/schemas/navigation.py
from pydantic import BaseModel, Field
from typing import Optional, List, Literal


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)


class GeocodeResult(BaseModel):
    lat: float
    lng: float
    formatted_address: str
    place_id: Optional[str] = None


class DirectionsRequest(BaseModel):
    origin: LatLng
    destination: LatLng
    waypoints: List[LatLng] = Field(default_factory=list, max_length=23)


class TextValue(BaseModel):
    """Google's {text, value} pair: value is meters or seconds."""

    text: str
    value: int


class RouteStep(BaseModel):
    instruction: str
    distance: TextValue
    duration: TextValue
    start_location: LatLng
    end_location: LatLng
    maneuver: Optional[str] = None


class DirectionsResult(BaseModel):
    distance: TextValue
    duration: TextValue
    duration_in_traffic: Optional[TextValue] = None
    start_address: Optional[str] = None
    end_address: Optional[str] = None
    points: List[LatLng]
    steps: List[RouteStep]


class TtsRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)
    language: Literal["ru", "en"] = "ru"


class TtsResult(BaseModel):
    audio_content: str  # base64 MP3
