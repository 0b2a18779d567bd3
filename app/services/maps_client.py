# app/services/maps_client.py
"""
Google Maps Platform client: geocoding, driving directions and Cloud TTS.

Synchronous httpx with explicit timeouts. A shared failure-count circuit
breaker stops hammering Google once it starts failing.
"""

import html
import logging
import re
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, NotFoundError, ServiceUnavailableError

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
TTS_URL = "https://texttospeech.googleapis.com/v1/text:synthesize"

VOICES = {
    "ru": {"languageCode": "ru-RU", "name": "ru-RU-Wavenet-D", "ssmlGender": "MALE"},
    "en": {"languageCode": "en-US", "name": "en-US-Wavenet-D", "ssmlGender": "MALE"},
}

# Tuned for in-cab playback
AUDIO_CONFIG = {
    "audioEncoding": "MP3",
    "speakingRate": 1.1,
    "pitch": 0,
    "volumeGainDb": 2.0,
}

_TAG_RE = re.compile(r"<[^>]*>")

# Circuit breaker state for Google calls
_circuit_breaker = {
    "failures": 0,
    "last_failure": None,
    "threshold": 5,
    "reset_timeout": 60,  # seconds
}


def _circuit_breaker_open() -> bool:
    """Check if circuit breaker is open (should not call Google)."""
    if _circuit_breaker["failures"] < _circuit_breaker["threshold"]:
        return False

    if _circuit_breaker["last_failure"] is None:
        return False

    elapsed = (datetime.now(timezone.utc) - _circuit_breaker["last_failure"]).total_seconds()
    if elapsed > _circuit_breaker["reset_timeout"]:
        _circuit_breaker["failures"] = 0
        _circuit_breaker["last_failure"] = None
        logger.info("Maps circuit breaker reset after timeout")
        return False

    return True


def _record_circuit_failure():
    _circuit_breaker["failures"] += 1
    _circuit_breaker["last_failure"] = datetime.now(timezone.utc)
    logger.warning(
        f"Maps circuit breaker failure recorded: "
        f"{_circuit_breaker['failures']}/{_circuit_breaker['threshold']}"
    )


def _record_circuit_success():
    _circuit_breaker["failures"] = 0


def decode_polyline(encoded: str) -> List[Dict[str, float]]:
    """Decode Google's encoded polyline format into lat/lng dicts."""
    points = []
    index = lat = lng = 0
    length = len(encoded)

    while index < length:
        deltas = []
        for _ in range(2):
            shift = result = 0
            while True:
                byte = ord(encoded[index]) - 63
                index += 1
                result |= (byte & 0x1F) << shift
                shift += 5
                if byte < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        lat += deltas[0]
        lng += deltas[1]
        points.append({"lat": lat / 1e5, "lng": lng / 1e5})

    return points


def strip_html(text: str) -> str:
    """Step instructions arrive as HTML fragments."""
    return html.unescape(_TAG_RE.sub("", text or "")).strip()


class GoogleMapsClient:
    """Synchronous client for the Google Maps and Cloud TTS REST APIs."""

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        self.timeout = 10.0
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def _ensure_available(self, service: str) -> None:
        if not self.api_key:
            raise ServiceUnavailableError("Google API key not configured", service=service)
        if _circuit_breaker_open():
            raise ServiceUnavailableError(f"{service} temporarily unavailable", service=service)

    def _get_json(self, url: str, params: Dict[str, Any], service: str) -> Dict[str, Any]:
        self._ensure_available(service)
        try:
            with self._client() as client:
                response = client.get(url, params={**params, "key": self.api_key})
        except httpx.TimeoutException:
            _record_circuit_failure()
            raise ServiceUnavailableError(f"{service} timed out", service=service)
        except httpx.RequestError as e:
            _record_circuit_failure()
            logger.warning(f"{service} request error: {e}")
            raise ServiceUnavailableError(f"{service} request failed", service=service)

        if response.status_code != 200:
            _record_circuit_failure()
            raise ExternalServiceError(
                f"{service} returned {response.status_code}",
                service=service,
                upstream_status=response.status_code,
            )
        _record_circuit_success()
        return response.json()

    def geocode(self, address: str) -> Dict[str, Any]:
        data = self._get_json(
            GEOCODE_URL, {"address": address, "language": "ru"}, service="geocode"
        )
        status = data.get("status")
        if status == "ZERO_RESULTS" or (status == "OK" and not data.get("results")):
            raise NotFoundError("Address", address)
        if status != "OK":
            logger.error(f"Geocoding failed: {status} {data.get('error_message')}")
            raise ExternalServiceError(f"Geocoding failed: {status}", service="geocode")

        result = data["results"][0]
        location = result["geometry"]["location"]
        return {
            "lat": location["lat"],
            "lng": location["lng"],
            "formatted_address": result.get("formatted_address", address),
            "place_id": result.get("place_id"),
        }

    def directions(
        self,
        origin: Dict[str, float],
        destination: Dict[str, float],
        waypoints: Optional[List[Dict[str, float]]] = None,
    ) -> Dict[str, Any]:
        params = {
            "origin": f"{origin['lat']},{origin['lng']}",
            "destination": f"{destination['lat']},{destination['lng']}",
            "mode": "driving",
            "alternatives": "false",
            "language": "ru",
        }
        if waypoints:
            params["waypoints"] = "optimize:true|" + "|".join(
                f"{w['lat']},{w['lng']}" for w in waypoints
            )

        data = self._get_json(DIRECTIONS_URL, params, service="directions")
        status = data.get("status")
        if status == "ZERO_RESULTS":
            raise NotFoundError("Route", f"{params['origin']} -> {params['destination']}")
        if status != "OK":
            logger.error(f"Directions failed: {status} {data.get('error_message')}")
            raise ExternalServiceError(f"Google API error: {status}", service="directions")

        route = data["routes"][0]
        leg = route["legs"][0]
        return {
            "distance": leg["distance"],
            "duration": leg["duration"],
            "duration_in_traffic": leg.get("duration_in_traffic"),
            "start_address": leg.get("start_address"),
            "end_address": leg.get("end_address"),
            "points": decode_polyline(route["overview_polyline"]["points"]),
            "steps": [
                {
                    "instruction": strip_html(step.get("html_instructions", "")),
                    "distance": step["distance"],
                    "duration": step["duration"],
                    "start_location": step["start_location"],
                    "end_location": step["end_location"],
                    "maneuver": step.get("maneuver"),
                }
                for step in leg.get("steps", [])
            ],
        }

    def synthesize_speech(self, text: str, language: str = "ru") -> str:
        """
        Returns base64 MP3. 403/429 from Google become 503 so callers can
        fall back to on-device speech.
        """
        self._ensure_available("tts")
        body = {
            "input": {"text": text},
            "voice": VOICES.get(language, VOICES["ru"]),
            "audioConfig": AUDIO_CONFIG,
        }
        try:
            with self._client() as client:
                response = client.post(TTS_URL, params={"key": self.api_key}, json=body)
        except httpx.RequestError as e:
            _record_circuit_failure()
            logger.warning(f"TTS request error: {e}")
            raise ServiceUnavailableError("TTS request failed", service="tts")

        if response.status_code in (403, 429):
            _record_circuit_failure()
            logger.error(f"Google TTS API error: {response.status_code} {response.text}")
            raise ServiceUnavailableError(
                f"TTS failed: {response.status_code}",
                service="tts",
                upstream_status=response.status_code,
            )
        if response.status_code != 200:
            _record_circuit_failure()
            raise ExternalServiceError(
                f"TTS failed: {response.status_code}",
                service="tts",
                upstream_status=response.status_code,
            )

        _record_circuit_success()
        audio = response.json().get("audioContent")
        if not audio:
            raise ExternalServiceError("No audio content received", service="tts")
        return audio


def get_maps_client() -> GoogleMapsClient:
    return GoogleMapsClient()
