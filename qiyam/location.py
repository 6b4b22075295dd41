"""Device location, place search and reverse geocoding."""

import dataclasses
import logging
from typing import List, Optional

import requests

from qiyam.errors import GeolocationDeniedError

logger = logging.getLogger(__name__)

IPAPI_URL = "http://ip-api.com/json/"
PLACE_SEARCH_URL = "https://geocoding-api.open-meteo.com/v1/search"
REVERSE_GEOCODE_URL = "https://nominatim.openstreetmap.org/reverse"
USER_AGENT = "QiyamWidget/1.0"

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 5


@dataclasses.dataclass(frozen=True)
class PlaceCandidate:
    name: str
    latitude: float
    longitude: float
    country: Optional[str] = None
    admin1: Optional[str] = None
    timezone: Optional[str] = None

    @property
    def region_label(self) -> str:
        return ", ".join(p for p in (self.admin1, self.country) if p)

    @property
    def label(self) -> str:
        return ", ".join(p for p in (self.name, self.country) if p)


def coordinates_label(lat: float, lng: float) -> str:
    return f"{lat:.4f}, {lng:.4f}"


def get_device_location(timeout: int = 5) -> dict:
    """
    Locate this machine via IP geolocation.

    Returns a dict with: lat, lng, label, timezone.
    Raises GeolocationDeniedError when the lookup fails for any reason.
    """
    try:
        resp = requests.get(
            IPAPI_URL,
            params={"fields": "city,regionName,country,lat,lon,timezone,status,message"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise GeolocationDeniedError(f"Unable to retrieve your location: {exc}") from exc

    if data.get("status") != "success" or data.get("lat") is None or data.get("lon") is None:
        raise GeolocationDeniedError(
            f"Unable to retrieve your location: {data.get('message', 'lookup refused')}"
        )
    parts = [data.get("city"), data.get("country")]
    return {
        "lat": float(data["lat"]),
        "lng": float(data["lon"]),
        "label": ", ".join(p for p in parts if p) or None,
        "timezone": data.get("timezone"),
    }


def search_places(query: str, timeout: int = 6) -> List[PlaceCandidate]:
    """
    Search places by name, in the provider's relevance order.

    Queries shorter than two characters return [] without a request. Provider
    failures are logged and also return [], since search is best effort.
    """
    query = (query or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []
    try:
        resp = requests.get(
            PLACE_SEARCH_URL,
            params={"name": query, "count": MAX_RESULTS, "language": "en", "format": "json"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.error("Error searching places for %r: %s", query, exc)
        return []

    results = []
    for item in (data or {}).get("results") or []:
        try:
            results.append(PlaceCandidate(
                name=item["name"],
                latitude=float(item["latitude"]),
                longitude=float(item["longitude"]),
                country=item.get("country"),
                admin1=item.get("admin1"),
                timezone=item.get("timezone"),
            ))
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed place result %r", item)
    return results[:MAX_RESULTS]


def reverse_geocode(lat: float, lng: float, timeout: int = 6) -> str:
    """
    Name the place at (lat, lng) as 'City, Country'.

    Falls back to the coordinates with four decimals when the lookup fails or
    finds neither a city nor a country.
    """
    try:
        resp = requests.get(
            REVERSE_GEOCODE_URL,
            params={"lat": lat, "lon": lng, "format": "json", "accept-language": "en"},
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Reverse geocoding (%s, %s) failed: %s", lat, lng, exc)
        return coordinates_label(lat, lng)

    address = (data or {}).get("address") or {}
    city = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("suburb")
    )
    country = address.get("country")
    if city and country:
        return f"{city}, {country}"
    return city or country or coordinates_label(lat, lng)
