"""
Geocoding: free-text place -> ResolvedLocation.
Order: static table (no network) -> configured providers (Nominatim, AstrologyAPI geo_details).
Each provider is a single attempt with a bounded timeout; no retry loop.
"""
import logging
import re
from typing import Any, Mapping, Optional, Sequence, Union

import httpx

from tools.astrology_client import AstrologyClient
from tools.base import LocationError, ResolvedLocation, UpstreamError

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "zodiai/1.0"
DEFAULT_PROVIDERS = ("nominatim", "geo_details")

# Well-known cities: deterministic answers for common demo inputs.
# key -> (lat, lon, timezone_id, utc_offset_hours, canonical name)
STATIC_PLACES: dict[str, tuple[float, float, str, float, str]] = {
    "mumbai": (19.076, 72.8777, "Asia/Kolkata", 5.5, "Mumbai, India"),
    "bombay": (19.076, 72.8777, "Asia/Kolkata", 5.5, "Mumbai, India"),
    "delhi": (28.6139, 77.209, "Asia/Kolkata", 5.5, "Delhi, India"),
    "new delhi": (28.6139, 77.209, "Asia/Kolkata", 5.5, "New Delhi, India"),
    "bengaluru": (12.9716, 77.5946, "Asia/Kolkata", 5.5, "Bengaluru, India"),
    "bangalore": (12.9716, 77.5946, "Asia/Kolkata", 5.5, "Bengaluru, India"),
    "kolkata": (22.5726, 88.3639, "Asia/Kolkata", 5.5, "Kolkata, India"),
    "calcutta": (22.5726, 88.3639, "Asia/Kolkata", 5.5, "Kolkata, India"),
    "chennai": (13.0827, 80.2707, "Asia/Kolkata", 5.5, "Chennai, India"),
    "hyderabad": (17.385, 78.4867, "Asia/Kolkata", 5.5, "Hyderabad, India"),
    "pune": (18.5204, 73.8567, "Asia/Kolkata", 5.5, "Pune, India"),
    "ahmedabad": (23.0225, 72.5714, "Asia/Kolkata", 5.5, "Ahmedabad, India"),
    "jaipur": (26.9124, 75.7873, "Asia/Kolkata", 5.5, "Jaipur, India"),
    "lucknow": (26.8467, 80.9462, "Asia/Kolkata", 5.5, "Lucknow, India"),
    "kathmandu": (27.7172, 85.324, "Asia/Kathmandu", 5.75, "Kathmandu, Nepal"),
    "dubai": (25.2048, 55.2708, "Asia/Dubai", 4.0, "Dubai, UAE"),
    "singapore": (1.3521, 103.8198, "Asia/Singapore", 8.0, "Singapore"),
    "london": (51.5074, -0.1278, "Europe/London", 0.0, "London, UK"),
    "new york": (40.7128, -74.006, "America/New_York", -5.0, "New York, USA"),
}

# Countries that span a single timezone: no second network call needed.
COUNTRY_TIMEZONES: dict[str, str] = {
    "in": "Asia/Kolkata",
    "lk": "Asia/Colombo",
    "np": "Asia/Kathmandu",
    "bd": "Asia/Dhaka",
    "pk": "Asia/Karachi",
    "bt": "Asia/Thimphu",
    "ae": "Asia/Dubai",
    "sa": "Asia/Riyadh",
    "qa": "Asia/Qatar",
    "sg": "Asia/Singapore",
    "jp": "Asia/Tokyo",
    "kr": "Asia/Seoul",
    "cn": "Asia/Shanghai",
    "th": "Asia/Bangkok",
    "gb": "Europe/London",
    "ie": "Europe/Dublin",
    "de": "Europe/Berlin",
    "fr": "Europe/Paris",
    "it": "Europe/Rome",
    "nl": "Europe/Amsterdam",
    "ch": "Europe/Zurich",
    "za": "Africa/Johannesburg",
    "ke": "Africa/Nairobi",
    "ng": "Africa/Lagos",
}

# Standard (non-DST) offsets for the zones above.
TIMEZONE_OFFSETS: dict[str, float] = {
    "UTC": 0.0,
    "Asia/Kolkata": 5.5,
    "Asia/Calcutta": 5.5,
    "Asia/Colombo": 5.5,
    "Asia/Kathmandu": 5.75,
    "Asia/Dhaka": 6.0,
    "Asia/Karachi": 5.0,
    "Asia/Thimphu": 6.0,
    "Asia/Dubai": 4.0,
    "Asia/Riyadh": 3.0,
    "Asia/Qatar": 3.0,
    "Asia/Singapore": 8.0,
    "Asia/Tokyo": 9.0,
    "Asia/Seoul": 9.0,
    "Asia/Shanghai": 8.0,
    "Asia/Bangkok": 7.0,
    "Europe/London": 0.0,
    "Europe/Dublin": 0.0,
    "Europe/Berlin": 1.0,
    "Europe/Paris": 1.0,
    "Europe/Rome": 1.0,
    "Europe/Amsterdam": 1.0,
    "Europe/Zurich": 1.0,
    "Africa/Johannesburg": 2.0,
    "Africa/Nairobi": 3.0,
    "Africa/Lagos": 1.0,
    "America/New_York": -5.0,
}


def timezone_id_to_offset(timezone_id: Optional[str]) -> float:
    """Known zones map to their standard offset; anything else is treated as UTC."""
    if not timezone_id:
        return 0.0
    return TIMEZONE_OFFSETS.get(timezone_id, 0.0)


def normalize_place(place: Optional[str]) -> str:
    """Lowercase, trim, collapse whitespace and drop everything from the first comma."""
    if not place or not isinstance(place, str):
        return ""
    head = place.split(",", 1)[0]
    return re.sub(r"\s+", " ", head).strip().lower()


def _clean_query(place: Optional[str]) -> str:
    """Provider query: whitespace collapsed, max length 200. Empty if nothing searchable remains."""
    if not place or not isinstance(place, str):
        return ""
    cleaned = re.sub(r"\s+", " ", place).strip()[:200]
    if not re.search(r"\w", cleaned):
        return ""
    return cleaned


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class GeoResolver:
    """Resolve a place string. Never raises for upstream problems; returns LocationError instead."""

    def __init__(
        self,
        astrology_client: Optional[AstrologyClient] = None,
        static_table: Optional[Mapping[str, tuple[float, float, str, float, str]]] = None,
        providers: Sequence[str] = DEFAULT_PROVIDERS,
        nominatim_url: str = NOMINATIM_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.astrology_client = astrology_client
        self.static_table = STATIC_PLACES if static_table is None else static_table
        self.providers = tuple(providers)
        self.nominatim_url = nominatim_url
        self.user_agent = user_agent
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings, astrology_client: Optional[AstrologyClient] = None, **kwargs) -> "GeoResolver":
        return cls(
            astrology_client=astrology_client,
            providers=settings.geocoding_providers,
            nominatim_url=settings.nominatim_url,
            user_agent=settings.geocoder_user_agent,
            timeout=settings.http_timeout_sec,
            **kwargs,
        )

    def resolve(self, place: str) -> Union[ResolvedLocation, LocationError]:
        key = normalize_place(place)
        hit = self.static_table.get(key) if key else None
        if hit:
            lat, lon, tz_id, offset, canonical = hit
            logger.debug("Static geocode hit for %r", key)
            return ResolvedLocation(lat, lon, tz_id, offset, canonical, source="static")

        query = _clean_query(place)
        if not query:
            return LocationError(raw_place_input=place or "", reason="empty or malformed place")

        for provider in self.providers:
            lookup = {"nominatim": self._from_nominatim, "geo_details": self._from_geo_details}.get(provider)
            if lookup is None:
                logger.warning("Unknown geocoding provider %r skipped", provider)
                continue
            try:
                location = lookup(query)
            except Exception as e:
                logger.warning("Geocoding provider %s failed: %s", provider, str(e)[:200])
                continue
            if location is not None:
                return location

        return LocationError(raw_place_input=place, reason="no provider returned a candidate")

    def _http_get(self, url: str, params: dict) -> Optional[Any]:
        """Single HTTP GET. Returns parsed JSON or None."""
        headers = {"User-Agent": self.user_agent}
        try:
            if self._http_client is not None:
                r = self._http_client.get(url, params=params, headers=headers, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    r = client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Geocoder timeout: %s", e)
            return None
        except httpx.HTTPError as e:
            logger.warning("Geocoder request error: %s", e)
            return None
        if r.status_code != 200:
            logger.warning("Geocoder %s error: %s %s", url, r.status_code, r.text[:200])
            return None
        try:
            return r.json()
        except ValueError:
            logger.warning("Geocoder %s returned non-JSON body", url)
            return None

    def _from_nominatim(self, query: str) -> Optional[ResolvedLocation]:
        data = self._http_get(
            self.nominatim_url,
            {"q": query, "format": "json", "limit": 1, "addressdetails": 1},
        )
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        first = data[0]
        lat, lon = _to_float(first.get("lat")), _to_float(first.get("lon"))
        if lat is None or lon is None:
            return None
        country_code = ((first.get("address") or {}).get("country_code") or "").lower()
        tz_id = COUNTRY_TIMEZONES.get(country_code, "UTC")
        try:
            return ResolvedLocation(
                lat,
                lon,
                tz_id,
                timezone_id_to_offset(tz_id),
                first.get("display_name") or query,
                source="nominatim",
            )
        except ValueError as e:
            logger.warning("Nominatim candidate rejected: %s", e)
            return None

    def _from_geo_details(self, query: str) -> Optional[ResolvedLocation]:
        if self.astrology_client is None:
            return None
        data = self.astrology_client.post("geo_details", {"place": query, "maxRows": 1})
        if isinstance(data, UpstreamError) or not isinstance(data, dict):
            return None
        rows = data.get("geonames") or []
        if not rows or not isinstance(rows[0], dict):
            return None
        first = rows[0]
        lat, lon = _to_float(first.get("latitude")), _to_float(first.get("longitude"))
        if lat is None or lon is None:
            return None
        tz_id = first.get("timezone_id") or "UTC"
        name = first.get("place_name") or query
        if first.get("country_code"):
            name = f"{name}, {first['country_code']}"
        try:
            return ResolvedLocation(lat, lon, tz_id, timezone_id_to_offset(tz_id), name, source="geo_details")
        except ValueError as e:
            logger.warning("geo_details candidate rejected: %s", e)
            return None
