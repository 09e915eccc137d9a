"""
UTC offset lookup for the astrology engine.
Strategies: by timezone id, by coordinates + date (DST-aware), or none (keep the geocoder's offset).
Any failure falls back to a fixed default offset; a plausible chart beats no chart.
"""
import logging
import math
from datetime import date
from typing import Any, Optional

from tools.astrology_client import AstrologyClient
from tools.base import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_UTC_OFFSET = 5.5
TIMEZONE_ENDPOINT = "timezone"
TIMEZONE_DST_ENDPOINT = "timezone_with_dst"
STRATEGIES = ("timezone_id", "dst", "none")


def _parse_offset(data: Any) -> Optional[float]:
    """Numeric 'timezone' field within [-12, 14], else None."""
    if not isinstance(data, dict):
        return None
    raw = data.get("timezone")
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or not -12.0 <= value <= 14.0:
        return None
    return value


class TimezoneResolver:
    def __init__(
        self,
        astrology_client: Optional[AstrologyClient],
        strategy: str = "dst",
        default_offset: float = DEFAULT_UTC_OFFSET,
    ):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown timezone strategy: {strategy}")
        if _parse_offset({"timezone": default_offset}) is None:
            raise ValueError(f"Default UTC offset must be within [-12, 14]: {default_offset}")
        self.astrology_client = astrology_client
        self.strategy = strategy
        self.default_offset = default_offset

    @classmethod
    def from_settings(cls, settings, astrology_client: Optional[AstrologyClient]) -> "TimezoneResolver":
        return cls(
            astrology_client,
            strategy=settings.timezone_strategy,
            default_offset=settings.default_utc_offset,
        )

    def resolve_offset(
        self,
        timezone_id: Optional[str],
        reference_date: date,
        coordinates: tuple[float, float],
        known_offset: Optional[float] = None,
    ) -> float:
        """
        Return the UTC offset in hours. Never raises for upstream problems.
        known_offset is the geocoder's own estimate, used by the 'none' strategy.
        """
        try:
            offset = self._lookup(timezone_id, reference_date, coordinates, known_offset)
        except Exception as e:
            logger.warning("Timezone lookup crashed (%s); using default %s", str(e)[:200], self.default_offset)
            return self.default_offset
        if offset is None:
            logger.warning(
                "Timezone lookup failed for %s; using default %s", timezone_id or coordinates, self.default_offset
            )
            return self.default_offset
        return offset

    def _lookup(
        self,
        timezone_id: Optional[str],
        reference_date: date,
        coordinates: tuple[float, float],
        known_offset: Optional[float],
    ) -> Optional[float]:
        if self.strategy == "none":
            return _parse_offset({"timezone": known_offset})
        if self.astrology_client is None:
            return None
        if self.strategy == "timezone_id":
            if not timezone_id:
                return None
            data = self.astrology_client.post(TIMEZONE_ENDPOINT, {"timezone_id": timezone_id})
        else:
            latitude, longitude = coordinates
            data = self.astrology_client.post(
                TIMEZONE_DST_ENDPOINT,
                {
                    "latitude": latitude,
                    "longitude": longitude,
                    "date": reference_date.strftime("%m-%d-%Y"),
                },
            )
        if isinstance(data, UpstreamError):
            logger.warning("Timezone service error: %s", data.describe())
            return None
        return _parse_offset(data)
