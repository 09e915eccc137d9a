"""
Chart query: Geocoding -> TimezoneResolution -> Computing -> Done.
Linear; any stage failure ends in a typed AstrologyResult variant.
At most three outbound calls per query (geocode, timezone, compute).
"""
import dataclasses
import logging
import time
from typing import Optional

from tools.astrology_client import AstrologyClient
from tools.base import (
    AstrologyResult,
    BirthQuery,
    ChartSuccess,
    LocationError,
    LocationNotFound,
    QueryKind,
    Stage,
    UpstreamError,
    UpstreamFailure,
)
from tools.geo import GeoResolver
from tools.timezone import TimezoneResolver

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = {
    QueryKind.CHART_DETAILS: "birth_details",
    QueryKind.DAILY_PREDICTION: "daily_nakshatra_prediction",
}


class ChartQueryOrchestrator:
    def __init__(
        self,
        geo_resolver: GeoResolver,
        timezone_resolver: TimezoneResolver,
        astrology_client: AstrologyClient,
        endpoints: Optional[dict[QueryKind, str]] = None,
    ):
        self.geo_resolver = geo_resolver
        self.timezone_resolver = timezone_resolver
        self.astrology_client = astrology_client
        self.endpoints = dict(DEFAULT_ENDPOINTS)
        if endpoints:
            self.endpoints.update(endpoints)

    @classmethod
    def from_settings(cls, settings) -> "ChartQueryOrchestrator":
        """Wire the pipeline from settings. Raises ConfigurationError if credentials are missing."""
        client = AstrologyClient.from_settings(settings)
        return cls(
            GeoResolver.from_settings(settings, astrology_client=client),
            TimezoneResolver.from_settings(settings, client),
            client,
            endpoints={
                QueryKind.CHART_DETAILS: settings.chart_details_endpoint,
                QueryKind.DAILY_PREDICTION: settings.daily_prediction_endpoint,
            },
        )

    def run(self, query: BirthQuery) -> AstrologyResult:
        start = time.perf_counter()

        # Geocoding
        location = self.geo_resolver.resolve(query.place)
        if isinstance(location, LocationError):
            logger.info("Place not found: %r (%s)", query.place, location.reason)
            return LocationNotFound(raw_place_input=query.place)
        logger.info("Geocoded %r via %s in %.3fs", query.place, location.source, time.perf_counter() - start)

        # TimezoneResolution: always yields a number
        offset = self.timezone_resolver.resolve_offset(
            location.timezone_id,
            query.birth_date,
            (location.latitude, location.longitude),
            known_offset=location.utc_offset_hours,
        )
        location = dataclasses.replace(location, utc_offset_hours=offset)

        # Computing
        endpoint = self.endpoints[query.query_kind]
        body = {
            "day": query.day,
            "month": query.month,
            "year": query.year,
            "hour": query.hour,
            "min": query.minute,
            "lat": location.latitude,
            "lon": location.longitude,
            "tzone": offset,
        }
        payload = self.astrology_client.post(endpoint, body)
        if isinstance(payload, UpstreamError):
            logger.warning("Chart computation failed: %s", payload.describe())
            return UpstreamFailure(stage=Stage.COMPUTE, detail=payload.describe(), status_code=payload.status_code)

        logger.info("Chart query %s done in %.3fs", query.query_kind.value, time.perf_counter() - start)
        return ChartSuccess(
            kind=query.query_kind,
            payload=payload,
            location=location,
            name=query.name,
            focus_area=query.focus_area,
        )
