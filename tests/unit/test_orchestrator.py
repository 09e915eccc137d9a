"""Unit tests for ChartQueryOrchestrator: stage order, request body, typed result variants."""
from unittest.mock import MagicMock

import pytest

from tools.astrology_client import AstrologyClient
from tools.base import (
    BirthQuery,
    ChartSuccess,
    LocationError,
    LocationNotFound,
    QueryKind,
    ResolvedLocation,
    Stage,
    UpstreamError,
    UpstreamFailure,
)
from tools.geo import GeoResolver
from tools.orchestrator import ChartQueryOrchestrator
from tools.timezone import TimezoneResolver

ASHA = dict(name="Asha", day=6, month=3, year=1998, hour=14, minute=30, place="Mumbai")


def _pipeline(http_client, static_table=None, strategy="dst"):
    astro = AstrologyClient("u", "k", base_url="https://astro.test/v1", client=http_client)
    geo = GeoResolver(
        astrology_client=astro,
        static_table=static_table,
        nominatim_url="https://geo.test/search",
        http_client=http_client,
    )
    return ChartQueryOrchestrator(geo, TimezoneResolver(astro, strategy=strategy), astro)


def _variant_count(result):
    return sum(isinstance(result, cls) for cls in (ChartSuccess, LocationNotFound, UpstreamFailure))


class TestEndToEndStages:
    def test_mumbai_short_circuits_geocoding(self, recorder, http_client):
        recorder.routes["/v1/timezone_with_dst"] = (200, {"timezone": 5.5})
        recorder.routes["/v1/birth_details"] = (200, {"ascendant": "Cancer", "nakshatra": "Ashwini"})

        result = _pipeline(http_client).run(BirthQuery(**ASHA))

        assert isinstance(result, ChartSuccess)
        assert result.kind == QueryKind.CHART_DETAILS
        assert result.payload == {"ascendant": "Cancer", "nakshatra": "Ashwini"}
        assert (result.location.latitude, result.location.longitude) == (19.076, 72.8777)
        assert result.location.timezone_id == "Asia/Kolkata"
        assert result.name == "Asha"
        # no geocoding call: only timezone + compute
        assert recorder.paths() == ["/v1/timezone_with_dst", "/v1/birth_details"]
        assert recorder.body(1) == {
            "day": 6, "month": 3, "year": 1998, "hour": 14, "min": 30,
            "lat": 19.076, "lon": 72.8777, "tzone": 5.5,
        }

    def test_daily_prediction_endpoint(self, recorder, http_client):
        recorder.routes["/v1/timezone_with_dst"] = (200, {"timezone": 5.5})
        recorder.routes["/v1/daily_nakshatra_prediction"] = (200, {"prediction": {"health": "rest"}})

        query = BirthQuery(**ASHA, query_kind="daily-prediction")
        result = _pipeline(http_client).run(query)

        assert isinstance(result, ChartSuccess)
        assert result.kind == QueryKind.DAILY_PREDICTION
        assert recorder.paths()[-1] == "/v1/daily_nakshatra_prediction"

    def test_unknown_place_is_location_not_found(self, recorder, http_client):
        recorder.routes["/search"] = (200, [])
        recorder.routes["/v1/geo_details"] = (200, {"geonames": []})

        result = _pipeline(http_client, static_table={}).run(BirthQuery(**{**ASHA, "place": "Zzzqx123"}))

        assert result == LocationNotFound(raw_place_input="Zzzqx123")
        assert "/v1/birth_details" not in recorder.paths()

    def test_timezone_failure_still_computes_with_default(self, recorder, http_client):
        recorder.routes["/v1/timezone_with_dst"] = (500, {"error": "down"})
        recorder.routes["/v1/birth_details"] = (200, {"ok": 1})

        result = _pipeline(http_client).run(BirthQuery(**{**ASHA, "place": "London"}))

        assert isinstance(result, ChartSuccess)
        assert result.location.utc_offset_hours == 5.5
        assert recorder.body(1)["tzone"] == 5.5

    def test_compute_failure_is_upstream_failure(self, recorder, http_client):
        recorder.routes["/v1/timezone_with_dst"] = (200, {"timezone": 5.5})
        recorder.routes["/v1/birth_details"] = (502, {"error": "bad gateway"})

        result = _pipeline(http_client).run(BirthQuery(**ASHA))

        assert isinstance(result, UpstreamFailure)
        assert result.stage == Stage.COMPUTE
        assert result.status_code == 502
        assert "birth_details" in result.detail

    def test_at_most_three_calls(self, recorder, http_client):
        recorder.routes["/search"] = (200, [{"lat": "26.45", "lon": "80.33", "address": {"country_code": "in"}}])
        recorder.routes["/v1/timezone_with_dst"] = (200, {"timezone": 5.5})
        recorder.routes["/v1/birth_details"] = (200, {})

        _pipeline(http_client, static_table={}).run(BirthQuery(**{**ASHA, "place": "Kanpur"}))
        assert len(recorder.requests) == 3


class TestVariants:
    def _orchestrator(self, geo_result, compute_result, offset=5.5):
        geo = MagicMock()
        geo.resolve.return_value = geo_result
        tz = MagicMock()
        tz.resolve_offset.return_value = offset
        astro = MagicMock()
        astro.post.return_value = compute_result
        return ChartQueryOrchestrator(geo, tz, astro), astro

    @pytest.mark.parametrize(
        "geo_result,compute_result",
        [
            (ResolvedLocation(19.0, 72.8, "Asia/Kolkata", 5.5, "Mumbai"), {"x": 1}),
            (ResolvedLocation(19.0, 72.8, "Asia/Kolkata", 5.5, "Mumbai"), UpstreamError(500, "birth_details")),
            (LocationError(raw_place_input="??"), {"x": 1}),
        ],
    )
    def test_exactly_one_variant(self, geo_result, compute_result):
        orchestrator, _ = self._orchestrator(geo_result, compute_result)
        assert _variant_count(orchestrator.run(BirthQuery(**ASHA))) == 1

    def test_custom_endpoint_mapping(self):
        geo_result = ResolvedLocation(19.0, 72.8, "Asia/Kolkata", 5.5, "Mumbai")
        orchestrator, astro = self._orchestrator(geo_result, {})
        orchestrator.endpoints[QueryKind.CHART_DETAILS] = "chart-details"
        orchestrator.run(BirthQuery(**ASHA))
        assert astro.post.call_args[0][0] == "chart-details"

    def test_resolved_offset_replaces_geocoder_offset(self):
        geo_result = ResolvedLocation(51.5, -0.12, "Europe/London", 0.0, "London")
        orchestrator, astro = self._orchestrator(geo_result, {}, offset=1.0)
        result = orchestrator.run(BirthQuery(**ASHA))
        assert result.location.utc_offset_hours == 1.0
        assert astro.post.call_args[0][1]["tzone"] == 1.0


class TestBirthQuery:
    def test_rejects_impossible_date(self):
        with pytest.raises(ValueError):
            BirthQuery(**{**ASHA, "month": 2, "day": 30})

    def test_rejects_blank_place(self):
        with pytest.raises(ValueError):
            BirthQuery(**{**ASHA, "place": "   "})

    @pytest.mark.parametrize("field,value", [("year", 1899), ("hour", 24), ("minute", 60), ("month", 13)])
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValueError):
            BirthQuery(**{**ASHA, field: value})

    def test_is_immutable(self):
        query = BirthQuery(**ASHA)
        with pytest.raises(Exception):
            query.place = "Delhi"


@pytest.mark.parametrize("default_offset", [-12.0, 14.0])
def test_timezone_failure_with_edge_default_still_one_variant(default_offset, recorder, http_client):
    recorder.routes["/v1/timezone_with_dst"] = (200, {"timezone": "bad"})
    recorder.routes["/v1/birth_details"] = (200, {"ok": 1})
    astro = AstrologyClient("u", "k", base_url="https://astro.test/v1", client=http_client)
    orchestrator = ChartQueryOrchestrator(
        GeoResolver(astrology_client=astro, http_client=http_client),
        TimezoneResolver(astro, strategy="dst", default_offset=default_offset),
        astro,
    )

    result = orchestrator.run(BirthQuery(**ASHA))
    assert isinstance(result, ChartSuccess)
    assert _variant_count(result) == 1
    assert result.location.utc_offset_hours == default_offset
