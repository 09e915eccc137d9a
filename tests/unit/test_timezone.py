"""Unit tests for TimezoneResolver: both lookup strategies and the fixed fallback offset."""
import math
from datetime import date
from unittest.mock import MagicMock

import pytest

from tools.astrology_client import AstrologyClient
from tools.base import UpstreamError
from tools.timezone import TimezoneResolver

BIRTH = date(1998, 3, 6)
MUMBAI = (19.076, 72.8777)


def _astro(http_client):
    return AstrologyClient("u", "k", base_url="https://astro.test/v1", client=http_client)


def test_dst_strategy_posts_coordinates_and_date(recorder, http_client):
    recorder.routes["/v1/timezone_with_dst"] = (200, {"timezone": 5.5, "status": True})
    resolver = TimezoneResolver(_astro(http_client), strategy="dst")

    assert resolver.resolve_offset("Asia/Kolkata", BIRTH, MUMBAI) == 5.5
    assert recorder.body(0) == {"latitude": 19.076, "longitude": 72.8777, "date": "03-06-1998"}


def test_timezone_id_strategy_posts_identifier(recorder, http_client):
    recorder.routes["/v1/timezone"] = (200, {"timezone": "-4"})
    resolver = TimezoneResolver(_astro(http_client), strategy="timezone_id")

    assert resolver.resolve_offset("America/New_York", BIRTH, (40.71, -74.0)) == -4.0
    assert recorder.body(0) == {"timezone_id": "America/New_York"}


def test_none_strategy_keeps_geocoder_offset(recorder, http_client):
    resolver = TimezoneResolver(_astro(http_client), strategy="none")
    assert resolver.resolve_offset("Asia/Kathmandu", BIRTH, (27.7, 85.3), known_offset=5.75) == 5.75
    assert recorder.requests == []


@pytest.mark.parametrize(
    "answer",
    [
        (500, {"error": "boom"}),
        (200, {"status": True}),
        (200, {"timezone": "abc"}),
        (200, {"timezone": None}),
        (200, {"timezone": 99}),
        (200, {"timezone": True}),
        (200, ["not", "an", "object"]),
    ],
)
def test_failures_fall_back_to_default(answer, recorder, http_client):
    recorder.routes["/v1/timezone_with_dst"] = answer
    resolver = TimezoneResolver(_astro(http_client), strategy="dst")

    offset = resolver.resolve_offset("Asia/Kolkata", BIRTH, MUMBAI)
    assert offset == 5.5
    assert math.isfinite(offset)


def test_raising_client_still_returns_number():
    astro = MagicMock()
    astro.post.side_effect = ConnectionError("stack panic")
    resolver = TimezoneResolver(astro, strategy="dst", default_offset=5.5)
    assert resolver.resolve_offset("UTC", BIRTH, (0.0, 0.0)) == 5.5


def test_missing_timezone_id_uses_default():
    astro = MagicMock()
    resolver = TimezoneResolver(astro, strategy="timezone_id", default_offset=1.0)
    assert resolver.resolve_offset(None, BIRTH, MUMBAI) == 1.0
    astro.post.assert_not_called()


def test_upstream_error_uses_configured_default():
    astro = MagicMock()
    astro.post.return_value = UpstreamError(status_code=503, endpoint="timezone_with_dst", body_text="down")
    resolver = TimezoneResolver(astro, strategy="dst", default_offset=0.0)
    assert resolver.resolve_offset("UTC", BIRTH, (51.5, -0.12)) == 0.0


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        TimezoneResolver(None, strategy="sundial")


@pytest.mark.parametrize("bad_default", [20.0, -13.0, float("nan")])
def test_out_of_range_default_rejected(bad_default):
    with pytest.raises(ValueError):
        TimezoneResolver(None, strategy="dst", default_offset=bad_default)
