"""
AstrologyAPI client: single POST per call, JSON in/out, Basic auth.
Non-2xx, network errors and non-JSON bodies come back as UpstreamError; nothing is raised
past this layer except ConfigurationError when credentials are missing at construction.
No retries: the service is synchronous and idempotent for identical inputs.
"""
import logging
from typing import Any, Optional, Union

import httpx

from tools.auth import build_auth_header
from tools.base import UpstreamError

logger = logging.getLogger(__name__)

ASTROLOGY_API_BASE_URL = "https://json.astrologyapi.com/v1"
DEFAULT_TIMEOUT_SEC = 10.0


class AstrologyClient:
    def __init__(
        self,
        user_id: Optional[str],
        api_key: Optional[str],
        base_url: str = ASTROLOGY_API_BASE_URL,
        language: str = "en",
        timeout: float = DEFAULT_TIMEOUT_SEC,
        client: Optional[httpx.Client] = None,
    ):
        # Fails fast with ConfigurationError
        self._auth_header = build_auth_header(user_id, api_key)
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.Client] = None) -> "AstrologyClient":
        user_id, api_key = settings.require_astrology_credentials()
        return cls(
            user_id,
            api_key,
            base_url=settings.astrology_api_base_url,
            language=settings.astrology_api_language,
            timeout=settings.http_timeout_sec,
            client=client,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "authorization": self._auth_header,
            "Content-Type": "application/json",
            "Accept-Language": self.language,
        }

    def _send(self, url: str, body: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return self._client.post(url, json=body, headers=self._headers(), timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(url, json=body, headers=self._headers())

    def post(self, endpoint: str, body: dict[str, Any]) -> Union[dict, list, UpstreamError]:
        """POST body to endpoint. Returns parsed JSON or UpstreamError."""
        endpoint = endpoint.strip("/")
        url = f"{self.base_url}/{endpoint}"
        try:
            r = self._send(url, body)
        except httpx.TimeoutException as e:
            logger.warning("AstrologyAPI timeout on %s: %s", endpoint, e)
            return UpstreamError(status_code=None, endpoint=endpoint, body_text="Request timed out.")
        except httpx.HTTPError as e:
            logger.warning("AstrologyAPI request error on %s: %s", endpoint, e)
            return UpstreamError(status_code=None, endpoint=endpoint, body_text=f"Network error: {e}"[:300])

        if not r.is_success:
            logger.warning("AstrologyAPI %s error: %s %s", endpoint, r.status_code, r.text[:200])
            return UpstreamError(status_code=r.status_code, endpoint=endpoint, body_text=r.text[:1000])
        try:
            return r.json()
        except ValueError:
            logger.warning("AstrologyAPI %s returned non-JSON body", endpoint)
            return UpstreamError(status_code=r.status_code, endpoint=endpoint, body_text=r.text[:1000])
