"""
Credential header for AstrologyAPI: HTTP Basic over "user_id:api_key".
Missing credentials are a deployment problem, not a per-query failure.
"""
import base64
from typing import Optional


class ConfigurationError(RuntimeError):
    """Deployment is misconfigured (e.g. missing AstrologyAPI credentials). Never retried."""


def build_auth_header(user_id: Optional[str], api_key: Optional[str]) -> str:
    """Return the Authorization header value. Raises ConfigurationError if either secret is unset."""
    user_id = (user_id or "").strip()
    api_key = (api_key or "").strip()
    if not user_id or not api_key:
        raise ConfigurationError(
            "Missing ASTROLOGY_API_USER_ID or ASTROLOGY_API_KEY environment variables."
        )
    token = base64.b64encode(f"{user_id}:{api_key}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"
