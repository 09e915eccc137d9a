"""
Load settings from .env. Never log or expose secret values.
All values come from environment variables (populated via .env file).
Credentials are read once per process (get_settings is cached).
"""
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tools.auth import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI / Azure
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_chat_model: str = Field(default="gpt-4o-mini", description="Chat model for the executor")
    openai_moderation_model: str = Field(default="omni-moderation-latest", description="Moderation model")
    azure_openai_api_key: Optional[str] = Field(default=None, description="Azure OpenAI API key")
    azure_openai_endpoint: Optional[str] = Field(default=None, description="Azure OpenAI endpoint")
    azure_openai_deployment: Optional[str] = Field(default=None, description="Azure OpenAI deployment name")

    # AstrologyAPI
    astrology_api_user_id: Optional[str] = Field(default=None, description="AstrologyAPI user id")
    astrology_api_key: Optional[str] = Field(default=None, description="AstrologyAPI key")
    astrology_api_base_url: str = Field(
        default="https://json.astrologyapi.com/v1", description="AstrologyAPI base URL"
    )
    astrology_api_language: str = Field(default="en", description="Accept-Language sent to AstrologyAPI")
    chart_details_endpoint: str = Field(default="birth_details", description="Endpoint for chart-details queries")
    daily_prediction_endpoint: str = Field(
        default="daily_nakshatra_prediction", description="Endpoint for daily-prediction queries"
    )

    # Geocoding
    geocoding_providers: list[Literal["nominatim", "geo_details"]] = Field(
        default=["nominatim", "geo_details"],
        description="Providers tried in order after the static table",
    )
    nominatim_url: str = Field(
        default="https://nominatim.openstreetmap.org/search", description="Nominatim search URL"
    )
    geocoder_user_agent: str = Field(default="zodiai/1.0", description="User-Agent required by Nominatim")

    # Timezone
    timezone_strategy: Literal["timezone_id", "dst", "none"] = Field(
        default="dst", description="timezone_id: lookup by id; dst: lookup by coordinates + date"
    )
    default_utc_offset: float = Field(
        default=5.5, ge=-12.0, le=14.0, description="Offset used when timezone lookup fails"
    )

    # HTTP
    http_timeout_sec: float = Field(default=10.0, description="Per-request timeout for upstream calls")

    # App
    log_level: str = Field(default="INFO", description="Log level")
    api_host: str = Field(default="0.0.0.0", description="FastAPI bind host")
    api_port: int = Field(default=8000, description="FastAPI port")
    moderation_enabled: bool = Field(default=True, description="Run the moderation gate before planning")

    def require_astrology_credentials(self) -> tuple[str, str]:
        """Return (user_id, api_key) or raise ConfigurationError. Called at startup."""
        user_id = (self.astrology_api_user_id or "").strip()
        api_key = (self.astrology_api_key or "").strip()
        if not user_id or not api_key:
            raise ConfigurationError(
                "Missing ASTROLOGY_API_USER_ID or ASTROLOGY_API_KEY environment variables."
            )
        return user_id, api_key

    @property
    def astrology_configured(self) -> bool:
        try:
            self.require_astrology_credentials()
        except ConfigurationError:
            return False
        return True


@lru_cache
def get_settings() -> Settings:
    return Settings()
