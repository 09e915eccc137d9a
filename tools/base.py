"""Shared types for the astrology pipeline. Tool input uses pydantic for tool-calling mapping."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QueryKind(str, Enum):
    """Which computation the astrology service should run."""
    CHART_DETAILS = "chart-details"
    DAILY_PREDICTION = "daily-prediction"


class Stage(str, Enum):
    """Pipeline stage that produced an upstream failure."""
    GEOCODE = "geocode"
    TIMEZONE = "timezone"
    COMPUTE = "compute"


class BirthQuery(BaseModel):
    """Structured input for the astrology tool: name, birth date/time and birth place."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Name of the user, used only to personalize the message.")
    day: int = Field(ge=1, le=31, description="Birth day, e.g. 6.")
    month: int = Field(ge=1, le=12, description="Birth month, 1-12.")
    year: int = Field(ge=1900, le=2100, description="Birth year, e.g. 2000.")
    hour: int = Field(ge=0, le=23, description="Birth hour in 24-hour format, 0-23.")
    minute: int = Field(ge=0, le=59, description="Birth minute, 0-59.")
    place: str = Field(
        min_length=1,
        description="Birth place (city + country), e.g. 'Mumbai, India' or 'New York, USA'.",
    )
    query_kind: QueryKind = Field(
        default=QueryKind.CHART_DETAILS,
        description="'chart-details' for long-term insights, 'daily-prediction' for today/this week.",
    )
    focus_area: Literal["general", "love", "career", "health"] = Field(
        default="general",
        description="What the user mainly cares about right now: general, love, career, or health.",
    )

    @field_validator("place")
    @classmethod
    def place_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("place must not be blank")
        return v

    @model_validator(mode="after")
    def date_exists(self) -> "BirthQuery":
        # raises ValueError for e.g. 30 February
        date(self.year, self.month, self.day)
        return self

    @property
    def birth_date(self) -> date:
        return date(self.year, self.month, self.day)


@dataclass(frozen=True)
class ResolvedLocation:
    """Coordinates and timezone for a place. Lives only inside one orchestration."""
    latitude: float
    longitude: float
    timezone_id: str
    utc_offset_hours: float
    canonical_place_name: str
    source: str = "static"

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        if not -12.0 <= self.utc_offset_hours <= 14.0:
            raise ValueError(f"utc offset out of range: {self.utc_offset_hours}")

    def as_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone_id": self.timezone_id,
            "utc_offset_hours": self.utc_offset_hours,
            "place": self.canonical_place_name,
        }


@dataclass
class LocationError:
    """No geocoding stage produced a candidate. User-correctable."""
    raw_place_input: str
    reason: Optional[str] = None


@dataclass
class UpstreamError:
    """Uniform error shape for a failed upstream call. status_code is None for transport errors."""
    status_code: Optional[int]
    endpoint: str
    body_text: str = ""

    def describe(self) -> str:
        status = self.status_code if self.status_code is not None else "network"
        return f"{self.endpoint}: {status} {self.body_text[:200]}".strip()


@dataclass
class ChartSuccess:
    kind: QueryKind
    payload: Any
    location: ResolvedLocation
    name: str
    focus_area: str = "general"


@dataclass
class LocationNotFound:
    raw_place_input: str


@dataclass
class UpstreamFailure:
    stage: Stage
    detail: str = ""
    status_code: Optional[int] = None


AstrologyResult = Union[ChartSuccess, LocationNotFound, UpstreamFailure]


@dataclass
class ModerationResult:
    """Moderation verdict for one user message."""
    flagged: bool
    categories: list[str] = field(default_factory=list)
    denial_message: Optional[str] = None
