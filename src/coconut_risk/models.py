from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Wind speed (m/s) above which conditions count as stormy
STORMY_WIND_THRESHOLD = 8.0

T = TypeVar("T")


class Coordinate(BaseModel):
    """A resolved position. Immutable once produced for a request."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def display(self) -> str:
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


class WeatherSnapshot(BaseModel):
    """
    Current conditions at a coordinate.
    Fields missing from the forecast response stay None (unavailable), never zero.
    """

    model_config = ConfigDict(frozen=True)

    wind_speed: float | None = Field(None, ge=0, description="m/s at 10 m")
    precipitation: float | None = Field(None, ge=0, description="mm")
    rain: float | None = Field(None, ge=0, description="mm")
    temperature: float | None = Field(None, description="°C at 2 m")
    humidity: float | None = Field(None, ge=0, le=100, description="% relative at 2 m")
    # Declared after wind_speed so the validator can see it; unset means derive from wind
    is_stormy: bool | None = Field(None, validate_default=True)

    @field_validator("is_stormy")
    @classmethod
    def derive_is_stormy(cls, v: bool | None, info: Any) -> bool:
        """An explicit flag wins, otherwise wind above the threshold counts as stormy."""
        if v is not None:
            return v
        wind_speed = info.data.get("wind_speed")
        return wind_speed is not None and wind_speed > STORMY_WIND_THRESHOLD


class TreeDensity(BaseModel):
    """Number of tree/forest features around a coordinate."""

    model_config = ConfigDict(frozen=True)

    count: int = Field(..., ge=0)


class ExposureConfig(BaseModel):
    """Minutes per day spent under tree cover."""

    model_config = ConfigDict(frozen=True)

    minutes_per_day: int = Field(30, ge=0)


class DangerTier(StrEnum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


class RiskResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    probability_percent: float = Field(..., ge=0, le=100)
    tier: DangerTier


class WindHistorySample(BaseModel):
    """Midday wind speed for one day. day_offset counts back from today (-5 .. -1)."""

    model_config = ConfigDict(frozen=True)

    day_offset: int
    speed: float


class LookupStatus(StrEnum):
    OK = "ok"
    DEFAULTED = "defaulted"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """
    Outcome of an external lookup.
    Keeps "default substituted" apart from "value genuinely absent" so callers
    never mistake a fallback for a measurement.
    """

    status: LookupStatus
    value: T | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, value: T) -> "Lookup[T]":
        return cls(LookupStatus.OK, value)

    @classmethod
    def defaulted(cls, value: T, reason: str) -> "Lookup[T]":
        return cls(LookupStatus.DEFAULTED, value, reason)

    @classmethod
    def unavailable(cls, reason: str) -> "Lookup[T]":
        return cls(LookupStatus.UNAVAILABLE, None, reason)

    @property
    def available(self) -> bool:
        return self.value is not None
