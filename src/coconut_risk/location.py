import math
from abc import ABC, abstractmethod

import httpx
import structlog
from pydantic import ValidationError

from coconut_risk.config import Settings, settings
from coconut_risk.models import Coordinate

logger = structlog.get_logger("Location")


class LocationUnavailable(Exception):
    """The location sensor could not produce a position (denied, offline, bad answer)."""


class LocationSensor(ABC):
    """Abstract Base Class for single-shot position sources."""

    @abstractmethod
    async def read(self) -> Coordinate:
        """Return the current position or raise LocationUnavailable."""
        pass


class IpLocationSensor(LocationSensor):
    """Approximate position from the public IP address (ip-api.com JSON format)."""

    def __init__(self, url: str | None = None, timeout: float | None = None) -> None:
        self.url = url or settings.ip_location_url
        self.timeout = timeout or settings.http_timeout

    async def read(self) -> Coordinate:
        try:
            async with httpx.AsyncClient(headers={"User-Agent": settings.user_agent}) as client:
                response = await client.get(self.url, timeout=self.timeout)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LocationUnavailable(f"IP lookup failed: {e}") from e

        if not isinstance(data, dict) or data.get("status", "success") != "success":
            message = data.get("message") if isinstance(data, dict) else None
            raise LocationUnavailable(f"IP lookup refused: {message or 'unknown reason'}")

        try:
            return Coordinate(latitude=data["lat"], longitude=data["lon"])
        except (KeyError, ValidationError) as e:
            raise LocationUnavailable(f"IP lookup returned no usable position: {e}") from e


class ConfiguredLocationSensor(LocationSensor):
    """Position from the JSON settings file, falling back to the configured defaults."""

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    async def read(self) -> Coordinate:
        lat, lon = self.config.get_location()
        try:
            return Coordinate(latitude=lat, longitude=lon)
        except ValidationError as e:
            raise LocationUnavailable(f"Configured location out of range: {e}") from e


def build_sensor(source: str) -> LocationSensor:
    if source == "config":
        return ConfiguredLocationSensor()
    return IpLocationSensor()


def parse_manual_coordinate(lat_text: str, lon_text: str) -> Coordinate | None:
    """
    Validate the two manual text fields.
    Returns None (submission ignored) unless both are finite numbers in range.
    """
    try:
        lat = float(lat_text)
        lon = float(lon_text)
    except (TypeError, ValueError):
        return None

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None

    try:
        return Coordinate(latitude=lat, longitude=lon)
    except ValidationError:
        return None


class LocationResolver:
    """Turns a sensor reading into a coordinate; sensor failures are logged, not raised."""

    def __init__(self, sensor: LocationSensor | None = None) -> None:
        self.sensor = sensor or build_sensor(settings.location_source)

    async def resolve(self) -> Coordinate | None:
        try:
            coord = await self.sensor.read()
        except LocationUnavailable as e:
            logger.error(f"Geolocation error: {e}")
            return None

        logger.info("Location resolved", coord=coord.display())
        return coord
