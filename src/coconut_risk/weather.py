from datetime import date, datetime, timedelta
from typing import Any

import httpx
import structlog

from coconut_risk.config import settings
from coconut_risk.history import MIDDAY_SUFFIX
from coconut_risk.models import Coordinate, Lookup, WeatherSnapshot, WindHistorySample

logger = structlog.get_logger("Weather")

CURRENT_FIELDS = [
    "wind_speed_10m",
    "precipitation",
    "rain",
    "temperature_2m",
    "relative_humidity_2m",
]


class WeatherClient:
    """Open-Meteo forecast client. Failures come back as unavailable lookups, never raised."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        history_days: int | None = None,
    ) -> None:
        self.base_url = base_url or settings.forecast_url
        self.timeout = timeout or settings.http_timeout
        self.history_days = history_days or settings.history_days

    async def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(headers={"User-Agent": settings.user_agent}) as client:
            response = await client.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected forecast payload type: {type(data).__name__}")
        return data

    async def fetch_current(self, coord: Coordinate) -> Lookup[WeatherSnapshot]:
        """Fetch current wind, precipitation, rain, temperature and humidity."""
        logger.info("Fetching current weather from OpenMeteo...", coord=coord.display())
        params = {
            "latitude": coord.latitude,
            "longitude": coord.longitude,
            "current": ",".join(CURRENT_FIELDS),
            "wind_speed_unit": "ms",
            "timeformat": "iso8601",
        }

        try:
            data = await self._get(params)
            current = data.get("current") or {}
            if not current:
                logger.warning("No current weather data received.")
                return Lookup.unavailable("empty current block")

            # Map OpenMeteo data to our model, absent fields stay None
            snapshot = WeatherSnapshot(
                wind_speed=current.get("wind_speed_10m"),
                precipitation=current.get("precipitation"),
                rain=current.get("rain"),
                temperature=current.get("temperature_2m"),
                humidity=current.get("relative_humidity_2m"),
            )
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Weather fetch failed: {e}", exc_info=True)
            return Lookup.unavailable(str(e))

        logger.info("Weather received", wind_speed=snapshot.wind_speed, stormy=snapshot.is_stormy)
        return Lookup.ok(snapshot)

    async def fetch_wind_history(
        self, coord: Coordinate, today: date | None = None
    ) -> Lookup[list[WindHistorySample]]:
        """Fetch hourly wind for the trailing days and keep the midday readings."""
        today = today or date.today()
        start = today - timedelta(days=self.history_days)
        params = {
            "latitude": coord.latitude,
            "longitude": coord.longitude,
            "current_weather": "true",
            "hourly": "wind_speed_10m",
            "wind_speed_unit": "ms",
            "start_date": start.isoformat(),
            "end_date": today.isoformat(),
        }

        try:
            data = await self._get(params)
            hourly = data.get("hourly") or {}
            times = hourly.get("time") or []
            speeds = hourly.get("wind_speed_10m") or []
            samples = parse_midday_samples(times, speeds, today)
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Wind history fetch failed: {e}", exc_info=True)
            return Lookup.unavailable(str(e))

        # Completed days only, today's noon reading is left out
        past = [s for s in samples if s.day_offset < 0]
        return Lookup.ok(past[-self.history_days :])


def parse_midday_samples(
    times: list[str], speeds: list[float | None], today: date
) -> list[WindHistorySample]:
    """Pick the readings whose timestamp ends in 12:00, oldest first."""
    samples: list[WindHistorySample] = []
    for ts, speed in zip(times, speeds, strict=False):
        if not ts.endswith(MIDDAY_SUFFIX) or speed is None:
            continue
        day = datetime.fromisoformat(ts).date()
        samples.append(WindHistorySample(day_offset=(day - today).days, speed=speed))
    return samples
