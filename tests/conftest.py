import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Add src to pythonpath
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from coconut_risk.models import (  # noqa: E402
    Coordinate,
    Lookup,
    TreeDensity,
    WeatherSnapshot,
    WindHistorySample,
)


@pytest.fixture
def mock_http():
    """
    Patch httpx.AsyncClient. Yields a function setting the JSON payload (or an
    exception) for the next client.get, plus the mocked client for call inspection.
    """
    with patch("httpx.AsyncClient") as mock_client_cls:
        mock_client = mock_client_cls.return_value
        # __aenter__ must be awaitable
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)

        def respond(payload=None, error: Exception | None = None):
            if error is not None:
                mock_client.get = AsyncMock(side_effect=error)
                return mock_client
            mock_response = MagicMock()
            mock_response.json.return_value = payload
            mock_client.get = AsyncMock(return_value=mock_response)
            return mock_client

        yield respond


@pytest.fixture
def coord() -> Coordinate:
    return Coordinate(latitude=6.9271, longitude=79.8612)


@pytest.fixture
def calm_weather() -> WeatherSnapshot:
    return WeatherSnapshot(
        wind_speed=10.0,
        precipitation=0.0,
        rain=0.0,
        temperature=20.0,
        humidity=50.0,
        is_stormy=False,
    )


@pytest.fixture
def fake_weather_client(calm_weather):
    client = MagicMock()
    client.fetch_current = AsyncMock(return_value=Lookup.ok(calm_weather))
    client.fetch_wind_history = AsyncMock(
        return_value=Lookup.ok([WindHistorySample(day_offset=-1, speed=3.0)])
    )
    return client


@pytest.fixture
def fake_tree_client():
    client = MagicMock()
    client.fetch = AsyncMock(return_value=Lookup.ok(TreeDensity(count=15)))
    return client
