from datetime import date

import httpx
import pytest
from coconut_risk.models import LookupStatus
from coconut_risk.weather import WeatherClient, parse_midday_samples


@pytest.mark.asyncio
async def test_fetch_current_success(mock_http, coord):
    """Test mapping of the Open-Meteo current block to a snapshot."""
    client = mock_http(
        {
            "current": {
                "time": "2026-10-19T12:00",
                "wind_speed_10m": 9.5,
                "precipitation": 0.4,
                "rain": 0.3,
                "temperature_2m": 31.2,
                "relative_humidity_2m": 78,
            }
        }
    )

    result = await WeatherClient(base_url="https://forecast.test").fetch_current(coord)

    assert result.status == LookupStatus.OK
    snapshot = result.value
    assert snapshot.wind_speed == 9.5
    assert snapshot.rain == 0.3
    assert snapshot.temperature == 31.2
    assert snapshot.humidity == 78
    assert snapshot.is_stormy is True

    # Verify query parameters
    params = client.get.call_args.kwargs["params"]
    assert params["latitude"] == coord.latitude
    assert params["longitude"] == coord.longitude
    assert params["current"] == (
        "wind_speed_10m,precipitation,rain,temperature_2m,relative_humidity_2m"
    )
    assert params["wind_speed_unit"] == "ms"


@pytest.mark.asyncio
async def test_fetch_current_missing_fields_stay_unset(mock_http, coord):
    mock_http({"current": {"wind_speed_10m": 2.0}})

    result = await WeatherClient().fetch_current(coord)

    assert result.status == LookupStatus.OK
    assert result.value.wind_speed == 2.0
    assert result.value.rain is None
    assert result.value.temperature is None
    assert result.value.humidity is None


@pytest.mark.asyncio
async def test_fetch_current_empty_block(mock_http, coord):
    mock_http({"latitude": 6.9})

    result = await WeatherClient().fetch_current(coord)

    assert result.status == LookupStatus.UNAVAILABLE
    assert result.value is None


@pytest.mark.asyncio
async def test_fetch_current_network_error(mock_http, coord):
    """Network failures are logged and reported as unavailable, never raised."""
    mock_http(error=httpx.ConnectError("Connection refused"))

    result = await WeatherClient().fetch_current(coord)

    assert result.status == LookupStatus.UNAVAILABLE
    assert "Connection refused" in result.reason


@pytest.mark.asyncio
async def test_fetch_current_malformed_values(mock_http, coord):
    mock_http({"current": {"wind_speed_10m": "gusty"}})

    result = await WeatherClient().fetch_current(coord)

    assert result.status == LookupStatus.UNAVAILABLE


@pytest.mark.asyncio
async def test_fetch_current_non_object_payload(mock_http, coord):
    mock_http(["not", "a", "dict"])

    result = await WeatherClient().fetch_current(coord)

    assert result.status == LookupStatus.UNAVAILABLE


@pytest.mark.asyncio
async def test_fetch_wind_history(mock_http, coord):
    times = []
    speeds = []
    for day in range(14, 20):
        for hour in ("00:00", "12:00", "18:00"):
            times.append(f"2026-10-{day:02d}T{hour}")
            speeds.append(float(day) if hour == "12:00" else 0.0)
    client = mock_http(
        {
            "current_weather": {"windspeed": 3.2},
            "hourly": {"time": times, "wind_speed_10m": speeds},
        }
    )

    result = await WeatherClient(history_days=5).fetch_wind_history(coord, today=date(2026, 10, 19))

    assert result.status == LookupStatus.OK
    assert [s.speed for s in result.value] == [14.0, 15.0, 16.0, 17.0, 18.0]
    assert [s.day_offset for s in result.value] == [-5, -4, -3, -2, -1]

    params = client.get.call_args.kwargs["params"]
    assert params["start_date"] == "2026-10-14"
    assert params["end_date"] == "2026-10-19"
    assert params["hourly"] == "wind_speed_10m"
    assert params["current_weather"] == "true"


@pytest.mark.asyncio
async def test_fetch_wind_history_without_hourly(mock_http, coord):
    mock_http({"current_weather": {"windspeed": 3.2}})

    result = await WeatherClient().fetch_wind_history(coord, today=date(2026, 10, 19))

    assert result.status == LookupStatus.OK
    assert result.value == []


@pytest.mark.asyncio
async def test_fetch_wind_history_error(mock_http, coord):
    mock_http(error=httpx.ReadTimeout("timed out"))

    result = await WeatherClient().fetch_wind_history(coord)

    assert result.status == LookupStatus.UNAVAILABLE


def test_parse_midday_samples_skips_gaps():
    samples = parse_midday_samples(
        ["2026-10-17T11:00", "2026-10-17T12:00", "2026-10-18T12:00", "2026-10-19T12:00"],
        [1.0, 2.0, None, 4.0],
        today=date(2026, 10, 19),
    )

    assert [(s.day_offset, s.speed) for s in samples] == [(-2, 2.0), (0, 4.0)]


@pytest.mark.asyncio
async def test_unexpected_block_shapes_are_unavailable(mock_http, coord):
    mock_http({"current": [9.5], "hourly": ["2026-10-19T12:00"]})

    current = await WeatherClient().fetch_current(coord)
    history = await WeatherClient().fetch_wind_history(coord, today=date(2026, 10, 19))

    assert current.status == LookupStatus.UNAVAILABLE
    assert history.status == LookupStatus.UNAVAILABLE


@pytest.mark.asyncio
async def test_fetch_wind_history_skips_today_and_later(mock_http, coord):
    """Only completed days make up the trend, even when today's noon is present."""
    mock_http(
        {
            "hourly": {
                "time": ["2026-10-17T12:00", "2026-10-18T12:00", "2026-10-19T12:00"],
                "wind_speed_10m": [2.0, 3.0, 40.0],
            }
        }
    )

    result = await WeatherClient(history_days=5).fetch_wind_history(coord, today=date(2026, 10, 19))

    assert [(s.day_offset, s.speed) for s in result.value] == [(-2, 2.0), (-1, 3.0)]
