import httpx
import pytest
from coconut_risk.models import Coordinate, LookupStatus
from coconut_risk.trees import TreeDensityClient, build_overpass_query


def test_build_overpass_query():
    query = build_overpass_query(Coordinate(latitude=6.5, longitude=80.25), 1000)

    assert query.startswith("[out:json];(")
    assert 'node["natural"="tree"](around:1000,6.5,80.25);' in query
    assert 'way["landuse"="forest"](around:1000,6.5,80.25);' in query
    assert 'way["natural"="wood"](around:1000,6.5,80.25);' in query
    assert query.endswith(");out body;")


@pytest.mark.asyncio
async def test_fetch_counts_elements(mock_http, coord):
    client = mock_http({"elements": [{"type": "node", "id": i} for i in range(42)]})

    result = await TreeDensityClient(base_url="https://overpass.test").fetch(coord)

    assert result.status == LookupStatus.OK
    assert result.value.count == 42
    params = client.get.call_args.kwargs["params"]
    assert "around:1000" in params["data"]


@pytest.mark.asyncio
async def test_fetch_empty_result_defaults(mock_http, coord):
    mock_http({"elements": []})

    result = await TreeDensityClient().fetch(coord)

    assert result.status == LookupStatus.DEFAULTED
    assert result.value.count == 5


@pytest.mark.asyncio
async def test_fetch_failure_defaults_to_five(mock_http, coord):
    """A failed lookup yields exactly the fallback count."""
    mock_http(error=httpx.ConnectError("overpass down"))

    result = await TreeDensityClient().fetch(coord)

    assert result.status == LookupStatus.DEFAULTED
    assert result.value.count == 5
    assert "overpass down" in result.reason


@pytest.mark.asyncio
async def test_fetch_malformed_payload_defaults(mock_http, coord):
    mock_http({"remark": "runtime error: query timed out"})

    result = await TreeDensityClient().fetch(coord)

    assert result.status == LookupStatus.DEFAULTED
    assert result.value.count == 5


@pytest.mark.asyncio
async def test_custom_default_and_radius(mock_http, coord):
    client = mock_http(error=httpx.ConnectError("down"))

    result = await TreeDensityClient(radius_m=250, default_count=0).fetch(coord)

    assert result.value.count == 0
    assert "around:250" in client.get.call_args.kwargs["params"]["data"]
