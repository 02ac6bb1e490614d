import httpx
import structlog

from coconut_risk.config import settings
from coconut_risk.models import Coordinate, Lookup, TreeDensity

logger = structlog.get_logger("TreeDensity")


def build_overpass_query(coord: Coordinate, radius_m: int) -> str:
    """Overpass QL for tree nodes plus forest/wood ways around a point."""
    around = f"around:{radius_m},{coord.latitude},{coord.longitude}"
    return (
        "[out:json];("
        f'node["natural"="tree"]({around});'
        f'way["landuse"="forest"]({around});'
        f'way["natural"="wood"]({around});'
        ");out body;"
    )


class TreeDensityClient:
    """
    Counts tree and forest features via the Overpass API.
    Any failure or an empty answer yields the default count, tagged as defaulted.
    """

    def __init__(
        self,
        base_url: str | None = None,
        radius_m: int | None = None,
        default_count: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url or settings.overpass_url
        self.radius_m = radius_m or settings.tree_search_radius_m
        self.default_count = settings.default_tree_count if default_count is None else default_count
        self.timeout = timeout or settings.http_timeout

    def fallback(self, reason: str) -> Lookup[TreeDensity]:
        return Lookup.defaulted(TreeDensity(count=self.default_count), reason)

    async def fetch(self, coord: Coordinate) -> Lookup[TreeDensity]:
        logger.info("Querying Overpass for trees...", coord=coord.display(), radius=self.radius_m)
        query = build_overpass_query(coord, self.radius_m)

        try:
            async with httpx.AsyncClient(headers={"User-Agent": settings.user_agent}) as client:
                response = await client.get(
                    self.base_url, params={"data": query}, timeout=self.timeout
                )
                response.raise_for_status()
                data = response.json()

            elements = data.get("elements")
            if not isinstance(elements, list):
                raise ValueError("Overpass response has no elements array")
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Tree density fetch failed: {e}", exc_info=True)
            return self.fallback(str(e))

        if not elements:
            logger.warning("No tree features found, using default", default=self.default_count)
            return self.fallback("no features returned")

        logger.info("Tree features counted", count=len(elements))
        return Lookup.ok(TreeDensity(count=len(elements)))
