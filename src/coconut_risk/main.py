import asyncio
import time

import structlog

from coconut_risk.core.logging import setup_logging
from coconut_risk.facts import FactRotator
from coconut_risk.risk import verdict
from coconut_risk.session import Session, SessionState

logger = structlog.get_logger("Main")


def summarize(state: SessionState, session: Session) -> dict[str, object]:
    """Flat view of the state for the presentation layer."""
    result = session.risk()
    snapshot = state.weather_snapshot
    trees = state.tree_density

    tree_source: str | None = None
    if state.tree_override is not None:
        tree_source = "override"
    elif state.trees is not None:
        tree_source = state.trees.status

    return {
        "location": state.coordinate.display() if state.coordinate else None,
        "loading": state.loading,
        "wind_speed_ms": snapshot.wind_speed if snapshot else None,
        "stormy": snapshot.is_stormy if snapshot else None,
        "trees": trees.count if trees else None,
        "tree_source": tree_source,
        "minutes_per_day": state.exposure.minutes_per_day,
        "probability_percent": result.probability_percent if result else None,
        "tier": result.tier if result else None,
        "verdict": verdict(result) if result else None,
        "wind_history": state.wind_history.speeds(),
    }


async def run() -> None:
    session = Session()
    rotator = FactRotator()

    session.subscribe(lambda state: logger.info("State updated", **summarize(state, session)))

    rotator.start()
    logger.info("Coconut risk session started.", fact=rotator.current)
    try:
        await session.start()
        while True:
            await asyncio.sleep(rotator.interval)
            logger.info("Did you know?", fact=rotator.current)
    finally:
        await rotator.stop()


def main() -> None:
    try:
        setup_logging()
    except Exception as e:
        logger.exception(f"Startup failed: {e}")
        time.sleep(1)
        raise SystemExit(1) from e

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Session stopped.")


if __name__ == "__main__":
    main()
