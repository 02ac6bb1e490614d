import asyncio
import contextlib

import structlog

from coconut_risk.config import settings

logger = structlog.get_logger("Facts")

COCONUT_FACTS: tuple[str, ...] = (
    "Coconuts are technically seeds, not nuts.",
    "Coconut water is a natural isotonic beverage.",
    "There are over 1,200 varieties of coconuts worldwide.",
    "Coconuts can float on water and travel long distances.",
    "The coconut tree is known as the 'Tree of Life'.",
    "Coconut oil has been used for centuries in skincare and cooking.",
    "The husk of a coconut can be used to make ropes and mats.",
    "Coconuts are grown in more than 90 countries worldwide.",
    "The coconut palm is one of the most useful trees on Earth.",
    "Coconut shells can be used as bowls or fuel.",
    "Coconuts provide a natural source of hydration in tropical climates.",
    "In some cultures, coconuts symbolize prosperity and fertility.",
    "Coconut water was used as an emergency intravenous hydration fluid during WWII.",
    "The tallest coconut palm on record was over 30 meters tall.",
    "Coconut leaves are used for thatching roofs and weaving baskets.",
)


class FactRotator:
    """
    Cycles through a read-only list of facts on a fixed interval.
    Runs as its own task and shares nothing with the risk pipeline.
    """

    def __init__(
        self, facts: tuple[str, ...] = COCONUT_FACTS, interval: float | None = None
    ) -> None:
        if not facts:
            raise ValueError("FactRotator needs at least one fact")
        self.facts = facts
        self.interval = interval or settings.fact_interval_seconds
        self.index = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def current(self) -> str:
        return self.facts[self.index]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def advance(self) -> str:
        self.index = (self.index + 1) % len(self.facts)
        return self.current

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.advance()
            logger.debug("Fact rotated", index=self.index)

    def start(self) -> None:
        """Start rotating on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
