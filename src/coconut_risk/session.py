"""
Session state and the acquisition pipeline.

SessionState is an immutable snapshot. Every change goes through a pure
transition function returning a new snapshot; Session owns the current one and
runs the network calls. Each resolution takes a generation number and results
from anything but the latest generation are dropped unapplied.
"""

import asyncio
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

import structlog

from coconut_risk.config import settings
from coconut_risk.history import HistoryTracker
from coconut_risk.location import LocationResolver, parse_manual_coordinate
from coconut_risk.models import (
    Coordinate,
    ExposureConfig,
    Lookup,
    RiskResult,
    TreeDensity,
    WeatherSnapshot,
    WindHistorySample,
)
from coconut_risk.risk import ScoringPolicy, build_policy, estimate_risk
from coconut_risk.trees import TreeDensityClient
from coconut_risk.weather import WeatherClient

logger = structlog.get_logger("Session")


@dataclass(frozen=True)
class SessionState:
    manual_mode: bool = False
    coordinate: Coordinate | None = None
    weather: Lookup[WeatherSnapshot] | None = None
    trees: Lookup[TreeDensity] | None = None
    tree_override: int | None = None
    exposure: ExposureConfig = field(
        default_factory=lambda: ExposureConfig(minutes_per_day=settings.default_exposure_minutes)
    )
    wind_history: HistoryTracker = field(default_factory=HistoryTracker)
    loading: bool = False
    generation: int = 0

    @property
    def weather_snapshot(self) -> WeatherSnapshot | None:
        return self.weather.value if self.weather is not None else None

    @property
    def tree_density(self) -> TreeDensity | None:
        """User override wins; otherwise the fetched (or defaulted) count, if any."""
        if self.tree_override is not None:
            return TreeDensity(count=self.tree_override)
        return self.trees.value if self.trees is not None else None

    def risk(self, policy: ScoringPolicy | None = None) -> RiskResult | None:
        return estimate_risk(self.weather_snapshot, self.tree_density, self.exposure, policy)


# Transitions


def begin_resolution(state: SessionState) -> SessionState:
    return replace(state, generation=state.generation + 1, loading=True)


def apply_resolution(
    state: SessionState,
    generation: int,
    coordinate: Coordinate,
    weather: Lookup[WeatherSnapshot],
    trees: Lookup[TreeDensity] | None,
    history: Lookup[list[WindHistorySample]] | None = None,
) -> SessionState:
    """
    Replace coordinate and weather wholesale with a finished resolution.
    trees is None when the override is active and the lookup was skipped.
    An unavailable history empties the trend; None keeps the previous one.
    Stale generations leave the state untouched.
    """
    if generation != state.generation:
        return state
    wind_history = state.wind_history
    if history is not None:
        if history.value is None:
            wind_history = wind_history.clear()
        else:
            wind_history = wind_history.replace(history.value)
    return replace(
        state,
        coordinate=coordinate,
        weather=weather,
        trees=trees if trees is not None else state.trees,
        wind_history=wind_history,
        loading=False,
    )


def abort_resolution(state: SessionState, generation: int) -> SessionState:
    if generation != state.generation:
        return state
    return replace(state, loading=False)


def set_manual_mode(state: SessionState, enabled: bool) -> SessionState:
    return replace(state, manual_mode=enabled)


def set_tree_override(state: SessionState, count: int | None) -> SessionState:
    if count is not None and count < 0:
        raise ValueError("Tree count cannot be negative")
    return replace(state, tree_override=count)


def set_exposure(state: SessionState, minutes: int) -> SessionState:
    return replace(state, exposure=ExposureConfig(minutes_per_day=minutes))


# Form field parsing


# Optional sign and digits at the start of the field, trailing text ignored
LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def _parse_int(text: str | None) -> int | None:
    """Read the leading integer of a form field ("12abc" -> 12, "7.9" -> 7)."""
    match = LEADING_INT.match(text or "")
    return int(match.group(1)) if match else None


def parse_tree_count(text: str, default: int | None = None) -> int:
    """Tree count field: anything not a positive number falls back to the default."""
    default = settings.default_tree_count if default is None else default
    value = _parse_int(text)
    if value is None or value <= 0:
        return default
    return value


def parse_exposure_minutes(text: str) -> int:
    """Minutes field: invalid or negative input reads as zero."""
    value = _parse_int(text)
    if value is None or value < 0:
        return 0
    return value


Listener = Callable[[SessionState], Any]


class Session:
    """Single-user session: owns the state and drives the acquisition pipeline."""

    def __init__(
        self,
        resolver: LocationResolver | None = None,
        weather_client: WeatherClient | None = None,
        tree_client: TreeDensityClient | None = None,
        policy: ScoringPolicy | None = None,
        state: SessionState | None = None,
    ) -> None:
        self.resolver = resolver or LocationResolver()
        self.weather_client = weather_client or WeatherClient()
        self.tree_client = tree_client or TreeDensityClient()
        self.policy = policy or build_policy(settings.scoring_policy, settings.linear_jitter)
        self._state = state or SessionState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _set_state(self, new_state: SessionState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        for listener in self._listeners:
            listener(new_state)

    def risk(self) -> RiskResult | None:
        return self._state.risk(self.policy)

    async def start(self) -> SessionState:
        """Initial resolution: ask the sensor unless manual mode is on."""
        if not self._state.manual_mode:
            await self.resolve_automatic()
        return self._state

    async def resolve_automatic(self) -> SessionState:
        self._set_state(begin_resolution(self._state))
        generation = self._state.generation

        coord = await self.resolver.resolve()
        if coord is None:
            # No data, not an error; previous results stay visible
            self._set_state(abort_resolution(self._state, generation))
            return self._state

        await self._acquire(generation, coord)
        return self._state

    async def submit_manual(self, lat_text: str, lon_text: str) -> bool:
        """Run the pipeline for typed coordinates. Invalid input is ignored silently."""
        coord = parse_manual_coordinate(lat_text, lon_text)
        if coord is None:
            logger.debug("Manual coordinates rejected", lat=lat_text, lon=lon_text)
            return False

        self._set_state(begin_resolution(self._state))
        await self._acquire(self._state.generation, coord)
        return True

    async def set_manual_mode(self, enabled: bool) -> SessionState:
        was_manual = self._state.manual_mode
        self._set_state(set_manual_mode(self._state, enabled))
        if was_manual and not enabled:
            await self.resolve_automatic()
        return self._state

    def set_tree_override(self, count: int | None) -> SessionState:
        self._set_state(set_tree_override(self._state, count))
        return self._state

    def set_tree_count_text(self, text: str) -> SessionState:
        return self.set_tree_override(parse_tree_count(text))

    def set_exposure(self, minutes: int) -> SessionState:
        self._set_state(set_exposure(self._state, minutes))
        return self._state

    def set_exposure_text(self, text: str) -> SessionState:
        return self.set_exposure(parse_exposure_minutes(text))

    async def _acquire(self, generation: int, coord: Coordinate) -> None:
        """Fetch weather, wind history and trees concurrently; apply only if still current."""
        skip_trees = self._state.tree_override is not None

        async def no_tree_lookup() -> None:
            return None

        weather, history, trees = await asyncio.gather(
            self.weather_client.fetch_current(coord),
            self.weather_client.fetch_wind_history(coord),
            no_tree_lookup() if skip_trees else self.tree_client.fetch(coord),
        )

        if generation != self._state.generation:
            logger.info(
                "Discarding stale response",
                generation=generation,
                latest=self._state.generation,
            )
            return

        self._set_state(
            apply_resolution(self._state, generation, coord, weather, trees, history)
        )

        result = self.risk()
        logger.info(
            "Resolution applied",
            generation=generation,
            coord=coord.display(),
            weather=weather.status,
            trees=trees.status if trees is not None else "override",
            probability=result.probability_percent if result else None,
            tier=result.tier if result else None,
        )
