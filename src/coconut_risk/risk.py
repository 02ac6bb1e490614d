"""
Risk estimation: turns weather, tree density and exposure into a hit probability.

Two scoring policies are available. PowerLawPolicy is the default; LinearWindPolicy
is kept selectable through settings.scoring_policy.
"""

import random
from abc import ABC, abstractmethod
from collections.abc import Callable

from coconut_risk.models import (
    DangerTier,
    ExposureConfig,
    RiskResult,
    TreeDensity,
    WeatherSnapshot,
)

DANGER_THRESHOLD = 70.0
WARNING_THRESHOLD = 40.0
FIND_COVER_THRESHOLD = 50.0


class ScoringPolicy(ABC):
    """Abstract base for scoring formulas. Returns an unclamped probability."""

    name: str = "abstract"

    @abstractmethod
    def score(self, weather: WeatherSnapshot, trees: TreeDensity, minutes_per_day: int) -> float:
        pass


class PowerLawPolicy(ScoringPolicy):
    """
    base = 10 + wind^1.5 * 2.5, scaled by weather multipliers,
    then by trees / 15 and minutes / 120.
    """

    name = "power_law"

    RAIN_FACTOR = 1.3
    STORM_FACTOR = 3.0
    HEAT_FACTOR = 1.1
    DRY_FACTOR = 0.8
    HEAT_THRESHOLD_C = 30.0
    DRY_THRESHOLD_PERCENT = 40.0

    def score(self, weather: WeatherSnapshot, trees: TreeDensity, minutes_per_day: int) -> float:
        assert weather.wind_speed is not None
        base = 10 + weather.wind_speed**1.5 * 2.5

        if weather.rain is not None and weather.rain > 0:
            base *= self.RAIN_FACTOR
        if weather.is_stormy:
            base *= self.STORM_FACTOR
        if weather.temperature is not None and weather.temperature > self.HEAT_THRESHOLD_C:
            base *= self.HEAT_FACTOR
        if weather.humidity is not None and weather.humidity < self.DRY_THRESHOLD_PERCENT:
            base *= self.DRY_FACTOR

        return base * (trees.count / 15) * (minutes_per_day / 120)


class LinearWindPolicy(ScoringPolicy):
    """
    base = 10 + wind * 2 (+ jitter * 5), scaled by 5 * trees / 20 * minutes / 1440.

    jitter must return a value in [0, 1). It defaults to zero so the formula stays
    deterministic; pass random.random for the visual variety of the old calculator.
    """

    name = "linear"

    def __init__(self, jitter: Callable[[], float] | None = None) -> None:
        self.jitter = jitter or (lambda: 0.0)

    def score(self, weather: WeatherSnapshot, trees: TreeDensity, minutes_per_day: int) -> float:
        assert weather.wind_speed is not None
        noise = min(max(self.jitter(), 0.0), 1.0) * 5
        base = 10 + weather.wind_speed * 2 + noise
        return base * 5 * (trees.count / 20) * (minutes_per_day / 1440)


def danger_tier(probability: float) -> DangerTier:
    if probability > DANGER_THRESHOLD:
        return DangerTier.DANGER
    if probability > WARNING_THRESHOLD:
        return DangerTier.WARNING
    return DangerTier.SAFE


def estimate_risk(
    weather: WeatherSnapshot | None,
    trees: TreeDensity | None,
    exposure: ExposureConfig,
    policy: ScoringPolicy | None = None,
) -> RiskResult | None:
    """
    Compute the hit probability and its danger tier.

    Returns None when weather or tree density is missing, or when the weather
    snapshot carries no wind speed. A missing input is "no result", not zero risk.
    """
    if weather is None or trees is None or weather.wind_speed is None:
        return None

    policy = policy or PowerLawPolicy()
    raw = policy.score(weather, trees, exposure.minutes_per_day)
    probability = round(min(100.0, max(0.0, raw)), 1)
    return RiskResult(probability_percent=probability, tier=danger_tier(probability))


def verdict(result: RiskResult) -> str:
    """Short advice line shown next to the probability."""
    if result.probability_percent > FIND_COVER_THRESHOLD:
        return "Find cover!"
    return "You're probably safe... for now."


def build_policy(name: str, jitter: bool = False) -> ScoringPolicy:
    if name == LinearWindPolicy.name:
        return LinearWindPolicy(jitter=random.random if jitter else None)
    if name == PowerLawPolicy.name:
        return PowerLawPolicy()
    raise ValueError(f"Unknown scoring policy: {name}")
