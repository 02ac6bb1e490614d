import dataclasses
from collections.abc import Iterable

from coconut_risk.models import WindHistorySample

HISTORY_CAPACITY = 5
MIDDAY_SUFFIX = "12:00"


@dataclasses.dataclass(frozen=True)
class HistoryTracker:
    """
    Sliding window of the most recent midday wind samples, oldest first.
    Feeds the trend display only; risk scoring never reads it.
    Every operation returns a new tracker.
    """

    samples: tuple[WindHistorySample, ...] = ()
    capacity: int = HISTORY_CAPACITY

    def __post_init__(self) -> None:
        if self.capacity < 0:
            raise ValueError("History capacity cannot be negative")
        if len(self.samples) > self.capacity:
            object.__setattr__(self, "samples", self._newest(self.samples))

    def _newest(self, samples: tuple[WindHistorySample, ...]) -> tuple[WindHistorySample, ...]:
        return samples[-self.capacity :] if self.capacity else ()

    def append(self, sample: WindHistorySample) -> "HistoryTracker":
        return dataclasses.replace(self, samples=self._newest(self.samples + (sample,)))

    def replace(self, samples: Iterable[WindHistorySample]) -> "HistoryTracker":
        """Swap in the samples of a new resolution; only the newest `capacity` survive."""
        return dataclasses.replace(self, samples=self._newest(tuple(samples)))

    def clear(self) -> "HistoryTracker":
        return dataclasses.replace(self, samples=())

    def speeds(self) -> list[float]:
        return [s.speed for s in self.samples]

    def __len__(self) -> int:
        return len(self.samples)
