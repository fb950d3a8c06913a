"""Running per-sensor statistics and range alerting."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Dict, Mapping, Optional, Tuple

from models.records import Reading, SensorKey

logger = logging.getLogger(__name__)

DEFAULT_LIMITS: Tuple[float, float] = (5.0, 25.0)


@dataclass(frozen=True)
class LimitsConfig:
    """Acceptable operating range per sensor id, with a fallback."""

    default: Tuple[float, float] = DEFAULT_LIMITS
    per_sensor: Mapping[str, Tuple[float, float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, (lower, upper) in [("default", self.default), *self.per_sensor.items()]:
            if lower > upper:
                raise ValueError(f"Lower limit exceeds upper limit for {name!r}.")

    def for_sensor(self, sensor_id: str) -> Tuple[float, float]:
        return self.per_sensor.get(sensor_id, self.default)


@dataclass
class SensorStatistics:
    lower_limit: float
    upper_limit: float
    total: float = 0.0
    count: int = 0
    observed_max: float = -math.inf
    observed_min: float = math.inf

    @property
    def average(self) -> Optional[float]:
        if self.count == 0:
            return None
        return self.total / self.count


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Point-in-time copy of one statistics entry."""

    key: SensorKey
    lower_limit: float
    upper_limit: float
    total: float
    count: int
    observed_max: float
    observed_min: float
    average: Optional[float]


@dataclass(frozen=True)
class Alert:
    """Advisory event for a reading outside its key's limits."""

    key: SensorKey
    value: float
    lower_limit: float
    upper_limit: float
    timestamp: datetime

    def describe(self) -> str:
        return (
            f"{self.key.sensor_id} out of range on {self.key.connection_id}! "
            f"Value: {self.value:.2f} (Limits: {self.lower_limit:.2f} - {self.upper_limit:.2f})"
        )


class QualityMonitor:
    """Stateful aggregator shared by every acquisition loop.

    A single lock guards the whole table.
    """

    def __init__(self, limits: Optional[LimitsConfig] = None) -> None:
        self.limits = limits or LimitsConfig()
        self._stats: Dict[SensorKey, SensorStatistics] = {}
        self._lock = Lock()

    def update(self, reading: Reading) -> Optional[Alert]:
        key = reading.key
        value = reading.value
        with self._lock:
            stats = self._stats.get(key)
            if stats is None:
                lower, upper = self.limits.for_sensor(reading.sensor_id)
                stats = SensorStatistics(lower_limit=lower, upper_limit=upper)
                self._stats[key] = stats
                logger.debug(
                    "Tracking new sensor",
                    extra={
                        "connection_id": key.connection_id,
                        "sensor_id": key.sensor_id,
                        "lower_limit": lower,
                        "upper_limit": upper,
                    },
                )

            stats.count += 1
            stats.total += value
            if value > stats.observed_max:
                stats.observed_max = value
            if value < stats.observed_min:
                stats.observed_min = value
            lower, upper = stats.lower_limit, stats.upper_limit

        if value < lower or value > upper:
            return Alert(
                key=key,
                value=value,
                lower_limit=lower,
                upper_limit=upper,
                timestamp=reading.timestamp,
            )
        return None

    def statistics(self, key: SensorKey) -> Optional[StatisticsSnapshot]:
        with self._lock:
            stats = self._stats.get(key)
            if stats is None:
                return None
            return _snapshot(key, stats)

    def snapshot(self) -> list[StatisticsSnapshot]:
        with self._lock:
            entries = [_snapshot(key, stats) for key, stats in self._stats.items()]
        return sorted(entries, key=lambda entry: entry.key)


def _snapshot(key: SensorKey, stats: SensorStatistics) -> StatisticsSnapshot:
    return StatisticsSnapshot(
        key=key,
        lower_limit=stats.lower_limit,
        upper_limit=stats.upper_limit,
        total=stats.total,
        count=stats.count,
        observed_max=stats.observed_max,
        observed_min=stats.observed_min,
        average=stats.average,
    )

