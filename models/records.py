"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple

LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SensorKey(NamedTuple):
    """Identifies one statistics bucket."""

    connection_id: str
    sensor_id: str

    def __str__(self) -> str:
        return f"{self.connection_id}/{self.sensor_id}"


@dataclass(frozen=True, slots=True)
class Reading:
    """A single decoded observation received on a connection."""

    connection_id: str
    sensor_id: str
    value: float
    timestamp: datetime

    @property
    def key(self) -> SensorKey:
        return SensorKey(self.connection_id, self.sensor_id)


@dataclass(frozen=True, slots=True)
class LogRecord:
    """On-disk shape of an accepted reading."""

    connection_id: str
    sensor_id: str
    value: float
    timestamp: datetime

    @classmethod
    def from_reading(cls, reading: Reading) -> "LogRecord":
        return cls(
            connection_id=reading.connection_id,
            sensor_id=reading.sensor_id,
            value=reading.value,
            timestamp=reading.timestamp,
        )

    def to_line(self, include_timestamp: bool = False) -> str:
        """Render the record as a single log line, without the newline.

        Fields are comma separated and never escaped. The value always carries
        two decimals; the timestamp column is only written when requested.
        """
        fields = [self.connection_id, self.sensor_id, f"{self.value:.2f}"]
        if include_timestamp:
            fields.append(self.timestamp.strftime(LOG_TIMESTAMP_FORMAT))
        return ",".join(fields)
