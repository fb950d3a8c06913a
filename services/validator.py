"""Coarse sanity gate applied to every parsed reading."""

from __future__ import annotations

import re

from models.records import Reading
from services.errors import ValidationError

_SENSOR_ID_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_.\-]{0,31}")


class Validator:
    """Rejects wire noise: malformed sensor ids and unrealistic values.

    The envelope is independent of any per-sensor operating range; that is
    the quality monitor's concern.
    """

    def __init__(self, min_value: float = 0.0, max_value: float = 1000.0) -> None:
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value.")
        self.min_value = min_value
        self.max_value = max_value

    def validate(self, reading: Reading) -> None:
        if not reading.sensor_id:
            raise ValidationError("sensor id is empty")
        if not _SENSOR_ID_PATTERN.fullmatch(reading.sensor_id):
            raise ValidationError(f"invalid sensor id {reading.sensor_id!r}")
        if not self.min_value <= reading.value <= self.max_value:
            raise ValidationError(
                f"value {reading.value:.2f} outside realistic range "
                f"[{self.min_value:g}, {self.max_value:g}]"
            )

    def accepts(self, reading: Reading) -> bool:
        try:
            self.validate(reading)
        except ValidationError:
            return False
        return True

