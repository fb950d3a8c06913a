"""Decoding of ``<sensorId> <value>`` lines into readings."""

from __future__ import annotations

import math
from datetime import datetime

from models.records import Reading
from services.errors import ParseError


def parse_line(line: str, connection_id: str, timestamp: datetime) -> Reading:
    """Decode one raw line received on ``connection_id``.

    The caller supplies ``timestamp`` at the moment the line was captured.
    Only syntax is checked here; sensor semantics belong to the validator and
    the quality monitor.
    """
    tokens = line.split()
    if not tokens:
        raise ParseError(line, "empty line")
    if len(tokens) == 1:
        raise ParseError(line, "missing value")
    if len(tokens) > 2:
        raise ParseError(line, "unexpected trailing tokens")

    sensor_id, value_raw = tokens
    try:
        value = float(value_raw)
    except ValueError as exc:
        raise ParseError(line, "invalid numeric value") from exc
    if not math.isfinite(value):
        raise ParseError(line, "non-finite value")

    return Reading(
        connection_id=connection_id,
        sensor_id=sensor_id,
        value=value,
        timestamp=timestamp,
    )
