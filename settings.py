from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional, Tuple


_PORTS_ENV = "SENSOR_PORTS"
_BAUD_RATE_ENV = "SENSOR_BAUD_RATE"
_POLL_INTERVAL_ENV = "SENSOR_POLL_INTERVAL"
_READ_SIZE_ENV = "SENSOR_READ_SIZE"
_READ_TIMEOUT_ENV = "SENSOR_READ_TIMEOUT"
_LOG_PATH_ENV = "SENSOR_LOG_PATH"
_LOG_TIMESTAMP_ENV = "SENSOR_LOG_INCLUDE_TIMESTAMP"
_VALUE_MIN_ENV = "SENSOR_VALUE_MIN"
_VALUE_MAX_ENV = "SENSOR_VALUE_MAX"
_DEFAULT_LIMITS_ENV = "SENSOR_DEFAULT_LIMITS"
_SENSOR_LIMITS_ENV = "SENSOR_LIMITS"
_EVENT_HISTORY_ENV = "SENSOR_EVENT_HISTORY"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

Limits = Tuple[float, float]


@dataclass(frozen=True)
class Settings:
    ports: Tuple[str, ...]
    baud_rate: int
    poll_interval: float
    read_size: int
    read_timeout: float
    log_path: str
    log_include_timestamp: bool
    value_min: float
    value_max: float
    default_limits: Limits
    sensor_limits: Dict[str, Limits] = field(default_factory=dict)
    event_history: int = 100
    log_level: str = "INFO"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float, *, positive: bool = False) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if positive and parsed <= 0:
        return default
    return parsed


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_ports(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_PORTS_ENV)
    if value is None:
        return default
    ports = tuple(part.strip() for part in value.split(",") if part.strip())
    return ports or default


def parse_limits(text: str) -> Optional[Limits]:
    """Parse ``"lower:upper"`` into a finite limits pair, or ``None`` when malformed."""
    lower_raw, sep, upper_raw = text.partition(":")
    if not sep:
        return None
    try:
        lower = float(lower_raw.strip())
        upper = float(upper_raw.strip())
    except ValueError:
        return None
    if not (math.isfinite(lower) and math.isfinite(upper)) or lower > upper:
        return None
    return lower, upper


def _read_default_limits(default: Limits) -> Limits:
    value = os.getenv(_DEFAULT_LIMITS_ENV)
    if value is None or not value.strip():
        return default
    return parse_limits(value) or default


def _read_sensor_limits() -> Dict[str, Limits]:
    value = os.getenv(_SENSOR_LIMITS_ENV)
    if value is None:
        return {}
    limits: Dict[str, Limits] = {}
    for entry in value.split(","):
        sensor_id, sep, pair = entry.partition("=")
        sensor_id = sensor_id.strip()
        if not sep or not sensor_id:
            continue
        parsed = parse_limits(pair)
        if parsed is not None:
            limits[sensor_id] = parsed
    return limits


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    value_min = _read_float(_VALUE_MIN_ENV, 0.0)
    value_max = _read_float(_VALUE_MAX_ENV, 1000.0)
    if value_min > value_max:
        value_min, value_max = 0.0, 1000.0
    return Settings(
        ports=_read_ports(("COM3", "COM4", "COM5")),
        baud_rate=_read_positive_int(_BAUD_RATE_ENV, 9600),
        poll_interval=_read_float(_POLL_INTERVAL_ENV, 1.0, positive=True),
        read_size=_read_positive_int(_READ_SIZE_ENV, 255),
        read_timeout=_read_float(_READ_TIMEOUT_ENV, 1.0, positive=True),
        log_path=_read_str_env(_LOG_PATH_ENV, "sensor_data.csv"),
        log_include_timestamp=_read_bool(_LOG_TIMESTAMP_ENV, False),
        value_min=value_min,
        value_max=value_max,
        default_limits=_read_default_limits((5.0, 25.0)),
        sensor_limits=_read_sensor_limits(),
        event_history=_read_positive_int(_EVENT_HISTORY_ENV, 100),
        log_level=_read_log_level("INFO"),
    )
