from __future__ import annotations

from datetime import datetime

import pytest

from models.records import Reading
from services.errors import ValidationError
from services.validator import Validator


def _reading(sensor_id: str, value: float) -> Reading:
    return Reading(connection_id="COM3", sensor_id=sensor_id, value=value, timestamp=datetime(2024, 1, 1))


@pytest.mark.parametrize("value", [0.0, 0.01, 25.0, 999.99, 1000.0])
def test_validator_accepts_values_inside_envelope(value: float) -> None:
    assert Validator().accepts(_reading("TEMP", value))


@pytest.mark.parametrize("value", [-0.01, -5.0, 1000.01, 1e9])
def test_validator_rejects_values_outside_envelope(value: float) -> None:
    validator = Validator()

    assert not validator.accepts(_reading("TEMP", value))
    with pytest.raises(ValidationError, match="outside realistic range"):
        validator.validate(_reading("TEMP", value))


@pytest.mark.parametrize("sensor_id", ["", "-5", "1TEMP", "TE MP", "X" * 33])
def test_validator_rejects_malformed_sensor_ids(sensor_id: str) -> None:
    assert not Validator().accepts(_reading(sensor_id, 10.0))


def test_validator_reports_empty_sensor_id() -> None:
    with pytest.raises(ValidationError) as excinfo:
        Validator().validate(_reading("", 10.0))

    assert excinfo.value.reason == "sensor id is empty"


def test_validator_honours_custom_envelope() -> None:
    validator = Validator(min_value=-40.0, max_value=125.0)

    assert validator.accepts(_reading("TEMP", -12.5))
    assert not validator.accepts(_reading("TEMP", 130.0))


def test_validator_requires_ordered_envelope() -> None:
    with pytest.raises(ValueError):
        Validator(min_value=10.0, max_value=1.0)
