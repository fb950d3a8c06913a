"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from services.events import DiagnosticEvent, DiagnosticKind
from services.monitor import Alert, StatisticsSnapshot


class HealthResponse(BaseModel):
    """Service status with the state of every configured connection."""

    status: str = "ok"
    connections: Dict[str, str] = Field(default_factory=dict)


class StatisticsEntry(BaseModel):
    """Running statistics for one ``(connection_id, sensor_id)`` key."""

    connection_id: str
    sensor_id: str
    count: int = Field(..., ge=0)
    total: float
    average: Optional[float] = None
    observed_min: Optional[float] = Field(
        default=None, description="Smallest accepted value, null before the first reading."
    )
    observed_max: Optional[float] = None
    lower_limit: float
    upper_limit: float

    @classmethod
    def from_snapshot(cls, snapshot: StatisticsSnapshot) -> "StatisticsEntry":
        return cls(
            connection_id=snapshot.key.connection_id,
            sensor_id=snapshot.key.sensor_id,
            count=snapshot.count,
            total=snapshot.total,
            average=snapshot.average,
            observed_min=_finite_or_none(snapshot.observed_min),
            observed_max=_finite_or_none(snapshot.observed_max),
            lower_limit=snapshot.lower_limit,
            upper_limit=snapshot.upper_limit,
        )


class AlertEntry(BaseModel):
    connection_id: str
    sensor_id: str
    value: float
    lower_limit: float
    upper_limit: float
    timestamp: datetime
    message: str

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertEntry":
        return cls(
            connection_id=alert.key.connection_id,
            sensor_id=alert.key.sensor_id,
            value=alert.value,
            lower_limit=alert.lower_limit,
            upper_limit=alert.upper_limit,
            timestamp=alert.timestamp,
            message=alert.describe(),
        )


class DiagnosticEntry(BaseModel):
    kind: DiagnosticKind
    connection_id: str
    payload: str
    reason: str
    occurred_at: datetime

    @classmethod
    def from_event(cls, event: DiagnosticEvent) -> "DiagnosticEntry":
        return cls(
            kind=event.kind,
            connection_id=event.connection_id,
            payload=event.payload,
            reason=event.reason,
            occurred_at=event.occurred_at,
        )


class DiagnosticsResponse(BaseModel):
    counts: Dict[str, int] = Field(default_factory=dict)
    recent: List[DiagnosticEntry] = Field(default_factory=list)


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None
