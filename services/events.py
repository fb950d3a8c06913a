"""Structured diagnostics and alert reporting."""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Deque, Dict, List

from services.monitor import Alert

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    transport = "transport"
    parse = "parse"
    validation = "validation"
    log_write = "log_write"


_ERROR_KINDS = {DiagnosticKind.transport, DiagnosticKind.log_write}


@dataclass(frozen=True)
class DiagnosticEvent:
    """A pipeline failure, reported instead of raised."""

    kind: DiagnosticKind
    connection_id: str
    payload: str
    reason: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventRecorder:
    """Logs diagnostics and alerts and keeps a bounded recent history.

    Shared by every acquisition loop; all state is guarded by one lock.
    """

    def __init__(self, history: int = 100) -> None:
        self._diagnostics: Deque[DiagnosticEvent] = deque(maxlen=history)
        self._alerts: Deque[Alert] = deque(maxlen=history)
        self._counts: Counter[DiagnosticKind] = Counter()
        self._alert_count = 0
        self._lock = Lock()

    def report(self, event: DiagnosticEvent) -> None:
        level = logging.ERROR if event.kind in _ERROR_KINDS else logging.WARNING
        logger.log(
            level,
            "Pipeline failure: %s",
            event.reason,
            extra={
                "kind": event.kind.value,
                "connection_id": event.connection_id,
                "payload": event.payload,
            },
        )
        with self._lock:
            self._diagnostics.append(event)
            self._counts[event.kind] += 1

    def alert(self, alert: Alert) -> None:
        logger.warning(
            "[ALERT] %s",
            alert.describe(),
            extra={
                "connection_id": alert.key.connection_id,
                "sensor_id": alert.key.sensor_id,
                "value": alert.value,
                "lower_limit": alert.lower_limit,
                "upper_limit": alert.upper_limit,
            },
        )
        with self._lock:
            self._alerts.append(alert)
            self._alert_count += 1

    def diagnostic_counts(self) -> Dict[str, int]:
        with self._lock:
            return {kind.value: self._counts.get(kind, 0) for kind in DiagnosticKind}

    def alert_count(self) -> int:
        with self._lock:
            return self._alert_count

    def recent_diagnostics(self, limit: int | None = None) -> List[DiagnosticEvent]:
        with self._lock:
            events = list(self._diagnostics)
        return _tail(events, limit)

    def recent_alerts(self, limit: int | None = None) -> List[Alert]:
        with self._lock:
            alerts = list(self._alerts)
        return _tail(alerts, limit)


def _tail(items: list, limit: int | None) -> list:
    if limit is None:
        return items
    if limit <= 0:
        return []
    return items[-limit:]

