"""Exceptions raised along the acquisition pipeline."""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for pipeline failures."""


class TransportError(MonitorError):
    """Opening, reading or closing a connection failed."""

    def __init__(self, connection_id: str, message: str) -> None:
        super().__init__(f"{connection_id}: {message}")
        self.connection_id = connection_id
        self.message = message


class ParseError(MonitorError):
    """A raw line did not match ``<sensorId> <value>``."""

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(f"{reason}: {raw!r}")
        self.raw = raw
        self.reason = reason


class ValidationError(MonitorError):
    """A parsed reading failed the sanity envelope."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class LogWriteError(MonitorError):
    """Appending a record to the durable log failed."""
