"""Per-connection read, parse, validate, monitor and log loop."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Event
from typing import Callable, Iterator, Optional

from models.records import LogRecord
from services.errors import LogWriteError, ParseError, TransportError, ValidationError
from services.events import DiagnosticEvent, DiagnosticKind, EventRecorder
from services.monitor import QualityMonitor
from services.parser import parse_line
from services.validator import Validator
from storage.reading_log import ReadingLogWriter
from transport.serial_port import ConnectionHandle, Transport

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ConnectionState(str, Enum):
    connecting = "connecting"
    running = "running"
    terminated = "terminated"


@dataclass
class LoopCounters:
    lines: int = 0
    accepted: int = 0
    parse_failures: int = 0
    validation_failures: int = 0
    log_failures: int = 0
    alerts: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class LoopSummary:
    """Outcome of one acquisition loop, available once it terminated."""

    connection_id: str
    connected: bool
    counters: LoopCounters = field(default_factory=LoopCounters)
    error: Optional[str] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AcquisitionLoop:
    """Drives one connection from ``connecting`` to ``terminated``.

    Lines are processed strictly in arrival order. Parse, validation and log
    failures are reported and skipped; a transport failure ends the loop. The
    connection handle and the pending line buffer are released on every exit
    path.
    """

    def __init__(
        self,
        connection_id: str,
        transport: Transport,
        validator: Validator,
        monitor: QualityMonitor,
        log_writer: ReadingLogWriter,
        recorder: EventRecorder,
        *,
        baud_rate: int = 9600,
        poll_interval: float = 1.0,
        read_size: int = 255,
        max_line_length: int = 1024,
        cancel_event: Optional[Event] = None,
        clock: Clock = _utc_now,
    ) -> None:
        self.connection_id = connection_id
        self.transport = transport
        self.validator = validator
        self.monitor = monitor
        self.log_writer = log_writer
        self.recorder = recorder
        self.baud_rate = baud_rate
        self.poll_interval = poll_interval
        self.read_size = read_size
        self.max_line_length = max_line_length
        self.cancel_event = cancel_event or Event()
        self.clock = clock
        self.counters = LoopCounters()
        self.state = ConnectionState.connecting
        self._handle: Optional[ConnectionHandle] = None
        self._pending = bytearray()
        self._error: Optional[str] = None
        self._connected = False
        self._discarding = False

    def connect(self) -> bool:
        """Open the connection; on failure the loop goes straight to terminated."""
        if self.state is not ConnectionState.connecting:
            return self._handle is not None
        try:
            self._handle = self.transport.open(self.connection_id, self.baud_rate)
        except TransportError as exc:
            self._report(DiagnosticKind.transport, "", exc.message)
            self._error = exc.message
            self.state = ConnectionState.terminated
            return False
        self._connected = True
        self.state = ConnectionState.running
        return True

    def run(self) -> LoopSummary:
        if self.state is ConnectionState.connecting and not self.connect():
            return self.summary()
        if self.state is ConnectionState.terminated:
            return self.summary()

        logger.info(
            "Acquisition loop running",
            extra={"connection_id": self.connection_id, "state": self.state.value},
        )
        try:
            self._read_until_stopped()
        finally:
            self._terminate()
        return self.summary()

    def summary(self) -> LoopSummary:
        return LoopSummary(
            connection_id=self.connection_id,
            connected=self._connected,
            counters=LoopCounters(**self.counters.to_dict()),
            error=self._error,
        )

    def process_line(self, line: str) -> None:
        """Run one captured line through parse, validate, monitor and log."""
        timestamp = self.clock()
        self.counters.lines += 1
        try:
            reading = parse_line(line, self.connection_id, timestamp)
        except ParseError as exc:
            self.counters.parse_failures += 1
            self._report(DiagnosticKind.parse, exc.raw, exc.reason)
            return

        try:
            self.validator.validate(reading)
        except ValidationError as exc:
            self.counters.validation_failures += 1
            self._report(DiagnosticKind.validation, line, exc.reason)
            return

        logger.debug(
            "Accepted reading",
            extra={
                "connection_id": reading.connection_id,
                "sensor_id": reading.sensor_id,
                "value": reading.value,
            },
        )
        self.counters.accepted += 1
        alert = self.monitor.update(reading)
        if alert is not None:
            self.counters.alerts += 1
            self.recorder.alert(alert)

        try:
            self.log_writer.append(LogRecord.from_reading(reading))
        except LogWriteError as exc:
            self.counters.log_failures += 1
            self._report(DiagnosticKind.log_write, line, str(exc))

    def _read_until_stopped(self) -> None:
        assert self._handle is not None
        while not self.cancel_event.is_set():
            try:
                chunk = self.transport.read_chunk(self._handle, self.read_size)
            except TransportError as exc:
                self._report(DiagnosticKind.transport, "", exc.message)
                self._error = exc.message
                return

            for line in self._split_lines(chunk):
                self.process_line(line)

            if self.cancel_event.wait(self.poll_interval):
                return

    def _split_lines(self, chunk: bytes) -> Iterator[str]:
        self._pending.extend(chunk)
        *complete, rest = self._pending.split(b"\n")
        self._pending = bytearray(rest)

        for raw in complete:
            if self._discarding:
                # tail of a line already reported as oversized
                self._discarding = False
                continue
            if len(raw) > self.max_line_length:
                self._drop_oversized(raw)
                continue
            text = raw.decode("utf-8", errors="replace").rstrip("\r")
            if text.strip():
                yield text

        if len(self._pending) > self.max_line_length:
            if not self._discarding:
                self._drop_oversized(self._pending)
            self._pending = bytearray()
            self._discarding = True

    def _drop_oversized(self, raw: bytes) -> None:
        self.counters.lines += 1
        self.counters.parse_failures += 1
        fragment = raw.decode("utf-8", errors="replace")
        self._report(DiagnosticKind.parse, fragment, "line exceeds maximum length")

    def _terminate(self) -> None:
        handle, self._handle = self._handle, None
        self._pending = bytearray()
        self._discarding = False
        self.state = ConnectionState.terminated
        if handle is not None:
            try:
                self.transport.close(handle)
            except TransportError as exc:
                self._report(DiagnosticKind.transport, "", exc.message)
        logger.info(
            "Acquisition loop terminated",
            extra={"connection_id": self.connection_id, "state": self.state.value},
        )

    def _report(self, kind: DiagnosticKind, payload: str, reason: str) -> None:
        self.recorder.report(
            DiagnosticEvent(
                kind=kind,
                connection_id=self.connection_id,
                payload=payload,
                reason=reason,
            )
        )
