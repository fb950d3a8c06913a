"""Runs one acquisition loop per configured connection."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from threading import Event, Lock
from typing import Callable, Dict, Iterable, List, Optional

from services.acquisition import AcquisitionLoop, ConnectionState, LoopSummary
from services.events import EventRecorder
from services.monitor import LimitsConfig, QualityMonitor
from services.validator import Validator
from settings import Settings, get_settings
from storage.reading_log import ReadingLogWriter
from transport.serial_port import SerialTransport

logger = logging.getLogger(__name__)

LoopFactory = Callable[[str, Event], AcquisitionLoop]


@dataclass
class SupervisorReport:
    summaries: List[LoopSummary] = field(default_factory=list)

    @property
    def started(self) -> int:
        return sum(1 for summary in self.summaries if summary.connected)

    @property
    def exit_code(self) -> int:
        """0 when at least one connection ran, 1 when none could be opened."""
        return 0 if self.started else 1


class Supervisor:
    """Starts the loops, waits for all of them and collects their summaries.

    Connections are independent: a loop that fails to connect contributes no
    task, and a loop that terminates never affects the others.
    """

    def __init__(
        self,
        connection_names: Iterable[str],
        loop_factory: LoopFactory,
        monitor: QualityMonitor,
        recorder: EventRecorder,
    ) -> None:
        self.connection_names = tuple(connection_names)
        self.loop_factory = loop_factory
        self.monitor = monitor
        self.recorder = recorder
        self.cancel_event = Event()
        self.executor: Optional[ThreadPoolExecutor] = None
        self._loops: Dict[str, AcquisitionLoop] = {}
        self._futures: Dict[str, Future[LoopSummary]] = {}
        self._summaries: Dict[str, LoopSummary] = {}
        self._lock = Lock()

    def start(self) -> int:
        """Connect every configured name and submit the connected loops."""
        with self._lock:
            if self.executor is not None:
                raise RuntimeError("Supervisor already started.")
            self.executor = ThreadPoolExecutor(
                max_workers=max(1, len(self.connection_names)),
                thread_name_prefix="acquisition",
            )

        started = 0
        for name in self.connection_names:
            loop = self.loop_factory(name, self.cancel_event)
            with self._lock:
                self._loops[name] = loop
            if not loop.connect():
                with self._lock:
                    self._summaries[name] = loop.summary()
                continue
            future = self.executor.submit(loop.run)
            with self._lock:
                self._futures[name] = future
            started += 1

        logger.info(
            "Supervisor started %d of %d connections",
            started,
            len(self.connection_names),
        )
        return started

    def wait(self, timeout: Optional[float] = None) -> SupervisorReport:
        """Block until every submitted loop has terminated."""
        with self._lock:
            futures = dict(self._futures)
        wait(list(futures.values()), timeout=timeout)

        for name, future in futures.items():
            if not future.done():
                continue
            try:
                summary = future.result()
            except Exception as exc:  # noqa: BLE001 - one loop must not sink the rest
                logger.exception(
                    "Acquisition loop crashed",
                    extra={"connection_id": name},
                )
                summary = LoopSummary(connection_id=name, connected=True, error=str(exc))
            with self._lock:
                self._summaries[name] = summary

        with self._lock:
            ordered = [
                self._summaries[name]
                for name in self.connection_names
                if name in self._summaries
            ]
        return SupervisorReport(summaries=ordered)

    def run(self) -> SupervisorReport:
        self.start()
        try:
            return self.wait()
        finally:
            self.shutdown()

    def stop(self, timeout: Optional[float] = None) -> SupervisorReport:
        """Signal every loop to finish and wait for them."""
        self.cancel_event.set()
        report = self.wait(timeout=timeout)
        self.shutdown()
        return report

    def shutdown(self) -> None:
        with self._lock:
            executor = self.executor
        if executor is not None:
            executor.shutdown(wait=False)

    def connection_states(self) -> Dict[str, ConnectionState]:
        with self._lock:
            loops = dict(self._loops)
        return {
            name: loops[name].state if name in loops else ConnectionState.connecting
            for name in self.connection_names
        }


def build_supervisor(settings: Settings) -> Supervisor:
    """Wire a supervisor, its shared components and the serial transport."""
    transport = SerialTransport(read_timeout=settings.read_timeout)
    validator = Validator(min_value=settings.value_min, max_value=settings.value_max)
    monitor = QualityMonitor(
        limits=LimitsConfig(
            default=settings.default_limits,
            per_sensor=dict(settings.sensor_limits),
        )
    )
    log_writer = ReadingLogWriter(
        path=Path(settings.log_path),
        include_timestamp=settings.log_include_timestamp,
    )
    recorder = EventRecorder(history=settings.event_history)
    logger.info("Appending readings to log", extra={"log_path": settings.log_path})

    def loop_factory(name: str, cancel_event: Event) -> AcquisitionLoop:
        return AcquisitionLoop(
            name,
            transport,
            validator,
            monitor,
            log_writer,
            recorder,
            baud_rate=settings.baud_rate,
            poll_interval=settings.poll_interval,
            read_size=settings.read_size,
            cancel_event=cancel_event,
        )

    return Supervisor(
        connection_names=settings.ports,
        loop_factory=loop_factory,
        monitor=monitor,
        recorder=recorder,
    )


@lru_cache
def build_default_supervisor() -> Supervisor:
    """Factory that wires the supervisor from environment settings."""
    return build_supervisor(get_settings())
