from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Iterable, List, Sequence, Union

import pytest

from services.errors import TransportError
from transport.serial_port import ConnectionHandle

FIXED_TIME = datetime(2024, 1, 1, 12, 30, 45, tzinfo=timezone.utc)

Step = Union[bytes, Exception]


class ScriptedTransport:
    """In-memory transport that replays scripted chunks per connection.

    Once a connection's script is exhausted the next read fails, which ends
    that connection's acquisition loop.
    """

    def __init__(
        self,
        scripts: Dict[str, Sequence[Step]],
        fail_open: Iterable[str] = (),
    ) -> None:
        self._scripts: Dict[str, List[Step]] = {name: list(steps) for name, steps in scripts.items()}
        self._fail_open = set(fail_open)
        self._lock = Lock()
        self.opened: List[tuple[str, int]] = []
        self.closed: List[str] = []

    def open(self, name: str, baud_rate: int) -> ConnectionHandle:
        if name in self._fail_open or name not in self._scripts:
            raise TransportError(name, "unable to open serial port")
        with self._lock:
            self.opened.append((name, baud_rate))
        return ConnectionHandle(name=name, raw=None)

    def read_chunk(self, handle: ConnectionHandle, max_bytes: int) -> bytes:
        with self._lock:
            steps = self._scripts[handle.name]
            step = steps.pop(0) if steps else TransportError(handle.name, "device disconnected")
        if isinstance(step, Exception):
            raise step
        return step

    def close(self, handle: ConnectionHandle) -> None:
        with self._lock:
            self.closed.append(handle.name)


@pytest.fixture()
def make_transport() -> Callable[..., ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_TIME
