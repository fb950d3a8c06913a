"""Serial transport used by the acquisition loops."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import serial

from services.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class ConnectionHandle:
    """An open connection and the transport-specific object behind it."""

    name: str
    raw: Any


class Transport(Protocol):
    def open(self, name: str, baud_rate: int) -> ConnectionHandle: ...

    def read_chunk(self, handle: ConnectionHandle, max_bytes: int) -> bytes: ...

    def close(self, handle: ConnectionHandle) -> None: ...


class SerialTransport:
    """pyserial-backed transport with fixed 8N1 framing.

    ``read_chunk`` blocks up to ``read_timeout`` seconds for the first byte and
    then drains whatever is already buffered; ``b""`` means nothing arrived.
    """

    def __init__(self, read_timeout: float = 1.0) -> None:
        self.read_timeout = read_timeout

    def open(self, name: str, baud_rate: int) -> ConnectionHandle:
        try:
            port = serial.Serial(
                name,
                baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.read_timeout,
            )
        except (serial.SerialException, ValueError) as exc:
            raise TransportError(name, f"unable to open serial port: {exc}") from exc
        logger.info(
            "Opened serial port",
            extra={"connection_id": name, "baud_rate": baud_rate},
        )
        return ConnectionHandle(name=name, raw=port)

    def read_chunk(self, handle: ConnectionHandle, max_bytes: int) -> bytes:
        port: serial.Serial = handle.raw
        try:
            first = port.read(1)
            if not first:
                return b""
            remaining = min(port.in_waiting, max_bytes - 1)
            if remaining <= 0:
                return first
            return first + port.read(remaining)
        except (serial.SerialException, OSError) as exc:
            raise TransportError(handle.name, f"failed to read: {exc}") from exc

    def close(self, handle: ConnectionHandle) -> None:
        port: serial.Serial = handle.raw
        try:
            port.close()
        except (serial.SerialException, OSError) as exc:
            raise TransportError(handle.name, f"failed to close: {exc}") from exc
