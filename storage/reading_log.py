from __future__ import annotations

import os
from pathlib import Path
from threading import Lock

from models.records import LogRecord
from services.errors import LogWriteError


class ReadingLogWriter:
    """Append-only CSV log shared by every acquisition loop.

    Each append is written, flushed and synced under the lock before it
    returns, so a line is either fully on disk or reported as failed.
    """

    def __init__(self, path: Path, include_timestamp: bool = False) -> None:
        self.path = path
        self.include_timestamp = include_timestamp
        self.written = 0
        self.failed = 0
        self._lock = Lock()

    def append(self, record: LogRecord) -> None:
        line = record.to_line(include_timestamp=self.include_timestamp) + "\n"
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8", newline="") as handle:
                    handle.write(line)
                    handle.flush()
                    os.fsync(handle.fileno())
            except OSError as exc:
                self.failed += 1
                raise LogWriteError(f"Unable to append to {self.path}: {exc}") from exc
            self.written += 1

    def read_lines(self) -> list[str]:
        """Return the log contents, one entry per record."""
        with self._lock:
            if not self.path.exists():
                return []
            return self.path.read_text(encoding="utf-8").splitlines()

