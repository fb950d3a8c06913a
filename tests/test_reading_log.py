from __future__ import annotations

import re
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from models.records import LogRecord
from services.errors import LogWriteError
from storage.reading_log import ReadingLogWriter


def _record(connection_id: str = "COM3", sensor_id: str = "TEMP", value: float = 30.0) -> LogRecord:
    return LogRecord(
        connection_id=connection_id,
        sensor_id=sensor_id,
        value=value,
        timestamp=datetime(2024, 1, 1, 8, 5, 9, tzinfo=timezone.utc),
    )


def test_append_creates_log_without_header(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "sensor_data.csv"
    writer = ReadingLogWriter(path=path)

    writer.append(_record())

    assert path.read_bytes() == b"COM3,TEMP,30.00\n"
    assert writer.written == 1


def test_append_preserves_existing_lines(tmp_path: Path) -> None:
    path = tmp_path / "sensor_data.csv"
    path.write_text("COM4,PH,7.10\n", encoding="utf-8")
    writer = ReadingLogWriter(path=path)

    writer.append(_record(value=4.567))

    assert writer.read_lines() == ["COM4,PH,7.10", "COM3,TEMP,4.57"]


def test_append_with_timestamp_column(tmp_path: Path) -> None:
    path = tmp_path / "sensor_data.csv"
    writer = ReadingLogWriter(path=path, include_timestamp=True)

    writer.append(_record())

    assert writer.read_lines() == ["COM3,TEMP,30.00,2024-01-01 08:05:09"]


def test_append_failure_raises_log_write_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    writer = ReadingLogWriter(path=blocker / "sensor_data.csv")

    with pytest.raises(LogWriteError):
        writer.append(_record())

    assert writer.failed == 1
    assert writer.written == 0


def test_read_lines_of_missing_log_is_empty(tmp_path: Path) -> None:
    assert ReadingLogWriter(path=tmp_path / "missing.csv").read_lines() == []


def test_concurrent_appends_are_whole_and_lossless(tmp_path: Path) -> None:
    path = tmp_path / "sensor_data.csv"
    writer = ReadingLogWriter(path=path)
    threads_count = 8
    per_thread = 50
    barrier = threading.Barrier(threads_count)

    def worker(index: int) -> None:
        barrier.wait(timeout=5)
        for sequence in range(per_thread):
            writer.append(_record(connection_id=f"COM{index}", sensor_id="TEMP", value=float(sequence)))

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    lines = writer.read_lines()
    assert len(lines) == threads_count * per_thread
    pattern = re.compile(r"COM\d,TEMP,\d+\.00")
    assert all(pattern.fullmatch(line) for line in lines)
    expected = {f"COM{index},TEMP,{sequence}.00" for index in range(threads_count) for sequence in range(per_thread)}
    assert set(lines) == expected
