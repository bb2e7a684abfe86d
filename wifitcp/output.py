"""Tab-separated result sinks: one file per sweep, echoed to the console."""

from __future__ import annotations

import csv
import sys
import threading
from pathlib import Path
from typing import List, Protocol, Sequence, TextIO

from .metrics import format_throughput
from .results import OutputRecord


def format_record(record: OutputRecord) -> List[str]:
    return [str(record.station_count), record.value, format_throughput(record.throughput)]


class RecordSink(Protocol):
    def write_header(self, header: Sequence[str]) -> None: ...

    def write_record(self, record: OutputRecord) -> None: ...

    def close(self) -> None: ...


class _TabularSink:
    def __init__(self, handle: TextIO) -> None:
        self._handle = handle
        self._writer = csv.writer(handle, delimiter="\t", lineterminator="\n")
        self._lock = threading.Lock()

    def write_header(self, header: Sequence[str]) -> None:
        self._write(list(header))

    def write_record(self, record: OutputRecord) -> None:
        self._write(format_record(record))

    def _write(self, row: List[str]) -> None:
        with self._lock:
            self._writer.writerow(row)
            self._handle.flush()

    def close(self) -> None:
        pass


class TabularFileSink(_TabularSink):
    """Writes to ``path``, truncating it; every row is flushed as soon as it is written."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        if self.path.parent != Path("."):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(self.path.open("w", newline=""))

    def close(self) -> None:
        with self._lock:
            if not self._handle.closed:
                self._handle.close()


class ConsoleSink(_TabularSink):
    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream if stream is not None else sys.stdout)
