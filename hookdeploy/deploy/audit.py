"""Append-only deploy audit log."""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, TextIO

from hookdeploy.utils.logging import get_logger

log = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class AuditLog:
    """Line-oriented ``[YYYY-MM-DD HH:MM:SS] message`` log file.

    Each entry is written with a single write call under a lock, so entries
    from concurrent deploys never interleave mid-line. Coroutines use
    ``write()``, which does the file I/O in a worker thread so a slow disk
    does not stall the event loop.
    """

    def __init__(self, path: Path, clock: Callable[[], datetime] = datetime.now) -> None:
        self._path = path
        self._clock = clock
        self._lock = threading.Lock()
        self._file: TextIO | None = None

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        with self._lock:
            if self._file is not None:
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "a", encoding="utf-8")

    def close(self) -> None:
        with self._lock:
            if self._file is None:
                return
            self._file.close()
            self._file = None

    async def write(self, message: str) -> None:
        await asyncio.to_thread(self.append, message)

    def append(self, message: str) -> None:
        """Write one entry. A message that already ends in a newline is kept as is."""
        entry = f"[{self._clock().strftime(TIMESTAMP_FORMAT)}] {message}"
        if not entry.endswith("\n"):
            entry += "\n"
        with self._lock:
            if self._file is None:
                log.warning("audit_log_closed", path=str(self._path))
                return
            try:
                self._file.write(entry)
                self._file.flush()
            except OSError:
                log.exception("audit_log_write_error", path=str(self._path))
