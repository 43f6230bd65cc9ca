"""Centralized structlog configuration for all Poly scripts."""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Optional, TextIO

import structlog

_configured = False

_shared_files: dict[Path, "AppendOnlyFile"] = {}
_shared_lock = threading.Lock()


class AppendOnlyFile:
    """Append handle flushed after every message, writes serialized by a lock.

    A closed handle is reopened on the next write.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._file = open(self.path, "a", encoding="utf-8")
        self._lock = threading.Lock()

    def write(self, message: str) -> int:
        with self._lock:
            if self._file.closed:
                self._file = open(self.path, "a", encoding="utf-8")
            self._file.write(message)
            self._file.flush()
        return len(message)

    def flush(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.flush()

    def close(self) -> None:
        with self._lock:
            self._file.close()


def shared_append_file(path: str | Path) -> AppendOnlyFile:
    """The process-wide writer for ``path``; every sink of one file shares it."""
    key = Path(path).resolve()
    with _shared_lock:
        handle = _shared_files.get(key)
        if handle is None:
            handle = _shared_files[key] = AppendOnlyFile(key)
        return handle


class TeeWriter:
    """File-like sink writing every line to stderr and an append-only file."""

    def __init__(self, path: str | Path, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stderr
        self._file = shared_append_file(path)
        self._lock = threading.Lock()

    def write(self, message: str) -> int:
        with self._lock:
            self._stream.write(message)
            self._stream.flush()
            self._file.write(message)
        return len(message)

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()
            self._file.flush()

    def close(self) -> None:
        self._file.close()


def configure_logging(history_path: Optional[str | Path] = None) -> None:
    """Configure structlog with the project-standard processor chain.

    When ``history_path`` is given, every rendered line is also appended to
    that file through the same writer ``HistoryLog`` uses, so lines from both
    never interleave. Safe to call multiple times; only the first call takes
    effect.
    """
    global _configured
    if _configured:
        return
    logger_factory = None
    renderer = structlog.dev.ConsoleRenderer()
    if history_path is not None:
        logger_factory = structlog.WriteLoggerFactory(file=TeeWriter(history_path))
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    kwargs = {"logger_factory": logger_factory} if logger_factory else {}
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        **kwargs,
    )
    _configured = True
