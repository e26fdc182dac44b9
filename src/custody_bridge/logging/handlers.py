"""Log handlers for the custody bridge."""

import sys
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from .core import LogEntry, LogHandler, LogLevel


class ConsoleHandler(LogHandler):
    """
    Console log handler.

    Without an explicit stream, entries go to whatever ``sys.stderr`` is at
    emit time.
    """

    def __init__(self, stream: Any = None):
        super().__init__()
        self._stream = stream
        self._closed = False

    @property
    def stream(self) -> Any:
        return self._stream if self._stream is not None else sys.stderr

    def emit(self, entry: LogEntry) -> None:
        with self._lock:
            if self._closed:
                return
            self.stream.write(self.format(entry) + "\n")
            self.stream.flush()

    def close(self) -> None:
        # Only streams handed to this handler are closed.
        with self._lock:
            if self._stream is not None and self._stream not in (sys.stdout, sys.stderr):
                self._stream.close()
            self._stream = None
            self._closed = True


class FileHandler(LogHandler):
    """Append formatted entries to a file."""

    def __init__(self, filename: str, mode: str = "a", encoding: str = "utf-8"):
        super().__init__()
        self.filename = filename
        self.mode = mode
        self.encoding = encoding
        self.stream = None

    def _open(self) -> None:
        if self.stream is None:
            self.stream = open(self.filename, self.mode, encoding=self.encoding)

    def emit(self, entry: LogEntry) -> None:
        with self._lock:
            self._open()
            self.stream.write(self.format(entry) + "\n")
            self.stream.flush()

    def close(self) -> None:
        with self._lock:
            if self.stream is not None:
                self.stream.close()
                self.stream = None


class MemoryHandler(LogHandler):
    """Keeps the most recent entries in memory."""

    def __init__(self, max_size: int = 1000):
        super().__init__()
        self.max_size = max_size
        self.entries: Deque[LogEntry] = deque(maxlen=max_size)

    def emit(self, entry: LogEntry) -> None:
        with self._lock:
            self.entries.append(entry)

    def get_logs(self, level: Optional[LogLevel] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                entry.to_dict()
                for entry in self.entries
                if level is None or entry.level == level
            ]

    def messages(self) -> List[str]:
        with self._lock:
            return [entry.message for entry in self.entries]

    def clear_logs(self) -> None:
        with self._lock:
            self.entries.clear()

    def close(self) -> None:
        self.clear_logs()
