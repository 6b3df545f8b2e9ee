"""Logging framework for symbv.
Provides structured, leveled logging with categories ("graph", "run",
"solver", "codegen"). Graph construction may run on several threads, so
emission is serialized by a lock.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Log levels for symbv."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3
    TRACE = 4


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    GRAY = "\033[90m"


def supports_color(stream: TextIO) -> bool:
    """Check if the stream supports ANSI colors."""
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    if os.environ.get("NO_COLOR"):
        return False
    if sys.platform == "win32":
        return bool(os.environ.get("TERM") or "ANSICON" in os.environ)
    return True


@dataclass
class LogEntry:
    """A log entry with metadata."""

    level: LogLevel
    message: str
    category: str = "general"
    timestamp: float = field(default_factory=time.time)
    thread: str = field(default_factory=lambda: threading.current_thread().name)
    context: dict[str, Any] = field(default_factory=dict)

    def format(self, color: bool = True, show_time: bool = True) -> str:
        """Format the log entry for display."""
        parts = []
        if show_time:
            stamp = time.strftime("%H:%M:%S", time.localtime(self.timestamp))
            parts.append(f"{Colors.GRAY}{stamp}{Colors.RESET}" if color else stamp)
        indicator = self._level_str(color)
        if indicator:
            parts.append(indicator)
        if self.category != "general":
            tag = f"[{self.category}]"
            parts.append(f"{Colors.CYAN}{tag}{Colors.RESET}" if color else tag)
        parts.append(self.message)
        if self.context:
            extras = " ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"{Colors.GRAY}{extras}{Colors.RESET}" if color else extras)
        return " ".join(parts)

    def _level_str(self, color: bool) -> str:
        indicators = {
            LogLevel.NORMAL: ("•", Colors.WHITE),
            LogLevel.VERBOSE: ("→", Colors.BLUE),
            LogLevel.DEBUG: ("⚙", Colors.MAGENTA),
            LogLevel.TRACE: ("⋯", Colors.GRAY),
        }
        char, col = indicators.get(self.level, ("", ""))
        if color and char:
            return f"{col}{char}{Colors.RESET}"
        return char


class SymbvLogger:
    """Main logger for symbv."""

    def __init__(
        self,
        level: LogLevel = LogLevel.NORMAL,
        color: bool = True,
        stream: TextIO | None = None,
        file_path: Path | None = None,
        max_entries: int = 10000,
    ):
        self.level = level
        self._stream = stream or sys.stderr
        self._color = color and supports_color(self._stream)
        self._lock = threading.RLock()
        self._file_handle: TextIO | None = None
        self._entries: list[LogEntry] = []
        self._max_entries = max_entries
        self._counters: dict[str, int] = {}
        if file_path is not None:
            self.open_file(file_path)

    def set_level(self, level: LogLevel) -> None:
        """Set the logging level."""
        self.level = level

    def enabled_for(self, level: LogLevel) -> bool:
        """Check if a message at this level would be logged."""
        return level <= self.level

    def _emit(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._max_entries:
                del self._entries[: len(self._entries) - self._max_entries]
            self._stream.write(entry.format(color=self._color) + "\n")
            self._stream.flush()
            if self._file_handle:
                self._file_handle.write(entry.format(color=False) + "\n")
                self._file_handle.flush()

    def log(
        self,
        level: LogLevel,
        message: str,
        category: str = "general",
        **context: Any,
    ) -> None:
        """Log a message at the specified level."""
        if not self.enabled_for(level):
            return
        self._emit(LogEntry(level=level, message=message, category=category, context=context))

    def info(self, message: str, **context: Any) -> None:
        self.log(LogLevel.NORMAL, message, **context)

    def verbose(self, message: str, **context: Any) -> None:
        self.log(LogLevel.VERBOSE, message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self.log(LogLevel.DEBUG, message, **context)

    def trace(self, message: str, **context: Any) -> None:
        self.log(LogLevel.TRACE, message, **context)

    def warning(self, message: str, category: str = "general") -> None:
        """Log a warning message (shown unless QUIET)."""
        if self.level == LogLevel.QUIET:
            return
        prefix = f"{Colors.YELLOW}⚠{Colors.RESET}" if self._color else "⚠"
        self._write_always(f"{prefix} {message}", LogLevel.NORMAL, category)

    def error(self, message: str, category: str = "general") -> None:
        """Log an error message (always shown)."""
        prefix = f"{Colors.RED}✗{Colors.RESET}" if self._color else "✗"
        self._write_always(f"{prefix} {message}", LogLevel.QUIET, category)

    def _write_always(self, text: str, level: LogLevel, category: str) -> None:
        with self._lock:
            self._entries.append(LogEntry(level=level, message=text, category=category))
            self._stream.write(text + "\n")
            self._stream.flush()
            if self._file_handle:
                self._file_handle.write(text + "\n")
                self._file_handle.flush()

    @contextmanager
    def timer(self, name: str, category: str = "timing"):
        """Context manager for timing operations."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.verbose(f"{name}: {elapsed:.3f}s", category=category)

    def count(self, name: str, increment: int = 1) -> int:
        """Increment a counter and return new value."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + increment
            return self._counters[name]

    def get_count(self, name: str) -> int:
        """Get current counter value."""
        with self._lock:
            return self._counters.get(name, 0)

    def get_entries(
        self,
        level: LogLevel | None = None,
        category: str | None = None,
    ) -> list[LogEntry]:
        """Get logged entries, optionally filtered."""
        with self._lock:
            entries = list(self._entries)
        if level is not None:
            entries = [e for e in entries if e.level == level]
        if category is not None:
            entries = [e for e in entries if e.category == category]
        return entries

    def open_file(self, path: Path) -> None:
        """Open a file for logging."""
        with self._lock:
            self._file_handle = open(path, "w", encoding="utf-8")

    def close(self) -> None:
        """Close any open file handles."""
        with self._lock:
            if self._file_handle:
                self._file_handle.close()
                self._file_handle = None


_logger: SymbvLogger | None = None
_logger_lock = threading.Lock()


def get_logger() -> SymbvLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        with _logger_lock:
            if _logger is None:
                _logger = SymbvLogger()
    return _logger


def set_logger(logger: SymbvLogger) -> None:
    """Set the global logger instance."""
    global _logger
    _logger = logger


def configure_logging(
    level: LogLevel = LogLevel.NORMAL,
    color: bool = True,
    file_path: Path | None = None,
    stream: TextIO | None = None,
) -> SymbvLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = SymbvLogger(level=level, color=color, stream=stream, file_path=file_path)
    return _logger


class PythonLoggingBridge(logging.Handler):
    """Bridge the stdlib "symbv" logger into the symbv logger."""

    def __init__(self, symbv_logger: SymbvLogger | None = None):
        super().__init__()
        self.symbv_logger = symbv_logger
        self._level_map = {
            logging.DEBUG: LogLevel.DEBUG,
            logging.INFO: LogLevel.NORMAL,
        }

    def emit(self, record: logging.LogRecord) -> None:
        target = self.symbv_logger or get_logger()
        message = self.format(record)
        if record.levelno >= logging.ERROR:
            target.error(message, category="python")
        elif record.levelno >= logging.WARNING:
            target.warning(message, category="python")
        else:
            level = self._level_map.get(record.levelno, LogLevel.DEBUG)
            target.log(level, message, category="python")


def setup_python_logging(level: int = logging.INFO) -> logging.Logger:
    """Route Python's "symbv" logger through the symbv logger."""
    logger = logging.getLogger("symbv")
    logger.setLevel(level)
    if not any(isinstance(h, PythonLoggingBridge) for h in logger.handlers):
        logger.addHandler(PythonLoggingBridge())
    return logger


__all__ = [
    "LogLevel",
    "LogEntry",
    "Colors",
    "SymbvLogger",
    "get_logger",
    "set_logger",
    "configure_logging",
    "PythonLoggingBridge",
    "setup_python_logging",
    "supports_color",
]
