"""Optional, thread-safe debug logging to a file."""

from __future__ import annotations

import inspect
import os
import threading
import time
from typing import TextIO

LOG_MESSAGE_LENGTH = 512
LOG_HEADER_LENGTH = 90

_lock = threading.Lock()
_log_file: TextIO | None = None


def initialize(log_filename: str) -> None:
    """Open *log_filename* for appending and turn debug output on.

    Raises OSError if the file cannot be opened.
    """
    global _log_file
    log_file = open(log_filename, "a", encoding="utf-8")
    with _lock:
        _log_file = log_file


def finalize() -> None:
    """Turn debug output off and close the log file."""
    global _log_file
    with _lock:
        log_file, _log_file = _log_file, None
    if log_file is not None:
        log_file.close()


def is_enabled() -> bool:
    """Return True while debug output is on."""
    return _log_file is not None


def _caller_location(depth: int) -> tuple[str, int]:
    frame = inspect.currentframe()
    try:
        for _ in range(depth + 1):
            if frame is None or frame.f_back is None:
                break
            frame = frame.f_back
        if frame is None:
            return "?", 0
        return os.path.basename(frame.f_code.co_filename), frame.f_lineno
    finally:
        del frame


def _header(filename: str, line: int) -> str:
    seconds, nanoseconds = divmod(time.time_ns(), 1_000_000_000)
    tm = time.localtime(seconds)
    header = (
        f"{tm.tm_year}/{tm.tm_mon:02d}/{tm.tm_mday:02d} "
        f"{tm.tm_hour:02d}:{tm.tm_min:02d}:{tm.tm_sec:02d}.{nanoseconds:06d} "
        f"{threading.get_ident()} {filename}:{line}"
    )
    return header[:LOG_HEADER_LENGTH]


def _emit(text: str, depth: int) -> None:
    if not is_enabled():
        return
    filename, line = _caller_location(depth + 1)
    with _lock:
        if _log_file is None:
            return
        header = _header(filename, line)
        _log_file.write(f"{header:<{LOG_HEADER_LENGTH}} {text[:LOG_MESSAGE_LENGTH]}\n")
        _log_file.flush()


def debug_print(message: str, *args: object) -> None:
    """Write a printf-style message with a timestamp and caller location."""
    if not is_enabled():
        return
    text = message % args if args else message
    _emit(text, 1)


def debug_perror(func: str, error: BaseException) -> None:
    """Log that *func* failed with *error*, describing it like strerror."""
    if not is_enabled():
        return
    errno_value = getattr(error, "errno", None)
    description = os.strerror(errno_value) if isinstance(errno_value, int) else str(error)
    _emit(f"{func} error: {description}", 1)