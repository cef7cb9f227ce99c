"""
app_log.py
Global extension log - forwards messages to the host's log panel when set.

The host calls set_app_log(log_fn, after_fn) once the extension is loaded.
SMAPI/installer code calls app_log(msg, level) so messages appear in the
host's log.

Thread safety: when an after_fn is registered and app_log is called from a
background thread, messages are put on a queue and drained on the main thread
via a periodic after() callback.  Without an after_fn (headless hosts, tests)
every message is delivered immediately.
"""

from __future__ import annotations

import queue
import threading
from typing import Callable

_LEVEL_PREFIX = {
    "debug":   "[DEBUG] ",
    "info":    "",
    "warning": "[WARN] ",
    "error":   "[ERROR] ",
}

_log_fn: Callable[[str], None] | None = None
_after_fn: Callable | None = None
_main_thread_id: int | None = None
_log_queue: queue.Queue[str] = queue.Queue()


def _drain_log_queue() -> None:
    """Run on main thread: drain queued messages and log them. Reschedule to run again."""
    if _log_fn is None:
        return
    try:
        while True:
            msg = _log_queue.get_nowait()
            try:
                _log_fn(msg)
            except Exception:
                pass
    except queue.Empty:
        pass
    if _after_fn is not None:
        _after_fn(50, _drain_log_queue)


def set_app_log(log_fn: Callable[[str], None] | None,
                after_fn: Callable | None = None) -> None:
    """Register the host log function and, optionally, a main-thread runner.

    Pass ``None`` as *log_fn* to detach the sink again.
    """
    global _log_fn, _after_fn, _main_thread_id
    _log_fn = log_fn
    _after_fn = after_fn
    _main_thread_id = threading.current_thread().ident
    if log_fn is not None and after_fn is not None:
        after_fn(0, _drain_log_queue)


def format_message(message: str, level: str = "info") -> str:
    return _LEVEL_PREFIX.get(level, f"[{level.upper()}] ") + message


def app_log(message: str, level: str = "info") -> None:
    """Write a message to the host log (thread-safe). No-op if not set."""
    if _log_fn is None:
        return
    line = format_message(message, level)
    try:
        if _after_fn is None or threading.current_thread().ident == _main_thread_id:
            _log_fn(line)
        else:
            _log_queue.put_nowait(line)
    except Exception:
        pass
