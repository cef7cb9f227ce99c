"""
smapi_log.py
Locate and export SMAPI's log files.

SMAPI writes ``SMAPI-latest.txt`` on every run and ``SMAPI-crash.txt`` when
the game crashed; the crash log is the interesting one when it exists.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path

from Utils.app_log import app_log

LOG_SHARE_URL = "https://smapi.io/log"
CRASH_LOG = "SMAPI-crash.txt"
LATEST_LOG = "SMAPI-latest.txt"


def get_error_logs_dir() -> Path:
    """Stardew Valley's ErrorLogs folder for the current platform."""
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "StardewValley" / "ErrorLogs"


def find_smapi_log(error_logs_dir: Path | None = None) -> Path | None:
    logs = error_logs_dir or get_error_logs_dir()
    for name in (CRASH_LOG, LATEST_LOG):
        candidate = logs / name
        if candidate.is_file():
            return candidate
    return None


def read_smapi_log(error_logs_dir: Path | None = None) -> tuple[str, str] | None:
    """Return ``(file name, contents)`` of the most relevant SMAPI log, or None."""
    path = find_smapi_log(error_logs_dir)
    if path is None:
        app_log("No SMAPI logs found.")
        return None
    try:
        return path.name, path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        app_log(f"Could not read SMAPI log {path}: {exc}", "error")
        return None


def build_shared_log(log_text: str, app_version: str,
                     now: datetime | None = None) -> str:
    """Prefix the export banner expected when pasting into smapi.io/log."""
    timestamp = (now or datetime.now()).strftime("%H:%M:%S")
    return (f"[{timestamp} INFO AmethystModManager] Log exported by "
            f"AmethystModManager {app_version}.\n{log_text}")
