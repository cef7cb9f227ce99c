"""
steam_finder.py
Locate a game install inside the user's Steam libraries.

Steam keeps its library list in ``<steam root>/steamapps/libraryfolders.vdf``.
Each library holds games under ``steamapps/common/<GameFolder>``; a folder is
taken to be the game when it contains every one of the game's required files.

No UI, no game-specific knowledge.
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

from Utils.app_log import app_log

_VDF_FILENAME = "libraryfolders.vdf"
_VDF_PATH_RE = re.compile(r'"path"\s+"([^"]+)"')


def steam_roots() -> list[Path]:
    """Steam install folders to look in on this platform, most common first."""
    home = Path.home()
    if sys.platform == "win32":
        return [
            Path(os.environ.get("PROGRAMFILES(X86)", "C:/Program Files (x86)")) / "Steam",
            Path(os.environ.get("PROGRAMFILES", "C:/Program Files")) / "Steam",
        ]
    if sys.platform == "darwin":
        return [home / "Library" / "Application Support" / "Steam"]
    return [
        home / ".local" / "share" / "Steam",
        home / ".var" / "app" / "com.valvesoftware.Steam" / ".local" / "share" / "Steam",  # Flatpak
        home / "snap" / "steam" / "common" / ".local" / "share" / "Steam",                 # Snap
        home / ".steam" / "steam",
    ]


def find_steam_libraries(roots: list[Path] | None = None) -> list[Path]:
    """
    Existing ``steamapps/common`` folders named by every ``libraryfolders.vdf``
    under *roots* (default: :func:`steam_roots`), deduplicated.
    """
    seen: set[Path] = set()
    libraries: list[Path] = []
    for root in steam_roots() if roots is None else roots:
        vdf_path = root / "steamapps" / _VDF_FILENAME
        if not vdf_path.is_file():
            continue
        for common in parse_vdf_libraries(vdf_path):
            resolved = common.resolve()
            if resolved not in seen:
                seen.add(resolved)
                libraries.append(common)
    return libraries


def parse_vdf_libraries(vdf_path: Path) -> list[Path]:
    """
    Return the ``steamapps/common`` folder of every ``"path"`` entry in
    *vdf_path* that exists on disk.  Windows paths are stored with escaped
    backslashes (``"D:\\\\SteamLibrary"``).
    """
    try:
        text = vdf_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        app_log(f"Could not read {vdf_path}: {exc}", "warning")
        return []

    libraries: list[Path] = []
    for match in _VDF_PATH_RE.finditer(text):
        common = Path(match.group(1).replace("\\\\", "/")) / "steamapps" / "common"
        if common.is_dir():
            libraries.append(common)
    return libraries


def find_game_in_libraries(libraries: list[Path], required_files: list[str]) -> Path | None:
    """
    First ``steamapps/common/<GameFolder>`` holding all of *required_files*.

    Top-level names are compared case-insensitively (Proton installs often
    differ in case from the Windows spelling).
    """
    wanted = [f.lower() for f in required_files]
    for common in libraries:
        try:
            for game_dir in common.iterdir():
                if not game_dir.is_dir():
                    continue
                names = {entry.name.lower() for entry in game_dir.iterdir() if entry.is_file()}
                if all(w in names or (game_dir / w).is_file() for w in wanted):
                    return game_dir
        except PermissionError:
            continue
    return None


def find_steam_game(required_files: list[str]) -> Path | None:
    """Search every Steam library on this machine for a folder holding *required_files*."""
    game_dir = find_game_in_libraries(find_steam_libraries(), required_files)
    if game_dir is not None:
        app_log(f"Found Steam install: {game_dir}", "debug")
    return game_dir
