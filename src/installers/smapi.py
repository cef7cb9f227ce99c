"""
smapi.py
Installs SMAPI itself as a mod.

The SMAPI download is an installer, not a mod: the real payload is a
platform-specific ``install.dat`` (a zip) under ``internal/<platform>/``.
The installer:
  1. Finds the data file for the current platform
  2. Extracts it into the staging folder
  3. Copies every extracted file to the game root (next to the game exe)
  4. Records the mods SMAPI bundles (ConsoleCommands, SaveBackup, ...) so
     files SMAPI creates inside them can be attributed back to it
  5. Generates ``StardewModdingAPI.deps.json`` from the game's deps file
"""

from __future__ import annotations

import os
import sys
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import py7zr

from SMAPI.constants import GAME_ID, SMAPI_EXE
from installers.instructions import (
    InstallInstruction,
    InstallResult,
    ModInstallError,
    SupportedResult,
    basename,
    normalise_path,
)
from Utils.app_log import app_log

SMAPI_DLL = "SMAPI.Installer.dll"
SMAPI_DATA = ("windows-install.dat", "install.dat")
SMAPI_BUNDLED_MODS = ("ErrorHandler", "ConsoleCommands", "SaveBackup")
BUNDLED_MODS_ATTRIBUTE = "smapiBundledMods"
GAME_DEPS_FILE = "Stardew Valley.deps.json"
SMAPI_DEPS_FILE = "StardewModdingAPI.deps.json"


def default_bundled_mods() -> list[str]:
    """SMAPI's known bundled mod folders, lowercased."""
    return list(dict.fromkeys(name.lower() for name in SMAPI_BUNDLED_MODS))


def platform_folder(platform: str | None = None) -> str:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return "windows"
    if platform.startswith("linux"):
        return "linux"
    return "macos"


def test_smapi(files: list[str], game_id: str) -> SupportedResult:
    """Supported when the archive contains SMAPI's installer DLL."""
    supported = game_id == GAME_ID and any(basename(normalise_path(f)) == SMAPI_DLL for f in files)
    return SupportedResult(supported)


def find_data_file(files: list[str], platform: str | None = None) -> str | None:
    folder = platform_folder(platform)
    for f in files:
        segments = [s.lower() for s in normalise_path(f).split("/")]
        if folder in segments and segments[-1] in SMAPI_DATA:
            return f
    return None


def _extract_archive(archive: Path, dest: Path) -> None:
    if zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive, "r") as zf:
            zf.extractall(dest)
    elif py7zr.is_7zfile(archive):
        with py7zr.SevenZipFile(archive, "r") as zf:
            zf.extractall(dest)
    else:
        raise ModInstallError(f"Unsupported SMAPI data archive format: {archive.name}")


@dataclass
class ExtractedSMAPI:
    """What the data archive added to the staging folder."""
    files: list[str] = field(default_factory=list)
    bundled_mods: list[str] = field(default_factory=list)


def extract_smapi_data(data_file: Path, destination: Path,
                       original_files: list[str]) -> ExtractedSMAPI:
    """Extract *data_file* into *destination* and list the new files and bundled mods."""
    try:
        _extract_archive(data_file, destination)
    except (zipfile.BadZipFile, py7zr.Bad7zFile, OSError) as exc:
        raise ModInstallError(
            f"Failed to extract the SMAPI data files ({exc}) - download appears "
            "to be corrupted; please re-download SMAPI and try again") from exc

    known = set(original_files)
    result = ExtractedSMAPI(bundled_mods=default_bundled_mods())
    for root, _dirs, names in os.walk(destination):
        for name in names:
            rel = Path(root, name).relative_to(destination).as_posix()
            if rel not in known and f"{rel}/" not in known:
                result.files.append(rel)
            segments = rel.lower().split("/")
            if "mods" in segments:
                idx = segments.index("mods")
                if len(segments) > idx + 2 and segments[idx + 1] not in result.bundled_mods:
                    result.bundled_mods.append(segments[idx + 1])
    result.files.sort()
    return result


def install_smapi(get_discovery_path: Callable[[], str | Path | None],
                  files: list[str],
                  destination_path: str | Path,
                  platform: str | None = None) -> InstallResult:
    """Build instructions installing SMAPI from the extracted download at *destination_path*."""
    destination = Path(destination_path)
    files = [normalise_path(f) for f in files]

    data_file = find_data_file(files, platform)
    if data_file is None:
        raise ModInstallError(
            "Failed to find the SMAPI data files - download appears "
            "to be corrupted; please re-download SMAPI and try again")

    deps_data = ""
    game_path = get_discovery_path()
    if game_path is None:
        app_log("Stardew Valley game path is unknown; cannot copy "
                f"{GAME_DEPS_FILE}", "error")
    else:
        try:
            deps_data = (Path(game_path) / GAME_DEPS_FILE).read_text(encoding="utf-8")
        except OSError as exc:
            app_log(f"Failed to read {GAME_DEPS_FILE}: {exc}", "error")

    extracted = extract_smapi_data(destination / data_file, destination, files)

    smapi_exe = next(
        (f for f in extracted.files if f.lower().endswith(SMAPI_EXE.lower())), None)
    if smapi_exe is None:
        raise ModInstallError(
            f"Failed to extract {SMAPI_EXE} - download appears "
            "to be corrupted; please re-download SMAPI and try again")
    idx = len(smapi_exe) - len(basename(smapi_exe))

    instructions = [InstallInstruction.copy(f, f[idx:]) for f in extracted.files]
    instructions.append(InstallInstruction.attribute(BUNDLED_MODS_ATTRIBUTE,
                                                     extracted.bundled_mods))
    instructions.append(InstallInstruction.generate_file(SMAPI_DEPS_FILE, deps_data))
    app_log(f"SMAPI install: {len(extracted.files)} file(s), bundled mods "
            f"{', '.join(extracted.bundled_mods)}")
    return InstallResult(instructions)


def is_smapi_mod_type(instructions: list[InstallInstruction]) -> bool:
    return any(i.type == "copy" and i.source.endswith(SMAPI_EXE) for i in instructions)
