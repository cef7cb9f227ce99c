"""
added_files.py
Re-imports files that appeared in the game folder after deployment.

SMAPI and its bundled mods write config files next to the deployed mod files.
When the deployment engine reports such a file together with the mods that
might own it, the file is moved back into the owning mod's staging folder so
the next deploy links it like any other mod file.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from SMAPI.constants import GAME_ID, MOD_TYPE_ROOT_FOLDER, MOD_TYPE_SMAPI
from installers.smapi import BUNDLED_MODS_ATTRIBUTE, default_bundled_mods
from Utils.app_log import app_log
from Utils.mod_state import InstalledMod, ModStore

if TYPE_CHECKING:
    from Games.base_game import BaseGame


@dataclass
class AddedFile:
    """A file the deployment engine found that it did not put there."""
    file_path: str
    candidates: list[str] = field(default_factory=list)


def is_mod_candidate_valid(mod: InstalledMod | None, entry: AddedFile) -> bool:
    """True if *entry* can safely be moved into *mod*'s staging folder."""
    # Root-folder mods may replace vanilla files, so a new file there could
    # just as well belong to the game.
    if mod is None or mod.type == MOD_TYPE_ROOT_FOLDER:
        return False

    if mod.type != MOD_TYPE_SMAPI:
        return True

    segments = [s for s in PurePath(entry.file_path).as_posix().lower().split("/") if s]
    if "content" in segments:
        return False
    mod_folder = None
    if "mods" in segments:
        idx = segments.index("mods")
        if len(segments) > idx + 1:
            mod_folder = segments[idx + 1]

    bundled = mod.attributes.get(BUNDLED_MODS_ATTRIBUTE) or default_bundled_mods()
    return mod_folder is not None and mod_folder in bundled


def _reimport(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)
    source.unlink()


def handle_added_files(store: ModStore, game: BaseGame, profile_game_id: str,
                       files: list[AddedFile]) -> int:
    """
    Move each added file owned by a known mod into that mod's staging folder.

    Only the first candidate is considered.  Failures are logged; this runs
    unattended after every deploy.  Returns the number of files moved.
    """
    if profile_game_id != GAME_ID:
        return 0

    mod_paths = game.get_mod_paths()
    install_path = store.install_path(GAME_ID)
    moved = 0
    for entry in files:
        if not entry.candidates:
            continue
        mod = store.get_mod(GAME_ID, entry.candidates[0])
        if not is_mod_candidate_valid(mod, entry):
            continue
        mod_path = mod_paths.get(mod.type)
        if mod_path is None:
            app_log(f"No deploy path for mod type '{mod.type}'; "
                    f"leaving {entry.file_path}", "warning")
            continue
        source = Path(entry.file_path)
        try:
            rel_path = source.relative_to(mod_path)
        except ValueError:
            app_log(f"Added file {entry.file_path} is outside {mod_path}", "warning")
            continue
        target = install_path / mod.id / rel_path
        try:
            _reimport(source, target)
        except shutil.SameFileError:
            continue
        except OSError as exc:
            app_log(f"Failed to re-import added file {entry.file_path} "
                    f"to mod '{mod.id}': {exc}", "error")
            continue
        app_log(f"Re-imported {rel_path.as_posix()} into mod '{mod.id}'")
        moved += 1
    return moved
