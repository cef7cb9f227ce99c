"""
root_folder.py
Installer for mods that deploy to the game's root folder.

Any mod with a ``Content/`` folder is meant to overwrite game content, e.g.::

    SomeMod.7z
      SomeMod/Content/...   deployed  -> Content/...
      SomeMod/Mods/...      deployed  -> Mods/...
      Readme.txt            not deployed
"""

from __future__ import annotations

from SMAPI.constants import GAME_ID, MANIFEST_FILE
from installers.instructions import (
    InstallInstruction,
    InstallResult,
    ModInstallError,
    SupportedResult,
    basename,
    is_dir_entry,
    normalise_path,
)

PTRN_CONTENT = "/Content/"


def _find_content_dir(files: list[str]) -> str | None:
    for f in files:
        if is_dir_entry(f) and f"fakeDir/{f}".endswith(PTRN_CONTENT):
            return f
    return None


def test_root_folder(files: list[str], game_id: str) -> SupportedResult:
    files = [normalise_path(f) for f in files]
    return SupportedResult(game_id == GAME_ID and _find_content_dir(files) is not None)


def install_root_folder(files: list[str]) -> InstallResult:
    """Copy ``Content/`` and its sibling folders to the game root, skipping ``.txt`` files."""
    files = [normalise_path(f) for f in files]
    content_dir = _find_content_dir(files)
    if content_dir is None:
        raise ModInstallError('Could not install mod as it does not include a "Content" folder.')
    idx = content_dir.find(PTRN_CONTENT) + 1
    root_dir = basename(content_dir[:idx]) if idx else ""

    instructions = [
        InstallInstruction.copy(f, f[idx:])
        for f in files
        if not is_dir_entry(f)
        and root_dir in f
        and not f.lower().endswith(".txt")
    ]
    return InstallResult(instructions)


def is_root_folder_mod(instructions: list[InstallInstruction]) -> bool:
    """
    Decide whether installed files belong to the root-folder mod type.

    - No manifests: a plain replacement mod; needs a ``Content/`` folder.
    - With manifests: SMAPI mods must sit in ``Mods/`` next to ``Content/``.
    """
    copies = [i for i in instructions if i.type == "copy"]
    has_manifest = any(i.destination.endswith(MANIFEST_FILE) for i in copies)
    has_mods_folder = any(i.destination.startswith("Mods/") for i in copies)
    has_content_folder = any(i.destination.startswith("Content/") for i in copies)
    if has_manifest:
        return has_content_folder and has_mods_folder
    return has_content_folder
