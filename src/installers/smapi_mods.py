"""
smapi_mods.py
Installer for regular SMAPI mods (anything shipping a ``manifest.json``).

One archive may bundle several mods; each ``manifest.json`` marks the root of
one of them.  Files are copied below ``<mod folder>/`` so they deploy into the
game's ``Mods/`` folder, and the normalised manifests are stored on the mod as
the ``smapiManifests`` attribute for later dependency checks.

Archives with a ``Content/`` folder belong to the root-folder installer.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from SMAPI.constants import GAME_ID, MANIFEST_FILE
from SMAPI.smapi_manifest import (
    SMAPI_MANIFESTS_ATTRIBUTE,
    manifest_display_name,
    normalise_manifest,
    read_manifest,
)
from SMAPI.smapi_types import SMAPIManifest
from installers.instructions import (
    InstallInstruction,
    InstallResult,
    SupportedResult,
    dirname,
    is_dir_entry,
    normalise_path,
)
from Utils.app_log import app_log

_MAX_MANIFEST_READERS = 8


def has_content_folder(files: list[str]) -> bool:
    """True if any directory entry is a ``Content/`` folder (at any depth)."""
    return any(
        f"fakeDir/{normalise_path(f)}".endswith("/Content/")
        for f in files if is_dir_entry(normalise_path(f))
    )


def is_valid_manifest(file_path: str) -> bool:
    segments = normalise_path(file_path).lower().split("/")
    return segments[-1] == MANIFEST_FILE and "locale" not in segments


def test_supported(files: list[str], game_id: str) -> SupportedResult:
    supported = (
        game_id == GAME_ID
        and any(is_valid_manifest(f) for f in files)
        and not has_content_folder(files)
    )
    return SupportedResult(supported)


@dataclass
class ModWithManifest:
    raw: dict
    manifest: SMAPIManifest
    manifest_file: str
    root_folder: str
    manifest_index: int
    mod_files: list[str]


def _mod_files_for(root_folder: str, files: list[str]) -> list[str]:
    if root_folder == ".":
        return [f for f in files if not is_dir_entry(f)]
    prefix = root_folder + "/"
    return [f for f in files if f.startswith(prefix) and not is_dir_entry(f)]


def install(files: list[str], destination_path: str | Path) -> InstallResult:
    """
    Build copy instructions for every mod in the extracted archive at
    *destination_path*.  Unparsable manifests still install (just without
    dependency metadata).
    """
    destination = Path(destination_path)
    files = [normalise_path(f) for f in files]
    manifest_files = [f for f in files if is_valid_manifest(f)]

    with ThreadPoolExecutor(max_workers=_MAX_MANIFEST_READERS) as pool:
        raws = list(pool.map(lambda mf: read_manifest(destination / mf), manifest_files))

    mods: list[ModWithManifest] = []
    smapi_manifests: dict[str, dict] = {}
    for manifest_file, raw in zip(manifest_files, raws):
        root_folder = dirname(manifest_file)
        manifest = normalise_manifest(raw)
        if manifest.unique_id and manifest.version:
            smapi_manifests[manifest.unique_id] = manifest.to_json()
        mods.append(ModWithManifest(
            raw=raw,
            manifest=manifest,
            manifest_file=manifest_file,
            root_folder=root_folder,
            manifest_index=manifest_file.lower().rfind(MANIFEST_FILE),
            mod_files=_mod_files_for(root_folder, files),
        ))

    fallback_name = destination.name.removesuffix(".installing")
    instructions: list[InstallInstruction] = []
    for mod in mods:
        if mod.root_folder != ".":
            mod_name = mod.root_folder
        else:
            mod_name = manifest_display_name(mod.raw) or fallback_name
        for file in mod.mod_files:
            instructions.append(InstallInstruction.copy(
                file, f"{mod_name}/{file[mod.manifest_index:]}"))

    if smapi_manifests:
        instructions.append(InstallInstruction.attribute(SMAPI_MANIFESTS_ATTRIBUTE, smapi_manifests))
    app_log(f"SMAPI mod install: {len(mods)} manifest(s), {len(instructions)} instruction(s)")
    return InstallResult(instructions)
