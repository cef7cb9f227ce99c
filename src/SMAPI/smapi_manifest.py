"""
smapi_manifest.py
Read and normalise SMAPI ``manifest.json`` files.

Mod authors are inconsistent about key casing (``UniqueID``, ``UniqueId``,
``uniqueid`` ...) and about strict JSON (comments, trailing commas, BOMs are
all common), so:

- **read_manifest** parses with ``json5`` after stripping a BOM and never
  raises; a broken file yields ``{}``.
- **get_manifest_value** looks a key up exactly, then case-insensitively.
- **normalise_manifest** turns a raw mapping into an ``SMAPIManifest``.  The
  input is never mutated.

Usage::

    from SMAPI.smapi_manifest import normalise_manifest, read_manifest

    manifest = normalise_manifest(read_manifest(mod_dir / "manifest.json"))
    print(manifest.unique_id, manifest.version)
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import json5

from SMAPI.smapi_types import DependencyDeclaration, SMAPIManifest
from Utils.app_log import app_log
from Utils.mod_state import InstalledMod

SMAPI_MANIFESTS_ATTRIBUTE = "smapiManifests"


def get_manifest_value(manifest: Any, key: str, warn: bool = True) -> Any:
    """Return ``manifest[key]`` matching the key case-insensitively, or None."""
    if not isinstance(manifest, Mapping):
        return None
    if key in manifest:
        return manifest[key]
    key_lower = key.lower()
    for k in manifest:
        if isinstance(k, str) and k.lower() == key_lower:
            return manifest[k]
    if warn:
        app_log(f"Could not find key on SMAPI mod manifest: {key}", "warning")
    return None


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _as_version(value: Any, warn: bool = True) -> str | None:
    """Accept ``"1.2.3"``, ``1.2`` or the legacy ``{"MajorVersion": 1, ...}`` object."""
    if isinstance(value, Mapping):
        parts = []
        for key in ("MajorVersion", "MinorVersion", "PatchVersion"):
            part = get_manifest_value(value, key, warn)
            parts.append(str(part) if isinstance(part, int) else "0")
        build = get_manifest_value(value, "Build", warn)
        version = ".".join(parts)
        return f"{version}-{build}" if isinstance(build, str) and build else version
    return _as_text(value)


def normalise_dependency(raw: Any, warn: bool = True) -> DependencyDeclaration | None:
    """Normalise one dependency entry. Entries without a UniqueID are dropped."""
    if not isinstance(raw, Mapping):
        return None
    unique_id = _as_text(get_manifest_value(raw, "UniqueID", warn))
    if not unique_id:
        return None
    minimum = _as_version(get_manifest_value(raw, "MinimumVersion", warn), warn)
    is_required = get_manifest_value(raw, "IsRequired", warn)
    return DependencyDeclaration(
        unique_id=unique_id,
        minimum_version=minimum or None,
        is_required=is_required is True,
    )


def normalise_manifest(raw: Any, warn: bool = True) -> SMAPIManifest:
    """Build a canonical :class:`SMAPIManifest` from a raw manifest mapping.

    Missing fields become ``None`` (with a warning in the log unless *warn* is
    False).  Anything that isn't a mapping gives an empty manifest.
    """
    if isinstance(raw, SMAPIManifest):
        return raw
    if not isinstance(raw, Mapping):
        app_log(f"Ignoring SMAPI manifest that is not an object ({type(raw).__name__})",
                "warning")
        return SMAPIManifest()

    raw_deps = get_manifest_value(raw, "Dependencies", warn)
    dependencies = []
    if isinstance(raw_deps, list):
        for entry in raw_deps:
            dep = normalise_dependency(entry, warn)
            if dep is not None:
                dependencies.append(dep)

    update_keys = get_manifest_value(raw, "UpdateKeys", warn)
    if isinstance(update_keys, list):
        update_keys = [str(k) for k in update_keys if isinstance(k, (str, int))]
    elif isinstance(update_keys, str):
        update_keys = [update_keys]
    else:
        update_keys = None

    mod_updater = get_manifest_value(raw, "ModUpdater", warn)

    return SMAPIManifest(
        name=_as_text(get_manifest_value(raw, "Name", warn)),
        author=_as_text(get_manifest_value(raw, "Author", warn)),
        version=_as_version(get_manifest_value(raw, "Version", warn), warn),
        description=_as_text(get_manifest_value(raw, "Description", warn)),
        unique_id=_as_text(get_manifest_value(raw, "UniqueID", warn)),
        entry_dll=_as_text(get_manifest_value(raw, "EntryDll", warn)),
        minimum_api_version=_as_version(get_manifest_value(raw, "MinimumApiVersion", warn), warn),
        update_keys=update_keys,
        content_pack_for=normalise_dependency(get_manifest_value(raw, "ContentPackFor", warn), warn),
        dependencies=dependencies,
        mod_updater=dict(mod_updater) if isinstance(mod_updater, Mapping) else None,
    )


def read_manifest(manifest_path: Path) -> dict:
    """
    Parse a ``manifest.json`` file and return the raw mapping.

    It is not uncommon for these files to be invalid JSON, so they are read
    with ``json5``.  Unreadable or unparsable files return ``{}``.
    """
    try:
        text = Path(manifest_path).read_text(encoding="utf-8-sig")
        data = json5.loads(text)
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        app_log(f"Unable to parse manifest.json file {manifest_path}: {exc}", "error")
        return {}
    if not isinstance(data, dict):
        app_log(f"manifest.json is not an object: {manifest_path}", "error")
        return {}
    return data


def get_mod_manifests(mod: InstalledMod) -> dict[str, SMAPIManifest]:
    """Return the normalised manifests persisted on an installed mod, keyed by UniqueID.

    Stored projections omit empty fields, so they are rebuilt without warnings.
    """
    stored = mod.attributes.get(SMAPI_MANIFESTS_ATTRIBUTE)
    if not isinstance(stored, Mapping):
        return {}
    return {key: normalise_manifest(raw, warn=False) for key, raw in stored.items()}


def manifest_display_name(raw: Mapping) -> str | None:
    """Folder-safe mod name from a manifest: ``Name``, then ``UniqueID``, alphanumerics only."""
    for key in ("Name", "UniqueID"):
        value = _as_text(get_manifest_value(raw, key))
        if value:
            cleaned = "".join(ch for ch in value if ch.isascii() and ch.isalnum())
            if cleaned:
                return cleaned
    return None
