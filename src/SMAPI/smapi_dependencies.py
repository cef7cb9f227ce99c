"""
smapi_dependencies.py
Resolve a SMAPI manifest's dependencies into mod rules.

Workflow:
  1. Build the working set: declared ``Dependencies`` plus an implicit
     required dependency on ``ContentPackFor``; drop entries without an id and
     collapse duplicates case-insensitively (first declaration wins).
  2. Match each dependency against the manifests bundled in installed mods.
     With a ``MinimumVersion`` only a compatible candidate counts.
  3. Send everything still unmatched to the smapi.io catalog in one request.
  4. Emit one rule per dependency, in declaration order:
       local       - satisfied by an installed mod
       remote      - known to the catalog; carries a download hint
       unresolved  - unknown; carries the bare UniqueID

Resolution never raises: a failed catalog call just leaves the remaining
dependencies unresolved.

Usage::

    from SMAPI.smapi_dependencies import resolve_dependencies

    rules = resolve_dependencies(manifest, store.get_installed_mods(GAME_ID), api)
"""

from __future__ import annotations

import re
from typing import Mapping

from packaging.version import Version

from SMAPI.constants import NEXUS_MODS_URL
from SMAPI.smapi_api import SMAPIAPI, find_result
from SMAPI.smapi_manifest import get_mod_manifests
from SMAPI.smapi_types import APIMod, APIModIdentity, DependencyDeclaration, SMAPIManifest
from Utils.app_log import app_log
from Utils.mod_state import (
    RULE_RECOMMENDS,
    RULE_REQUIRES,
    STATE_LOCAL,
    STATE_REMOTE,
    STATE_UNRESOLVED,
    DownloadHint,
    InstalledMod,
    ModReference,
    ModRule,
)

REMOTE_INSTRUCTIONS = "Download the required version."

_COERCE_RE = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------

def coerce_version(raw: str | None) -> Version | None:
    """Pull the first ``major[.minor[.patch]]`` out of a loose version string."""
    if not raw:
        return None
    m = _COERCE_RE.search(str(raw))
    if m is None:
        return None
    major, minor, patch = (int(g) if g else 0 for g in m.groups())
    return Version(f"{major}.{minor}.{patch}")


def version_satisfies(candidate: str | None, minimum: str | None) -> bool:
    """
    True if the coerced *candidate* is at least the coerced *minimum*.

    Both sides are reduced to ``major.minor.patch``, so SemVer prerelease and
    build suffixes (``1.2.3-unofficial.1-pathoschild``) are ignored.
    Unparsable values never satisfy.
    """
    floor = coerce_version(minimum)
    release = coerce_version(candidate)
    if floor is None or release is None:
        return False
    return floor <= release


# ---------------------------------------------------------------------------
# Working set
# ---------------------------------------------------------------------------

def get_manifest_dependencies(manifest: SMAPIManifest) -> list[DependencyDeclaration]:
    """Declared dependencies plus the content-pack edge, deduplicated by UniqueID."""
    declared = list(manifest.dependencies)
    if manifest.content_pack_for and manifest.content_pack_for.unique_id:
        declared.append(DependencyDeclaration(
            unique_id=manifest.content_pack_for.unique_id,
            is_required=True,
        ))
    seen: set[str] = set()
    result: list[DependencyDeclaration] = []
    for dep in declared:
        if not dep.unique_id:
            continue
        key = dep.unique_id.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(dep)
    return result


def _rule_type(dep: DependencyDeclaration) -> str:
    return RULE_REQUIRES if dep.is_required else RULE_RECOMMENDS


def _version_match(dep: DependencyDeclaration) -> str:
    return f"{dep.minimum_version}^" if dep.minimum_version else "*"


# ---------------------------------------------------------------------------
# Rule builders
# ---------------------------------------------------------------------------

def local_rule(dep: DependencyDeclaration, mod: InstalledMod) -> ModRule:
    return ModRule(
        type=_rule_type(dep),
        state=STATE_LOCAL,
        dependency_id=dep.unique_id,
        reference=ModReference(
            id=mod.id,
            description=dep.unique_id,
            version_match=_version_match(dep),
        ),
        extra={"required": dep.is_required},
    )


def remote_rule(dep: DependencyDeclaration, data: APIMod) -> ModRule:
    url = ""
    if data.metadata and data.metadata.main:
        url = data.metadata.main.url
    if not url and data.suggested_update:
        url = data.suggested_update.url
    name = data.metadata.name if data.metadata and data.metadata.name else data.id
    return ModRule(
        type=_rule_type(dep),
        state=STATE_REMOTE,
        dependency_id=dep.unique_id,
        reference=ModReference(
            id_hint=data.id,
            description=name,
            instructions=REMOTE_INSTRUCTIONS,
            version_match=_version_match(dep),
        ),
        download_hint=DownloadHint(mode="browse", url=url or NEXUS_MODS_URL),
        extra={"required": dep.is_required},
    )


def unresolved_rule(dep: DependencyDeclaration) -> ModRule:
    return ModRule(
        type=_rule_type(dep),
        state=STATE_UNRESOLVED,
        dependency_id=dep.unique_id,
        reference=ModReference(
            file_expression=dep.unique_id,
            version_match=_version_match(dep),
        ),
        extra={"required": dep.is_required},
    )


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

ManifestIndex = dict[str, list[tuple[InstalledMod, SMAPIManifest]]]


def index_manifests(mods: Mapping[str, InstalledMod]) -> ManifestIndex:
    """Map lowercased UniqueID to ``(mod, manifest)`` pairs, in store insertion order."""
    index: ManifestIndex = {}
    for mod in mods.values():
        for manifest in get_mod_manifests(mod).values():
            if manifest.unique_id:
                index.setdefault(manifest.unique_id.lower(), []).append((mod, manifest))
    return index


def find_local_match(dep: DependencyDeclaration,
                     index: ManifestIndex) -> InstalledMod | None:
    """First installed mod (insertion order) bundling a compatible manifest for *dep*."""
    for mod, manifest in index.get(dep.unique_id.lower(), []):
        if not dep.minimum_version:
            return mod
        if version_satisfies(manifest.version, dep.minimum_version):
            return mod
    return None


def map_dependencies(dependencies: list[DependencyDeclaration],
                     mods: Mapping[str, InstalledMod],
                     api: SMAPIAPI) -> list[ModRule]:
    """Turn an already deduplicated dependency list into rules (see module docstring)."""
    index = index_manifests(mods)
    slots: list[ModRule | None] = []
    missing: list[tuple[int, DependencyDeclaration]] = []

    for dep in dependencies:
        match = find_local_match(dep, index)
        if match is not None:
            slots.append(local_rule(dep, match))
        else:
            missing.append((len(slots), dep))
            slots.append(None)

    if missing:
        results = api.send_query(
            [APIModIdentity(id=dep.unique_id) for _, dep in missing],
            include_meta=True,
        )
        if not results:
            app_log(f"No SMAPI catalog data for {len(missing)} dependency(ies); "
                    f"recording them as unresolved.", "warning")
        for slot, dep in missing:
            data = find_result(results, dep.unique_id)
            slots[slot] = remote_rule(dep, data) if data else unresolved_rule(dep)

    return [rule for rule in slots if rule is not None]


def resolve_dependencies(manifest: SMAPIManifest,
                         mods: Mapping[str, InstalledMod],
                         api: SMAPIAPI) -> list[ModRule]:
    """Resolve every dependency of *manifest* to exactly one rule."""
    dependencies = get_manifest_dependencies(manifest)
    if not dependencies:
        return []
    return map_dependencies(dependencies, mods, api)
