"""
smapi_update_checker.py
Check installed SMAPI mods for available updates via the smapi.io catalog.

Workflow:
  1. Collect every bundled manifest of every installed mod.
  2. Send them to the catalog in one request (``fetch_mod_info``).
  3. Return the entries that carry a ``suggestedUpdate``.

Usage::

    from SMAPI.smapi_update_checker import check_for_updates

    updates = check_for_updates(api, store.get_installed_mods(GAME_ID), store=store)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from SMAPI.constants import GAME_ID
from SMAPI.smapi_api import SMAPIAPI
from SMAPI.smapi_manifest import get_mod_manifests
from Utils.app_log import app_log
from Utils.mod_state import InstalledMod, ModStore


@dataclass
class UpdateInfo:
    """An available update for one SMAPI manifest."""
    mod_id: str                 # host mod id
    unique_id: str
    installed_version: str
    latest_version: str
    url: str = ""


def check_for_updates(
    api: SMAPIAPI,
    mods: Mapping[str, InstalledMod],
    store: Optional[ModStore] = None,
    game_id: str = GAME_ID,
) -> list[UpdateInfo]:
    """
    Return updates for every installed SMAPI manifest the catalog knows a newer
    release of.  With *store*, ``hasUpdate`` / ``latestVersion`` are written
    back to each checked mod so the host can flag it without re-checking.
    """
    owners: dict[str, tuple[str, str]] = {}
    for mod in mods.values():
        for manifest in get_mod_manifests(mod).values():
            if manifest.unique_id:
                owners.setdefault(manifest.unique_id.lower(),
                                  (mod.id, manifest.version or ""))

    if not owners:
        app_log("No SMAPI mods to check for updates.")
        return []

    app_log(f"Checking {len(owners)} SMAPI mod(s) for updates...")
    results = api.fetch_mod_info(False, mods)

    updates: list[UpdateInfo] = []
    flagged: dict[str, str] = {}
    for result in results:
        owner = owners.get(result.id.lower())
        if owner is None:
            continue
        for error in result.errors:
            app_log(f"  {result.id}: {error}", "debug")
        if result.suggested_update is None or not result.suggested_update.version:
            continue
        mod_id, installed = owner
        updates.append(UpdateInfo(
            mod_id=mod_id,
            unique_id=result.id,
            installed_version=installed,
            latest_version=result.suggested_update.version,
            url=result.suggested_update.url,
        ))
        flagged.setdefault(mod_id, result.suggested_update.version)

    if store is not None:
        checked = {mod_id for mod_id, _ in owners.values()}
        for mod_id in checked:
            store.set_attribute(game_id, mod_id, "hasUpdate", mod_id in flagged)
            store.set_attribute(game_id, mod_id, "latestVersion", flagged.get(mod_id, ""))

    app_log(f"Update check complete: {len(updates)} update(s) available.")
    return updates
