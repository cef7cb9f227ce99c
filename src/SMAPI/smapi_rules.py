"""
smapi_rules.py
Keep an installed mod's dependency rules in sync with its SMAPI manifests.

When a mod is enabled, every manifest bundled in it is resolved again
(``SMAPI.smapi_dependencies``).  The result is applied as two batches:

  1. remove every stored rule that a freshly computed rule supersedes
     (same dependency UniqueID, case-insensitive)
  2. add all freshly computed rules

Removals always go first, so a re-run never leaves duplicates behind.

Usage::

    from SMAPI.smapi_rules import on_mod_enabled

    on_mod_enabled(store, api, profile_game_id, mod_id)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from SMAPI.constants import GAME_ID
from SMAPI.smapi_api import SMAPIAPI
from SMAPI.smapi_dependencies import resolve_dependencies
from SMAPI.smapi_manifest import get_mod_manifests
from Utils.app_log import app_log
from Utils.mod_state import InstalledMod, ModRule, ModStore


@dataclass
class RuleChanges:
    """Rules to remove from, then add to, one mod."""
    to_remove: list[ModRule] = field(default_factory=list)
    to_add: list[ModRule] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_remove and not self.to_add


def plan_rule_changes(mod: InstalledMod,
                      mods: Mapping[str, InstalledMod],
                      api: SMAPIAPI) -> RuleChanges:
    """Compute (without applying) the rule changes for *mod*."""
    changes = RuleChanges()
    manifests = get_mod_manifests(mod)
    if not manifests:
        return changes

    seen: set[str] = set()
    for manifest in manifests.values():
        rules = resolve_dependencies(manifest, mods, api)
        if not rules:
            continue
        for rule in rules:
            if rule.match_key in seen:
                continue
            seen.add(rule.match_key)
            changes.to_add.append(rule)

    if changes.to_add:
        changes.to_remove = [r for r in mod.rules if r.dependency_id and r.match_key in seen]
    return changes


def apply_rule_changes(store: ModStore, game_id: str, mod_id: str,
                       changes: RuleChanges) -> None:
    """Apply *changes* as one removal batch followed by one addition batch."""
    if changes.to_remove:
        store.batch_remove_rules(game_id, mod_id, changes.to_remove)
    if changes.to_add:
        store.batch_add_rules(game_id, mod_id, changes.to_add)


def reconcile_mod_rules(store: ModStore, api: SMAPIAPI, mod_id: str,
                        game_id: str = GAME_ID) -> RuleChanges:
    """Recompute and store the dependency rules of one installed mod."""
    mods = store.get_installed_mods(game_id)
    mod = mods.get(mod_id)
    if mod is None:
        return RuleChanges()
    changes = plan_rule_changes(mod, mods, api)
    if changes.is_empty:
        return changes
    apply_rule_changes(store, game_id, mod_id, changes)
    app_log(f"Updated dependency rules for {mod_id}: "
            f"-{len(changes.to_remove)} +{len(changes.to_add)}")
    return changes


def on_mod_enabled(store: ModStore, api: SMAPIAPI,
                   profile_game_id: str, mod_id: str) -> RuleChanges:
    """Host event handler for ``mod-enabled``. Never raises."""
    if profile_game_id != GAME_ID:
        return RuleChanges()
    try:
        return reconcile_mod_rules(store, api, mod_id)
    except Exception as exc:
        app_log(f"Could not update dependency rules for {mod_id}: {exc}", "error")
        return RuleChanges()
