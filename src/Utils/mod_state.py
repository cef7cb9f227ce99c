"""
mod_state.py
Persistent state for installed mods and their dependency rules.

The state file is a single JSON document keyed by game id::

    {
      "stardewvalley": {
        "<mod id>": {
          "id": "...", "type": "", "archiveId": "", "enabled": true,
          "attributes": {"smapiManifests": {...}, ...},
          "rules": [{"type": "requires", "reference": {...}, ...}]
        }
      }
    }

This module provides:

- **ModRule** / **ModReference** / **DownloadHint** - dependency edges
- **InstalledMod** - one installed mod as the host sees it
- **ModStore** - load/save plus batched rule mutations.  Every batch is
  applied under a lock and written to disk in one go, so a reader never sees
  half a batch.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from Utils.app_log import app_log
from Utils.config_paths import get_mod_state_path, get_profiles_dir

RULE_REQUIRES = "requires"
RULE_RECOMMENDS = "recommends"

STATE_LOCAL = "local"
STATE_REMOTE = "remote"
STATE_UNRESOLVED = "unresolved"


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass
class ModReference:
    """What a rule points at.

    Exactly one of ``id`` (an installed mod), ``id_hint`` (a catalog entry) or
    ``file_expression`` (a bare identifier) is normally set.
    """
    id: str | None = None
    id_hint: str | None = None
    file_expression: str | None = None
    description: str = ""
    instructions: str = ""
    version_match: str = "*"

    def to_json(self) -> dict:
        data: dict[str, Any] = {}
        if self.id is not None:
            data["id"] = self.id
        if self.id_hint is not None:
            data["idHint"] = self.id_hint
        if self.file_expression is not None:
            data["fileExpression"] = self.file_expression
        if self.description:
            data["description"] = self.description
        if self.instructions:
            data["instructions"] = self.instructions
        data["versionMatch"] = self.version_match
        return data

    @classmethod
    def from_json(cls, data: dict) -> ModReference:
        return cls(
            id=data.get("id"),
            id_hint=data.get("idHint"),
            file_expression=data.get("fileExpression"),
            description=data.get("description", ""),
            instructions=data.get("instructions", ""),
            version_match=data.get("versionMatch", "*"),
        )


@dataclass
class DownloadHint:
    mode: str = "browse"
    url: str = ""


@dataclass
class ModRule:
    """A directed dependency edge from the owning mod to ``reference``."""
    type: str                                   # RULE_REQUIRES / RULE_RECOMMENDS
    reference: ModReference
    state: str = STATE_UNRESOLVED               # STATE_LOCAL / _REMOTE / _UNRESOLVED
    dependency_id: str = ""                     # identifier the rule was derived from
    download_hint: DownloadHint | None = None
    extra: dict = field(default_factory=dict)

    @property
    def is_required(self) -> bool:
        return self.type == RULE_REQUIRES

    @property
    def match_key(self) -> str:
        """Case-insensitive key used to find rules superseded by a recomputation."""
        return self.dependency_id.lower()

    def to_json(self) -> dict:
        data: dict[str, Any] = {
            "type": self.type,
            "state": self.state,
            "dependencyId": self.dependency_id,
            "reference": self.reference.to_json(),
        }
        if self.download_hint is not None:
            data["downloadHint"] = {"mode": self.download_hint.mode,
                                    "url": self.download_hint.url}
        if self.extra:
            data["extra"] = dict(self.extra)
        return data

    @classmethod
    def from_json(cls, data: dict) -> ModRule:
        hint = data.get("downloadHint")
        return cls(
            type=data.get("type", RULE_RECOMMENDS),
            reference=ModReference.from_json(data.get("reference") or {}),
            state=data.get("state", STATE_UNRESOLVED),
            dependency_id=data.get("dependencyId", ""),
            download_hint=DownloadHint(hint.get("mode", "browse"), hint.get("url", ""))
            if isinstance(hint, dict) else None,
            extra=dict(data.get("extra") or {}),
        )


# ---------------------------------------------------------------------------
# Installed mods
# ---------------------------------------------------------------------------

@dataclass
class InstalledMod:
    """A mod already known to the host.

    ``id`` is host-assigned and opaque; it is not a SMAPI UniqueID.
    """
    id: str
    type: str = ""
    archive_id: str = ""
    enabled: bool = False
    attributes: dict = field(default_factory=dict)
    rules: list[ModRule] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "archiveId": self.archive_id,
            "enabled": self.enabled,
            "attributes": self.attributes,
            "rules": [r.to_json() for r in self.rules],
        }

    @classmethod
    def from_json(cls, data: dict) -> InstalledMod:
        return cls(
            id=data["id"],
            type=data.get("type", ""),
            archive_id=data.get("archiveId", ""),
            enabled=bool(data.get("enabled", False)),
            attributes=dict(data.get("attributes") or {}),
            rules=[ModRule.from_json(r) for r in data.get("rules", [])
                   if isinstance(r, dict)],
        )


class ModStore:
    """
    JSON-backed store of installed mods, keyed by game id then mod id.

    Parameters
    ----------
    state_path : Path
        The ``mods.json`` file (see ``Utils.config_paths.get_mod_state_path``).
    staging_root : Path, optional
        Root under which each game's mods are staged as ``<root>/<game>/<mod id>``.
        Defaults to a ``mods`` folder next to the state file.
    """

    def __init__(self, state_path: Path, staging_root: Path | None = None):
        self._path = Path(state_path)
        self._staging_root = Path(staging_root) if staging_root else self._path.parent / "mods"
        self._lock = threading.Lock()
        self._games: dict[str, dict[str, InstalledMod]] = {}
        self.load()

    @classmethod
    def for_game(cls, game_name: str) -> ModStore:
        """Store kept in the game's config folder, staging mods under Profiles/<game_name>/."""
        return cls(get_mod_state_path(game_name), staging_root=get_profiles_dir() / game_name)

    # -- persistence --------------------------------------------------------

    def load(self) -> None:
        self._games = {}
        if not self._path.is_file():
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            app_log(f"Could not read mod state {self._path}: {exc}", "error")
            return
        for game_id, mods in raw.items():
            if not isinstance(mods, dict):
                continue
            self._games[game_id] = {
                mod_id: InstalledMod.from_json(data)
                for mod_id, data in mods.items()
                if isinstance(data, dict) and "id" in data
            }

    def save(self) -> None:
        data = {
            game_id: {mod_id: mod.to_json() for mod_id, mod in mods.items()}
            for game_id, mods in self._games.items()
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    # -- queries ------------------------------------------------------------

    def get_installed_mods(self, game_id: str) -> dict[str, InstalledMod]:
        """Return installed mods for *game_id* in insertion order."""
        return dict(self._games.get(game_id, {}))

    def get_mod(self, game_id: str, mod_id: str) -> InstalledMod | None:
        return self._games.get(game_id, {}).get(mod_id)

    def install_path(self, game_id: str) -> Path:
        """Staging directory that holds one folder per installed mod."""
        return self._staging_root / game_id

    # -- mutations ----------------------------------------------------------

    def add_mod(self, game_id: str, mod: InstalledMod) -> None:
        with self._lock:
            self._games.setdefault(game_id, {})[mod.id] = mod
            self.save()

    def set_attribute(self, game_id: str, mod_id: str, key: str, value: Any) -> None:
        with self._lock:
            mod = self._require(game_id, mod_id)
            mod.attributes[key] = value
            self.save()

    def set_enabled(self, game_id: str, mod_id: str, enabled: bool) -> None:
        with self._lock:
            self._require(game_id, mod_id).enabled = enabled
            self.save()

    def batch_remove_rules(self, game_id: str, mod_id: str,
                           rules: Iterable[ModRule]) -> int:
        """Remove every rule in *rules* from the mod in one mutation. Returns the count removed."""
        rules = list(rules)
        with self._lock:
            mod = self._require(game_id, mod_id)
            before = len(mod.rules)
            mod.rules = [r for r in mod.rules if r not in rules]
            self.save()
            return before - len(mod.rules)

    def batch_add_rules(self, game_id: str, mod_id: str,
                        rules: Iterable[ModRule]) -> int:
        """Append *rules* to the mod in one mutation. Returns the count added."""
        rules = list(rules)
        with self._lock:
            mod = self._require(game_id, mod_id)
            mod.rules.extend(rules)
            self.save()
            return len(rules)

    def _require(self, game_id: str, mod_id: str) -> InstalledMod:
        mod = self._games.get(game_id, {}).get(mod_id)
        if mod is None:
            raise KeyError(f"Unknown mod '{mod_id}' for game '{game_id}'")
        return mod
