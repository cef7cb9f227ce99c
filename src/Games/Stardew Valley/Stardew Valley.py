"""
Stardew Valley.py
Game handler for Stardew Valley.

Mod structure:
  SMAPI mods install into <game_path>/Mods/
  SMAPI itself and "root folder" mods (Content/ replacements) deploy to the
  game root.

Mods are loaded by SMAPI, so setup() warns when StardewModdingAPI.exe is
missing from the game folder.
"""

import json
import os
import sys
from pathlib import Path

from Games.base_game import BaseGame, GameTool, ModInstaller, ModType
from installers import root_folder, smapi, smapi_mods
from installers.added_files import handle_added_files
from SMAPI import smapi_rules
from SMAPI.constants import (
    GAME_ID,
    GAME_NAME,
    GOGAPP_ID,
    MOD_TYPE_ROOT_FOLDER,
    MOD_TYPE_SMAPI,
    NEXUS_DOMAIN,
    SMAPI_EXE,
    SMAPI_PAGE_URL,
    STEAMAPP_ID,
    XBOXAPP_ID,
)
from SMAPI.smapi_api import SMAPIAPI
from Utils.app_log import app_log
from Utils.steam_finder import find_steam_game

_GAME_DEPS_FILE = "Stardew Valley.deps.json"


class StardewValley(BaseGame):

    def __init__(self):
        self._game_path: Path | None = None
        self.load_paths()

    # -----------------------------------------------------------------------
    # Identity
    # -----------------------------------------------------------------------

    @property
    def name(self) -> str:
        return GAME_NAME

    @property
    def game_id(self) -> str:
        return GAME_ID

    @property
    def exe_name(self) -> str:
        return "Stardew Valley.exe" if sys.platform == "win32" else "StardewValley"

    @property
    def steam_id(self) -> str:
        return STEAMAPP_ID

    @property
    def gog_id(self) -> str:
        return GOGAPP_ID

    @property
    def xbox_id(self) -> str:
        return XBOXAPP_ID

    @property
    def nexus_game_domain(self) -> str:
        return NEXUS_DOMAIN

    @property
    def mods_dir(self) -> str:
        # SMAPI accepts --mods-path, but managed installs always use Mods/
        return "Mods"

    @property
    def required_files(self) -> list[str]:
        if sys.platform == "win32":
            return ["Stardew Valley.exe"]
        return ["StardewValley", "StardewValley.exe"]

    @property
    def supported_tools(self) -> list[GameTool]:
        return [
            GameTool(
                id="smapi",
                name="SMAPI",
                executable=SMAPI_EXE,
                required_files=(SMAPI_EXE,),
                relative=True,
                exclusive=True,
                default_primary=True,
                shell=True,
                logo="smapi.png",
            ),
        ]

    @property
    def mod_installers(self) -> list[ModInstaller]:
        return [
            ModInstaller(
                id="smapi-installer",
                priority=30,
                test=smapi.test_smapi,
                install=lambda files, destination_path: smapi.install_smapi(
                    self.get_game_path, files, destination_path),
            ),
            ModInstaller(
                id="stardew-valley-installer",
                priority=50,
                test=smapi_mods.test_supported,
                install=smapi_mods.install,
            ),
            ModInstaller(
                id=MOD_TYPE_ROOT_FOLDER,
                priority=50,
                test=root_folder.test_root_folder,
                install=lambda files, destination_path: root_folder.install_root_folder(files),
            ),
        ]

    @property
    def mod_types(self) -> list[ModType]:
        return [
            ModType(MOD_TYPE_SMAPI, 30, smapi.is_smapi_mod_type, lambda game_path: game_path),
            ModType(MOD_TYPE_ROOT_FOLDER, 25, root_folder.is_root_folder_mod,
                    lambda game_path: game_path),
        ]

    # -----------------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------------

    def get_game_path(self) -> Path | None:
        return self._game_path

    def query_path(self) -> Path | None:
        return find_steam_game(self.required_files[:1])

    def executable(self) -> str:
        return self.exe_name

    def get_installed_version(self) -> str | None:
        """
        Read the game version from the .NET deps file, whose targets contain
        a ``"Stardew Valley/<version>"`` entry.  None when unknown.
        """
        if self._game_path is None:
            return None
        deps_file = self._game_path / _GAME_DEPS_FILE
        try:
            data = json.loads(deps_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            app_log(f"Could not read {deps_file}: {exc}", "warning")
            return None
        prefix = f"{GAME_NAME}/"
        sections = list((data.get("targets") or {}).values()) + [data.get("libraries") or {}]
        for section in sections:
            if not isinstance(section, dict):
                continue
            for key in section:
                if key.startswith(prefix):
                    return key[len(prefix):]
        return None

    def smapi_api(self) -> SMAPIAPI:
        return SMAPIAPI(self.get_installed_version)

    # -----------------------------------------------------------------------
    # Configuration persistence
    # -----------------------------------------------------------------------

    def load_paths(self) -> bool:
        self._game_path = None
        if self._paths_file.exists():
            try:
                data = json.loads(self._paths_file.read_text(encoding="utf-8"))
                raw = data.get("game_path", "")
                if raw:
                    self._game_path = Path(raw)
                    return True
            except (json.JSONDecodeError, OSError) as exc:
                app_log(f"Could not read {self._paths_file}: {exc}", "warning")
        found = self.query_path()
        if found:
            app_log(f"Found {self.name} at {found}")
            self._game_path = found
            self.save_paths()
            return True
        return False

    def save_paths(self) -> None:
        self._paths_file.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "game_path": str(self._game_path) if self._game_path else "",
        }
        self._paths_file.write_text(
            json.dumps(data, indent=2), encoding="utf-8"
        )

    def set_game_path(self, path: Path | str | None) -> None:
        self._game_path = Path(path) if path else None
        self.save_paths()

    # -----------------------------------------------------------------------
    # Lifecycle and host events
    # -----------------------------------------------------------------------

    def setup(self) -> list[str]:
        """Make sure Mods/ is writable and warn when SMAPI is not installed."""
        if self._game_path is None:
            raise RuntimeError("Game path is not configured.")
        mods_path = self.get_mod_data_path()
        try:
            mods_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RuntimeError(
                f"Unable to write to Mods folder for {self.name}: {exc}") from exc
        if not os.access(mods_path, os.W_OK):
            raise RuntimeError(
                f"Unable to write to Mods folder for {self.name}: {mods_path}")

        warnings: list[str] = []
        if not (self._game_path / SMAPI_EXE).is_file():
            warnings.append(
                f"SMAPI is not installed. SMAPI is required to mod {self.name}; "
                f"get it from {SMAPI_PAGE_URL}")
            app_log(warnings[-1], "warning")
        return warnings

    def on_mod_enabled(self, store, profile_game_id: str, mod_id: str) -> None:
        smapi_rules.on_mod_enabled(store, self.smapi_api(), profile_game_id, mod_id)

    def on_added_files(self, store, profile_game_id: str, files) -> None:
        handle_added_files(store, self, profile_game_id, files)
