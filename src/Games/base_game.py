"""
base_game.py
Abstract base class that all game handlers must subclass.

To add support for a new game:
  1. Create a new folder Games/<Game Name>/ with a .py file inside
  2. Subclass BaseGame and implement all abstract methods/properties
  3. Drop the file in - it will be auto-discovered by Utils/game_loader.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from Utils.config_paths import get_game_config_path

if TYPE_CHECKING:
    from installers.added_files import AddedFile
    from installers.instructions import InstallInstruction, InstallResult, SupportedResult
    from Utils.mod_state import ModStore


# ---------------------------------------------------------------------------
# Descriptors registered with the host
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GameTool:
    """Describes an external tool that launches or modifies the game.

    Attributes:
        id:              Unique machine-readable key, e.g. ``"smapi"``.
        name:            Short human-readable name.
        executable:      Path of the tool's exe relative to the game root.
        required_files:  Files that must exist for the tool to be detected.
        relative:        Whether ``executable`` is relative to the game root.
        exclusive:       Only one instance may run at a time.
        default_primary: Offered as the default launcher for the game.
    """
    id: str
    name: str
    executable: str
    required_files: tuple[str, ...] = ()
    relative: bool = True
    exclusive: bool = False
    default_primary: bool = False
    shell: bool = False
    logo: str = ""


@dataclass(frozen=True)
class ModInstaller:
    """An archive installer.  Lower ``priority`` values are tried first."""
    id: str
    priority: int
    test: Callable[[list[str], str], SupportedResult]
    install: Callable[..., InstallResult]


@dataclass(frozen=True)
class ModType:
    """A deployment target for installed mods other than the mods folder.

    ``test`` inspects the install instructions; ``target_path`` maps the game
    root to the folder this type deploys into.
    """
    id: str
    priority: int
    test: Callable[[list[InstallInstruction]], bool]
    target_path: Callable[[Path], Path]
    extra: dict = field(default_factory=dict)


class BaseGame(ABC):

    # -----------------------------------------------------------------------
    # Identity
    # -----------------------------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Human-readable display name, e.g. 'Stardew Valley'.
        Must match the subfolder name under Games/.
        """

    @property
    @abstractmethod
    def game_id(self) -> str:
        """Identifier the host uses for this game in its mod state."""

    @property
    @abstractmethod
    def exe_name(self) -> str:
        """
        The game's executable filename, relative to the game root.
        """

    @property
    def steam_id(self) -> str:
        """Steam App ID, or an empty string for non-Steam games."""
        return ""

    @property
    def gog_id(self) -> str:
        return ""

    @property
    def xbox_id(self) -> str:
        return ""

    @property
    def nexus_game_domain(self) -> str:
        """
        Nexus Mods game domain name, the subdomain used in URLs like
        nexusmods.com/<domain>/mods/...
        Return an empty string to disable Nexus links for this game.
        """
        return ""

    @property
    def mods_dir(self) -> str:
        """Folder inside the game root that receives regular mods."""
        return ""

    @property
    def required_files(self) -> list[str]:
        """Files (relative to the game root) that identify an install."""
        return [self.exe_name]

    @property
    def supported_tools(self) -> list[GameTool]:
        return []

    @property
    def mod_installers(self) -> list[ModInstaller]:
        return []

    @property
    def mod_types(self) -> list[ModType]:
        return []

    # -----------------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------------

    @abstractmethod
    def get_game_path(self) -> Path | None:
        """
        Return the root install directory of the game, or None if not set.
        e.g. /home/deck/.steam/steamapps/common/Stardew Valley
        """

    def get_mod_data_path(self) -> Path | None:
        """
        Return the directory inside the game where mod files are deployed.
        Returns None if game_path is not configured.
        """
        game_path = self.get_game_path()
        if game_path is None:
            return None
        return game_path / self.mods_dir if self.mods_dir else game_path

    def get_mod_paths(self) -> dict[str, Path]:
        """
        Deploy target for every mod type: ``""`` is the default mods folder,
        other keys are the ids from :attr:`mod_types`.  Empty when the game
        path is unknown.
        """
        game_path = self.get_game_path()
        if game_path is None:
            return {}
        paths = {"": self.get_mod_data_path()}
        for mod_type in self.mod_types:
            paths[mod_type.id] = mod_type.target_path(game_path)
        return paths

    def query_path(self) -> Path | None:
        """Try to discover the game on disk.  Returns None when not found."""
        return None

    def executable(self) -> str:
        return self.exe_name

    # -----------------------------------------------------------------------
    # Configuration persistence
    # -----------------------------------------------------------------------

    @property
    def _paths_file(self) -> Path:
        """Path to this game's paths.json in the user config directory.

        Resolves to: ~/.config/AmethystModManager/games/<game_name>/paths.json
        """
        return get_game_config_path(self.name)

    @abstractmethod
    def load_paths(self) -> bool:
        """
        Load path configuration from the user config directory.
        Returns True if a valid game_path was loaded, False otherwise.
        """

    @abstractmethod
    def save_paths(self) -> None:
        """Write current path configuration to the user config directory."""

    def set_game_path(self, path: Path | str | None) -> None:
        """
        Convenience: set game_path and immediately persist it.
        Pass None to clear the configured path.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement set_game_path()"
        )

    # -----------------------------------------------------------------------
    # Lifecycle and host events (no-ops unless overridden)
    # -----------------------------------------------------------------------

    def setup(self) -> list[str]:
        """
        Prepare the game folder for modding.
        Returns human-readable warnings; raises RuntimeError if the game
        cannot be modded at all.
        """
        return []

    def on_mod_enabled(self, store: ModStore, profile_game_id: str, mod_id: str) -> None:
        """Called by the host after a mod is enabled in a profile."""

    def on_added_files(self, store: ModStore, profile_game_id: str,
                       files: list[AddedFile]) -> None:
        """Called by the host with files that appeared after a deploy."""

    # -----------------------------------------------------------------------
    # Validation (concrete - subclasses may override)
    # -----------------------------------------------------------------------

    def is_configured(self) -> bool:
        """Returns True if game_path is set and the directory exists on disk."""
        p = self.get_game_path()
        return p is not None and p.exists()

    def validate_install(self) -> list[str]:
        """
        Check that the game is ready to receive mod installs.
        Returns a list of human-readable error strings; empty list = all good.
        """
        errors: list[str] = []
        if not self.is_configured():
            errors.append(
                f"Game path not set or does not exist for '{self.name}'."
            )
        data_path = self.get_mod_data_path()
        if data_path is not None and not data_path.exists():
            errors.append(f"Mod data directory does not exist: {data_path}")
        return errors
