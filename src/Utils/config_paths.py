"""
config_paths.py
Central helpers for resolving user-writable config directories.

Follows the XDG Base Directory Specification:
  Config lives in $XDG_CONFIG_HOME/AmethystModManager  (default: ~/.config/AmethystModManager)

The extension never writes next to its own sources; the host may load it from
a read-only bundle.
"""

import os
from pathlib import Path

APP_NAME = "AmethystModManager"


def get_config_dir() -> Path:
    """Return the app config directory, creating it if it doesn't exist.

    Respects $XDG_CONFIG_HOME; falls back to ~/.config/AmethystModManager.
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    config_dir = base / APP_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_game_config_dir(game_name: str) -> Path:
    """Return ~/.config/AmethystModManager/games/<game_name>/, creating it."""
    d = get_config_dir() / "games" / game_name
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_game_config_path(game_name: str) -> Path:
    """Return the paths.json path for a given game, creating parent dirs as needed.

    Result: ~/.config/AmethystModManager/games/<game_name>/paths.json
    """
    return get_game_config_dir(game_name) / "paths.json"


def get_mod_state_path(game_name: str) -> Path:
    """Return the installed-mods state file for a given game.

    Result: ~/.config/AmethystModManager/games/<game_name>/mods.json
    """
    return get_game_config_dir(game_name) / "mods.json"


def get_profiles_dir() -> Path:
    """Return the root Profiles directory.

    $MOD_MANAGER_PROFILES_DIR wins when set (the host points it at a writable
    location); otherwise ~/.config/AmethystModManager/Profiles.
    """
    env = os.environ.get("MOD_MANAGER_PROFILES_DIR")
    p = Path(env) if env else get_config_dir() / "Profiles"
    p.mkdir(parents=True, exist_ok=True)
    return p
