"""
game_loader.py
Auto-discovers game handler classes from the Games/ directory.

Any .py file in Games/<GameFolder>/ that contains a subclass of BaseGame is
automatically registered. Bad/incomplete plugin files are logged and skipped
so one broken handler doesn't break the rest.

Uses spec_from_file_location so folder names with spaces (e.g. "Stardew Valley")
work without needing a valid dotted module path.

Usage:
    from Utils.game_loader import discover_games
    games = discover_games()          # {game.name: BaseGame instance}
    sdv = games["Stardew Valley"]
"""

import importlib.util
import inspect
import os
import sys
from pathlib import Path

from Games.base_game import BaseGame
from Utils.app_log import app_log

_EXCLUDED_STEMS = {"__init__", "base_game"}


def _find_games_dir() -> Path | None:
    """Return the Games directory (containing base_game.py and game subfolders)."""

    def _valid_games_dir(cand: Path) -> bool:
        return cand.is_dir() and bool(list(cand.glob("*/*.py")))

    env_games = os.environ.get("MOD_MANAGER_GAMES")
    if env_games:
        cand = Path(env_games).resolve()
        if _valid_games_dir(cand):
            return cand

    # Games.base_game lives in Games/, so its parent IS the Games dir
    mod = sys.modules.get(BaseGame.__module__)
    base_file = getattr(mod, "__file__", None) if mod else None
    if base_file:
        cand = Path(base_file).resolve().parent
        if _valid_games_dir(cand):
            return cand

    cand = Path(__file__).resolve().parent.parent / "Games"
    if _valid_games_dir(cand):
        return cand
    return None


def discover_games() -> dict[str, BaseGame]:
    """
    Scan Games/<GameFolder>/*.py, load each module from its file path, find
    BaseGame subclasses, instantiate them, and return {game.name: instance}.
    """
    games: dict[str, BaseGame] = {}
    games_dir = _find_games_dir()
    if games_dir is None:
        app_log("No Games directory found; no game handlers loaded", "warning")
        return games

    for py_file in sorted(games_dir.glob("*/*.py")):
        if py_file.stem in _EXCLUDED_STEMS:
            continue

        module_name = f"Games._loaded_{py_file.stem.replace(' ', '_')}"
        try:
            spec = importlib.util.spec_from_file_location(module_name, str(py_file))
            if spec is None or spec.loader is None:
                continue
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
            for _, cls in inspect.getmembers(module, inspect.isclass):
                if cls is BaseGame or not issubclass(cls, BaseGame):
                    continue
                if cls.__module__ == module_name and not inspect.isabstract(cls):
                    instance = cls()
                    games[instance.name] = instance
        except Exception as exc:
            app_log(f"Skipping game handler {py_file.name}: {exc}", "error")
    return games
