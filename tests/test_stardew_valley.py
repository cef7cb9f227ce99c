"""
Tests for the Stardew Valley game handler, loaded the way the host loads it.
"""

import json

import pytest

from Games.base_game import BaseGame
from SMAPI.constants import GAME_ID, SMAPI_EXE
from SMAPI.smapi_api import SMAPIAPI
from installers.added_files import AddedFile
from Utils import steam_finder
from Utils.game_loader import discover_games
from Utils.mod_state import InstalledMod, STATE_LOCAL

from conftest import catalog, make_api, make_mod, write_file

DEPS = {
    "runtimeTarget": {"name": ".NETCoreApp,Version=v6.0"},
    "targets": {".NETCoreApp,Version=v6.0": {
        "Stardew Valley/1.6.8": {"dependencies": {"MonoGame.Framework": "3.8.0"}},
        "MonoGame.Framework/3.8.0": {},
    }},
}


@pytest.fixture
def no_steam(monkeypatch):
    monkeypatch.setattr(steam_finder, "steam_roots", lambda: [])


@pytest.fixture
def game(no_steam):
    return discover_games()["Stardew Valley"]


@pytest.fixture
def game_dir(tmp_path, game):
    path = tmp_path / "Stardew Valley"
    path.mkdir()
    game.set_game_path(path)
    return path


def test_discovered_as_base_game(game):
    assert isinstance(game, BaseGame)
    assert game.game_id == GAME_ID
    assert game.steam_id == "413150"
    assert game.gog_id == "1453375253"
    assert game.xbox_id == "ConcernedApe.StardewValleyPC"
    assert game.nexus_game_domain == "stardewvalley"
    assert game.mods_dir == "Mods"
    assert game.executable() in ("Stardew Valley.exe", "StardewValley")


def test_unconfigured_without_steam(game):
    assert game.get_game_path() is None
    assert game.get_mod_paths() == {}
    assert not game.is_configured()


def test_game_path_persists(game, game_dir):
    again = type(game)()
    assert again.get_game_path() == game_dir
    data = json.loads(game._paths_file.read_text(encoding="utf-8"))
    assert data == {"game_path": str(game_dir)}


def test_query_path_finds_steam_install(tmp_path, monkeypatch, game):
    steam_root = tmp_path / "Steam"
    library = tmp_path / "SteamLibrary"
    install = library / "steamapps" / "common" / "Stardew Valley"
    write_file(install / game.required_files[0], b"")
    write_file(steam_root / "steamapps" / "libraryfolders.vdf",
               f'"libraryfolders"\n{{\n  "0"\n  {{\n    "path"    "{library}"\n  }}\n}}\n')
    monkeypatch.setattr(steam_finder, "steam_roots", lambda: [steam_root])

    assert game.query_path() == install
    found = type(game)()
    assert found.get_game_path() == install


def test_supported_tools(game):
    [tool] = game.supported_tools
    assert tool.id == "smapi"
    assert tool.executable == SMAPI_EXE
    assert tool.required_files == (SMAPI_EXE,)
    assert tool.exclusive and tool.relative and tool.default_primary


def test_installer_and_mod_type_registration(game, game_dir):
    assert {(i.id, i.priority) for i in game.mod_installers} == {
        ("smapi-installer", 30), ("stardew-valley-installer", 50), ("sdvrootfolder", 50)}
    assert {(t.id, t.priority) for t in game.mod_types} == {("SMAPI", 30), ("sdvrootfolder", 25)}
    assert game.get_mod_paths() == {
        "": game_dir / "Mods", "SMAPI": game_dir, "sdvrootfolder": game_dir}


def test_installed_version_from_deps_file(game, game_dir):
    write_file(game_dir / "Stardew Valley.deps.json", json.dumps(DEPS))
    assert game.get_installed_version() == "1.6.8"
    assert game.smapi_api().get_game_version() == "1.6.8"
    assert isinstance(game.smapi_api(), SMAPIAPI)


def test_installed_version_unknown(game, game_dir):
    assert game.get_installed_version() is None
    write_file(game_dir / "Stardew Valley.deps.json", '{"targets": {}}')
    assert game.get_installed_version() is None


def test_setup_warns_when_smapi_missing(game, game_dir):
    warnings = game.setup()
    assert (game_dir / "Mods").is_dir()
    assert len(warnings) == 1
    assert "SMAPI is not installed" in warnings[0]
    assert "https://www.nexusmods.com/stardewvalley/mods/2400" in warnings[0]


def test_setup_with_smapi_installed(game, game_dir):
    write_file(game_dir / SMAPI_EXE, b"")
    assert game.setup() == []
    assert game.validate_install() == []


def test_setup_without_game_path(game):
    with pytest.raises(RuntimeError):
        game.setup()


def test_on_mod_enabled_reconciles_rules(monkeypatch, game, store):
    api, _ = make_api(catalog())
    monkeypatch.setattr(game, "smapi_api", lambda: api)
    store.add_mod(GAME_ID, make_mod("cp", {"UniqueID": "Pathoschild.ContentPatcher", "Version": "2.0.0"}))
    store.add_mod(GAME_ID, make_mod("pack", {
        "UniqueID": "Someone.Pack", "Version": "1.0.0",
        "ContentPackFor": {"UniqueID": "Pathoschild.ContentPatcher"},
    }))

    game.on_mod_enabled(store, GAME_ID, "pack")

    [rule] = store.get_mod(GAME_ID, "pack").rules
    assert rule.state == STATE_LOCAL
    assert rule.reference.id == "cp"


def test_on_added_files_reimports(game, game_dir, store):
    created = write_file(game_dir / "Mods" / "SaveBackup" / "backup.zip", b"zip")
    store.add_mod(GAME_ID, InstalledMod(id="smapi", type="SMAPI"))

    game.on_added_files(store, GAME_ID, [AddedFile(str(created), ["smapi"])])

    assert (store.install_path(GAME_ID) / "smapi" / "Mods" / "SaveBackup" / "backup.zip").is_file()
    assert not created.exists()
