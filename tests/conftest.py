"""
Shared fixtures and helpers for the Stardew Valley / SMAPI test suite.
"""

import json

import pytest

from SMAPI.smapi_api import SMAPIAPI
from SMAPI.smapi_manifest import SMAPI_MANIFESTS_ATTRIBUTE, normalise_manifest
from Utils.app_log import set_app_log
from Utils.mod_state import InstalledMod, ModStore


# ── fake HTTP ────────────────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = "OK" if self.ok else "Server Error"
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; records every POST."""

    def __init__(self, responder=None):
        self.headers = {}
        self.posts = []
        self._responder = responder or (lambda payload: FakeResponse([]))

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        result = self._responder(json)
        if isinstance(result, Exception):
            raise result
        return result


def catalog(*entries):
    """Responder answering like smapi.io: only entries whose id was requested."""
    def respond(payload):
        wanted = {m["id"].lower() for m in payload["mods"]}
        return FakeResponse([e for e in entries if e["id"].lower() in wanted])
    return respond


def make_api(responder=None, game_version="1.6.8"):
    session = FakeSession(responder)
    return SMAPIAPI(lambda: game_version, session=session), session


# ── mods ─────────────────────────────────────────────────────────────────────

def make_mod(mod_id, *manifests, **kwargs):
    """InstalledMod carrying the given raw manifests as its smapiManifests attribute."""
    attributes = dict(kwargs.pop("attributes", {}))
    if manifests:
        attributes[SMAPI_MANIFESTS_ATTRIBUTE] = {
            m["UniqueID"]: normalise_manifest(m).to_json() for m in manifests
        }
    return InstalledMod(id=mod_id, attributes=attributes, **kwargs)


def write_file(path, data=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, bytes):
        path.write_bytes(data)
    else:
        path.write_text(data, encoding="utf-8")
    return path


# ── fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config writes (paths.json, Profiles) inside tmp_path."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("MOD_MANAGER_PROFILES_DIR", raising=False)


@pytest.fixture
def log_lines():
    lines = []
    set_app_log(lines.append)
    yield lines
    set_app_log(None)


@pytest.fixture
def store(tmp_path):
    return ModStore(tmp_path / "state" / "mods.json", staging_root=tmp_path / "staging")
