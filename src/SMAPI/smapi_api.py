"""
smapi_api.py
Client for the smapi.io mod catalog (web API v3.0).

The catalog maps SMAPI UniqueIDs to update and download metadata.  One POST
carries every mod in the batch:

    POST https://smapi.io/api/v3.0/mods
    {"mods": [{"id": "...", "installedVersion": "...", "updateKeys": [...]}],
     "apiVersion": "3.0", "gameVersion": "1.6.8", "platform": "Linux",
     "includeExtendedMetadata": true}

The response is a JSON array of entries correlated to the request by ``id``
(case-insensitive); order is not guaranteed.

Failure policy: ``send_query`` never raises.  Missing game version, transport
errors, HTTP errors and malformed bodies are logged and reported as an empty
result, so callers handle "no data for this id" in exactly one way.  There are
no retries.

Usage::

    from SMAPI.smapi_api import SMAPIAPI

    api = SMAPIAPI(game.get_installed_version)
    results = api.send_query([APIModIdentity(id="Pathoschild.ContentPatcher")], True)
"""

from __future__ import annotations

import json
import sys
from typing import Callable, Iterable, Mapping

import requests

from SMAPI.smapi_manifest import get_mod_manifests
from SMAPI.smapi_types import APIMod, APIModIdentity
from Utils.app_log import app_log
from Utils.mod_state import InstalledMod
from version import __version__

SMAPI_API_VERSION = "3.0"
API_URL = f"https://smapi.io/api/v{SMAPI_API_VERSION}/mods"
APP_NAME = "AmethystModManager"

_LOG_BODY_LIMIT = 1200


class SMAPIAPIError(Exception):
    """Raised internally for catalog failures; never escapes ``send_query``."""
    def __init__(self, message: str, status_code: int = 0, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


def platform_name(platform: str | None = None) -> str:
    """Map ``sys.platform`` to the catalog's platform tag."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return "Windows"
    if platform.startswith("linux"):
        return "Linux"
    return "Mac"


def shorten_game_version(version: str) -> str:
    """The catalog only accepts x.y.z; the game may report x.y.z.w."""
    return ".".join(version.strip().split(".")[:3])


class SMAPIAPI:
    """
    Stateless smapi.io catalog client.

    Parameters
    ----------
    game_version_fn : callable
        Host lookup for the installed game version; returns None when unknown.
    timeout : float
        Request timeout in seconds.
    session : requests.Session, optional
        Session to send requests with (a new one is created by default).
    """

    def __init__(self, game_version_fn: Callable[[], str | None],
                 timeout: float = 30.0,
                 session: requests.Session | None = None,
                 api_url: str = API_URL):
        self._game_version_fn = game_version_fn
        self._timeout = timeout
        self.api_url = api_url
        self._session = session or requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"{APP_NAME}/{__version__}",
        })

    # -- low-level ----------------------------------------------------------

    def get_game_version(self) -> str:
        version = self._game_version_fn()
        if not version:
            raise SMAPIAPIError("Could not get the game version for Stardew Valley.")
        return shorten_game_version(version)

    def _log_response(self, resp: requests.Response) -> None:
        app_log(f"SMAPI API POST {self.api_url} → {resp.status_code}", "debug")
        body = resp.text or "(empty)"
        if len(body) > _LOG_BODY_LIMIT:
            body = body[:_LOG_BODY_LIMIT] + "..."
        app_log(f"  Response: {body}", "debug")

    def _post(self, payload: dict) -> list:
        url = self.api_url
        try:
            resp = self._session.post(url, json=payload, timeout=self._timeout)
        except requests.Timeout as exc:
            raise SMAPIAPIError(
                f"Request timed out after {self._timeout}s", url=url) from exc
        except requests.RequestException as exc:
            raise SMAPIAPIError(f"Connection failed: {exc}", url=url) from exc

        self._log_response(resp)

        if not resp.ok:
            raise SMAPIAPIError(resp.text[:300] or resp.reason or "HTTP error",
                                resp.status_code, url)
        try:
            data = resp.json()
        except ValueError as exc:
            raise SMAPIAPIError("Response is not valid JSON", resp.status_code, url) from exc
        if not isinstance(data, list):
            raise SMAPIAPIError("Response is not a list of mods", resp.status_code, url)
        return data

    # -- queries ------------------------------------------------------------

    def build_request(self, mods: Iterable[APIModIdentity],
                      include_meta: bool = False) -> dict:
        """Return the POST body for *mods* (raises SMAPIAPIError without a game version)."""
        return {
            "mods": [m.to_json() for m in mods],
            "apiVersion": SMAPI_API_VERSION,
            "gameVersion": self.get_game_version(),
            "platform": platform_name(),
            "includeExtendedMetadata": include_meta,
        }

    def send_query(self, mods: Iterable[APIModIdentity],
                   include_meta: bool = False) -> list[APIMod]:
        """Query the catalog for *mods* in a single request. Returns [] on any failure."""
        mods = list(mods)
        if not mods:
            return []
        try:
            payload = self.build_request(mods, include_meta)
            app_log(f"SMAPI API request: {json.dumps(payload)}", "debug")
            raw = self._post(payload)
        except SMAPIAPIError as exc:
            app_log(f"Error fetching data from the SMAPI API: {exc}", "error")
            return []
        results: list[APIMod] = []
        for item in raw:
            parsed = APIMod.from_json(item)
            if parsed is not None:
                results.append(parsed)
        return results

    def fetch_mod_info(self, include_meta: bool,
                       mods: Mapping[str, InstalledMod]) -> list[APIMod]:
        """Query the catalog for every SMAPI manifest bundled in *mods*."""
        identities: list[APIModIdentity] = []
        for mod in mods.values():
            manifests = get_mod_manifests(mod)
            if not manifests:
                continue
            nexus_id = mod.attributes.get("modId")
            from_nexus = mod.attributes.get("source") == "nexus" and nexus_id
            for manifest in manifests.values():
                if not manifest.unique_id:
                    continue
                if from_nexus:
                    keys = [f"nexus:{nexus_id}"]
                else:
                    keys = list(manifest.update_keys or [])
                identities.append(APIModIdentity(
                    id=manifest.unique_id,
                    installed_version=manifest.version,
                    update_keys=keys,
                ))
        return self.send_query(identities, include_meta)


def find_result(results: Iterable[APIMod], unique_id: str) -> APIMod | None:
    """Return the response entry for *unique_id* (case-insensitive), or None."""
    wanted = unique_id.lower()
    for result in results:
        if result.id.lower() == wanted:
            return result
    return None
