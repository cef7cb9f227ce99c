"""
smapi_types.py
Typed records for SMAPI manifests and the smapi.io web API.

Manifests arrive with inconsistent key casing, so nothing in here is built
directly from raw JSON: see ``SMAPI.smapi_manifest`` for the normaliser.
API responses are parsed with ``from_json`` helpers that tolerate missing
optional fields.

API documentation:
https://github.com/Pathoschild/SMAPI/blob/develop/docs/technical/web.md#web-api
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Manifests
# ---------------------------------------------------------------------------

@dataclass
class DependencyDeclaration:
    """One entry of a manifest's ``Dependencies`` (or its ``ContentPackFor``)."""
    unique_id: str
    minimum_version: str | None = None
    is_required: bool = False

    def to_json(self) -> dict:
        data: dict[str, Any] = {"UniqueID": self.unique_id}
        if self.minimum_version:
            data["MinimumVersion"] = self.minimum_version
        data["IsRequired"] = self.is_required
        return data


@dataclass
class SMAPIManifest:
    """Canonical form of a SMAPI ``manifest.json``.

    A manifest without ``unique_id`` can still depend on others, but nothing
    can depend on it.
    """
    name: str | None = None
    author: str | None = None
    version: str | None = None
    description: str | None = None
    unique_id: str | None = None
    entry_dll: str | None = None
    minimum_api_version: str | None = None
    update_keys: list[str] | None = None
    content_pack_for: DependencyDeclaration | None = None
    dependencies: list[DependencyDeclaration] = field(default_factory=list)
    mod_updater: dict | None = None

    @property
    def is_dll_mod(self) -> bool:
        return self.entry_dll is not None

    @property
    def is_content_pack(self) -> bool:
        return bool(self.content_pack_for and self.content_pack_for.unique_id)

    def to_json(self) -> dict:
        """Plain-data projection, persisted as the ``smapiManifests`` attribute."""
        data: dict[str, Any] = {
            "Name": self.name,
            "Author": self.author,
            "Version": self.version,
            "Description": self.description,
            "UniqueID": self.unique_id,
            "EntryDll": self.entry_dll,
            "MinimumApiVersion": self.minimum_api_version,
            "UpdateKeys": list(self.update_keys) if self.update_keys is not None else None,
            "ContentPackFor": self.content_pack_for.to_json() if self.content_pack_for else None,
            "Dependencies": [d.to_json() for d in self.dependencies],
            "ModUpdater": dict(self.mod_updater) if self.mod_updater is not None else None,
        }
        return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# smapi.io API
# ---------------------------------------------------------------------------

@dataclass
class APIModIdentity:
    """One mod in a POST /mods request."""
    id: str
    installed_version: str | None = None
    update_keys: list[str] | None = None
    is_broken: bool | None = None

    def to_json(self) -> dict:
        data: dict[str, Any] = {"id": self.id}
        if self.installed_version is not None:
            data["installedVersion"] = self.installed_version
        if self.update_keys is not None:
            data["updateKeys"] = list(self.update_keys)
        if self.is_broken is not None:
            data["isBroken"] = self.is_broken
        return data


@dataclass
class APIRelease:
    version: str = ""
    url: str = ""

    @classmethod
    def from_json(cls, data: Any) -> APIRelease | None:
        if not isinstance(data, dict):
            return None
        return cls(version=str(data.get("version") or ""), url=str(data.get("url") or ""))


@dataclass
class APIModMetadata:
    """Extended metadata, only returned when ``includeExtendedMetadata`` is set."""
    id: list[str] = field(default_factory=list)
    name: str = ""
    nexus_id: int | None = None
    curse_forge_id: int | None = None
    curse_forge_key: str | None = None
    mod_drop_id: int | None = None
    github_repo: str | None = None
    main: APIRelease | None = None
    has_beta_info: bool = False
    compatibility_status: str | None = None
    compatibility_summary: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> APIModMetadata | None:
        if not isinstance(data, dict):
            return None
        ids = data.get("id") or []
        return cls(
            id=[str(i) for i in ids] if isinstance(ids, list) else [str(ids)],
            name=str(data.get("name") or ""),
            nexus_id=data.get("nexusID"),
            curse_forge_id=data.get("curseForgeID"),
            curse_forge_key=data.get("curseForgeKey"),
            mod_drop_id=data.get("modDropID"),
            github_repo=data.get("gitHubRepo"),
            main=APIRelease.from_json(data.get("main")),
            has_beta_info=bool(data.get("hasBetaInfo", False)),
            compatibility_status=data.get("compatibilityStatus"),
            compatibility_summary=data.get("compatibilitySummary"),
        )


@dataclass
class APIMod:
    """One entry of the POST /mods response (order unrelated to the request)."""
    id: str
    suggested_update: APIRelease | None = None
    errors: list[str] = field(default_factory=list)
    metadata: APIModMetadata | None = None

    @classmethod
    def from_json(cls, data: Any) -> APIMod | None:
        if not isinstance(data, dict) or not data.get("id"):
            return None
        errors = data.get("errors") or []
        return cls(
            id=str(data["id"]),
            suggested_update=APIRelease.from_json(data.get("suggestedUpdate")),
            errors=[str(e) for e in errors] if isinstance(errors, list) else [],
            metadata=APIModMetadata.from_json(data.get("metadata")),
        )
