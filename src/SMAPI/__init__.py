"""
SMAPI integration package.

Manifest normalisation, the smapi.io catalog client, dependency resolution,
rule reconciliation and update checks for Stardew Valley mods.
"""

from .smapi_api import SMAPIAPI, SMAPIAPIError
from .smapi_dependencies import resolve_dependencies, version_satisfies
from .smapi_manifest import normalise_manifest, read_manifest, get_mod_manifests
from .smapi_rules import RuleChanges, on_mod_enabled, plan_rule_changes, apply_rule_changes
from .smapi_types import SMAPIManifest, DependencyDeclaration, APIMod, APIModIdentity
from .smapi_update_checker import check_for_updates, UpdateInfo

__all__ = ["SMAPIAPI", "SMAPIAPIError", "resolve_dependencies", "version_satisfies",
           "normalise_manifest", "read_manifest", "get_mod_manifests",
           "RuleChanges", "on_mod_enabled", "plan_rule_changes", "apply_rule_changes",
           "SMAPIManifest", "DependencyDeclaration", "APIMod", "APIModIdentity",
           "check_for_updates", "UpdateInfo"]
