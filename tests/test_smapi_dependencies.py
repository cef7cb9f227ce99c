"""
Tests for dependency resolution: version policy, working set and rule mapping.
"""

import pytest
import requests
from packaging.version import Version

from SMAPI.constants import NEXUS_MODS_URL
from SMAPI.smapi_dependencies import (
    REMOTE_INSTRUCTIONS,
    coerce_version,
    get_manifest_dependencies,
    resolve_dependencies,
    version_satisfies,
)
from SMAPI.smapi_manifest import normalise_manifest
from Utils.mod_state import RULE_RECOMMENDS, RULE_REQUIRES, STATE_LOCAL, STATE_REMOTE, STATE_UNRESOLVED

from conftest import catalog, make_api, make_mod

CP_ID = "Pathoschild.ContentPatcher"
CP_ENTRY = {
    "id": CP_ID,
    "metadata": {"id": [CP_ID], "name": "Content Patcher",
                 "main": {"version": "2.1.0", "url": "https://www.nexusmods.com/stardewvalley/mods/1915"}},
}


def manifest_with(*dependencies, **fields):
    raw = {"Name": "Test Mod", "UniqueID": "Tester.TestMod", "Version": "1.0.0",
           "Dependencies": list(dependencies)}
    raw.update(fields)
    return normalise_manifest(raw)


def installed(mod_id, unique_id, version):
    return make_mod(mod_id, {"UniqueID": unique_id, "Version": version})


# ── versions ─────────────────────────────────────────────────────────────────

def test_coerce_version():
    assert coerce_version("1") == Version("1.0.0")
    assert coerce_version("v1.2") == Version("1.2.0")
    assert coerce_version("1.2.3.4") == Version("1.2.3")
    assert coerce_version("beta") is None
    assert coerce_version(None) is None


@pytest.mark.parametrize("candidate, minimum, expected", [
    ("1.2.0", "1.2.0", True),
    ("1.9.5", "1.2", True),
    ("2.0.0", "1.2", True),
    ("2.0.0", "1.30.0", True),
    ("1.1.9", "1.2", False),
    ("1.2.0", "2.0.0", False),
    ("0.3.0", "0.2.1", True),
    ("0.0.2", "0.0.3", False),
    ("1.2", "1.2.0", True),
    # prerelease suffixes are ignored, so a prerelease of the minimum counts
    ("1.2.0-beta", "1.2.0", True),
    ("1.2.3-unofficial.1-pathoschild", "1.0.0", True),
    ("1.2.3-alpha.beta", "1.2.3", True),
    ("not-a-version", "1.0", False),
    ("1.0.0", "garbage", False),
    (None, "1.0", False),
])
def test_version_satisfies_minimum(candidate, minimum, expected):
    assert version_satisfies(candidate, minimum) is expected


# ── working set ──────────────────────────────────────────────────────────────

def test_content_pack_for_becomes_required_dependency():
    manifest = normalise_manifest({"UniqueID": "Someone.Pack", "Version": "1.0.0",
                                   "ContentPackFor": {"UniqueID": CP_ID}})
    deps = get_manifest_dependencies(manifest)
    assert [(d.unique_id, d.is_required, d.minimum_version) for d in deps] == [(CP_ID, True, None)]


def test_working_set_deduplicates_case_insensitively():
    manifest = manifest_with(
        {"UniqueID": CP_ID, "IsRequired": False},
        {"UniqueID": CP_ID.upper(), "IsRequired": True},
        ContentPackFor={"UniqueID": CP_ID.lower()},
    )
    deps = get_manifest_dependencies(manifest)
    assert len(deps) == 1
    assert deps[0].unique_id == CP_ID
    assert deps[0].is_required is False


# ── resolution ───────────────────────────────────────────────────────────────

def test_no_dependencies_no_request():
    api, session = make_api(catalog(CP_ENTRY))
    assert resolve_dependencies(manifest_with(), {}, api) == []
    assert session.posts == []


def test_local_match_with_compatible_version():
    api, session = make_api(catalog(CP_ENTRY))
    mods = {"cp-mod": installed("cp-mod", CP_ID, "2.0.0")}
    manifest = manifest_with({"UniqueID": CP_ID.lower(), "MinimumVersion": "1.30.0", "IsRequired": True})

    [rule] = resolve_dependencies(manifest, mods, api)

    assert rule.state == STATE_LOCAL
    assert rule.type == RULE_REQUIRES
    assert rule.reference.id == "cp-mod"
    assert rule.reference.version_match == "1.30.0^"
    assert rule.extra == {"required": True}
    assert rule.dependency_id == CP_ID.lower()
    assert session.posts == []


def test_local_match_without_minimum_accepts_any_version():
    api, _ = make_api()
    mods = {"cp-mod": installed("cp-mod", CP_ID, "0.0.1-alpha")}
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID}), mods, api)
    assert rule.state == STATE_LOCAL
    assert rule.reference.version_match == "*"


def test_local_version_too_low_goes_remote():
    api, session = make_api(catalog(CP_ENTRY))
    mods = {"cp-mod": installed("cp-mod", CP_ID, "1.2.0")}
    manifest = manifest_with({"UniqueID": CP_ID, "MinimumVersion": "2.0.0", "IsRequired": True})

    [rule] = resolve_dependencies(manifest, mods, api)

    assert rule.state == STATE_REMOTE
    assert rule.reference.id is None
    assert rule.reference.id_hint == CP_ID
    assert rule.reference.description == "Content Patcher"
    assert rule.reference.instructions == REMOTE_INSTRUCTIONS
    assert rule.download_hint.mode == "browse"
    assert rule.download_hint.url == "https://www.nexusmods.com/stardewvalley/mods/1915"
    assert session.posts[0]["json"]["includeExtendedMetadata"] is True
    assert session.posts[0]["json"]["mods"] == [{"id": CP_ID}]


def test_local_match_picks_first_installed_mod():
    api, _ = make_api()
    mods = {
        "older": installed("older", CP_ID, "1.0.0"),
        "first": installed("first", CP_ID, "2.0.0"),
        "second": installed("second", CP_ID, "2.5.0"),
    }
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID, "MinimumVersion": "2.0"}), mods, api)
    assert rule.reference.id == "first"


def test_newer_major_version_satisfies_minimum():
    api, session = make_api(catalog(CP_ENTRY))
    mods = {"cp-mod": installed("cp-mod", CP_ID, "3.1.0")}
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID, "MinimumVersion": "1.30.0"}), mods, api)
    assert rule.state == STATE_LOCAL
    assert session.posts == []


def test_unofficial_semver_build_matches_locally():
    api, session = make_api()
    mods = {"ab": installed("ab", "A.B", "1.2.3-unofficial.1-pathoschild")}
    [rule] = resolve_dependencies(manifest_with({"UniqueID": "A.B", "MinimumVersion": "1.0.0"}), mods, api)
    assert rule.state == STATE_LOCAL
    assert rule.reference.id == "ab"
    assert session.posts == []


def test_stored_manifests_do_not_warn_during_resolution(log_lines):
    api, _ = make_api(catalog())
    mods = {f"mod{i}": installed(f"mod{i}", f"Someone.Mod{i}", "1.0.0") for i in range(20)}
    manifest = manifest_with(*({"UniqueID": f"Nobody.Ghost{i}"} for i in range(5)))
    log_lines.clear()

    rules = resolve_dependencies(manifest, mods, api)

    assert [r.state for r in rules] == [STATE_UNRESOLVED] * 5
    assert not any("Could not find key" in line for line in log_lines)


def test_unknown_dependency_is_unresolved():
    api, _ = make_api(catalog(CP_ENTRY))
    [rule] = resolve_dependencies(manifest_with({"UniqueID": "Nobody.Ghost", "IsRequired": True}), {}, api)
    assert rule.state == STATE_UNRESOLVED
    assert rule.reference.file_expression == "Nobody.Ghost"
    assert rule.reference.id is None
    assert rule.reference.id_hint is None
    assert rule.download_hint is None


def test_optional_dependency_is_recommended():
    api, _ = make_api(catalog(CP_ENTRY))
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID}), {}, api)
    assert rule.type == RULE_RECOMMENDS
    assert rule.extra == {"required": False}


def test_rules_keep_declaration_order_and_use_one_request():
    api, session = make_api(catalog(CP_ENTRY))
    mods = {"spacecore": installed("spacecore", "spacechase0.SpaceCore", "1.20.0")}
    manifest = manifest_with(
        {"UniqueID": CP_ID, "IsRequired": True},
        {"UniqueID": "spacechase0.SpaceCore", "IsRequired": True},
        {"UniqueID": "Nobody.Ghost"},
    )

    rules = resolve_dependencies(manifest, mods, api)

    assert [(r.dependency_id, r.state) for r in rules] == [
        (CP_ID, STATE_REMOTE),
        ("spacechase0.SpaceCore", STATE_LOCAL),
        ("Nobody.Ghost", STATE_UNRESOLVED),
    ]
    assert len(session.posts) == 1
    assert [m["id"] for m in session.posts[0]["json"]["mods"]] == [CP_ID, "Nobody.Ghost"]


def test_catalog_failure_leaves_remaining_unresolved(log_lines):
    api, _ = make_api(lambda payload: requests.ConnectionError("offline"))
    mods = {"spacecore": installed("spacecore", "spacechase0.SpaceCore", "1.20.0")}
    manifest = manifest_with(
        {"UniqueID": CP_ID, "IsRequired": True},
        {"UniqueID": "spacechase0.SpaceCore"},
    )

    rules = resolve_dependencies(manifest, mods, api)

    assert [r.state for r in rules] == [STATE_UNRESOLVED, STATE_LOCAL]
    assert any("[ERROR]" in line for line in log_lines)


def test_missing_game_version_leaves_dependencies_unresolved():
    api, session = make_api(catalog(CP_ENTRY), game_version=None)
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID}), {}, api)
    assert rule.state == STATE_UNRESOLVED
    assert session.posts == []


def test_response_matched_case_insensitively():
    entry = dict(CP_ENTRY, id=CP_ID.upper())
    api, _ = make_api(catalog(entry))
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID}), {}, api)
    assert rule.state == STATE_REMOTE
    assert rule.reference.id_hint == CP_ID.upper()


def test_remote_url_falls_back_to_suggested_update():
    entry = {"id": CP_ID, "suggestedUpdate": {"version": "2.1.0", "url": "https://example.org/cp"}}
    api, _ = make_api(catalog(entry))
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID}), {}, api)
    assert rule.download_hint.url == "https://example.org/cp"
    assert rule.reference.description == CP_ID


def test_remote_url_falls_back_to_nexus_listing():
    api, _ = make_api(catalog({"id": CP_ID}))
    [rule] = resolve_dependencies(manifest_with({"UniqueID": CP_ID}), {}, api)
    assert rule.download_hint.url == NEXUS_MODS_URL


def test_content_pack_resolves_to_required_rule():
    api, _ = make_api()
    mods = {"cp-mod": installed("cp-mod", CP_ID, "2.0.0")}
    manifest = normalise_manifest({"UniqueID": "Someone.Pack", "Version": "1.0.0",
                                   "ContentPackFor": {"UniqueID": CP_ID}})
    [rule] = resolve_dependencies(manifest, mods, api)
    assert rule.type == RULE_REQUIRES
    assert rule.state == STATE_LOCAL
    assert rule.reference.id == "cp-mod"
