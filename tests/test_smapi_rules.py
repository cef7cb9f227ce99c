"""
Tests for reconciling stored dependency rules when a mod is enabled.
"""

from SMAPI.constants import GAME_ID
from SMAPI.smapi_rules import RuleChanges, apply_rule_changes, on_mod_enabled, plan_rule_changes
from Utils.mod_state import (
    RULE_REQUIRES,
    STATE_LOCAL,
    STATE_UNRESOLVED,
    ModReference,
    ModRule,
)

from conftest import catalog, make_api, make_mod

CP_ID = "Pathoschild.ContentPatcher"


def seed(store):
    store.add_mod(GAME_ID, make_mod("cp", {"UniqueID": CP_ID, "Version": "2.0.0"}))
    store.add_mod(GAME_ID, make_mod("farm", {
        "UniqueID": "Someone.Farm", "Version": "1.0.0",
        "Dependencies": [
            {"UniqueID": CP_ID, "MinimumVersion": "1.30.0", "IsRequired": True},
            {"UniqueID": "Nobody.Ghost"},
        ],
    }))


def test_enabling_mod_stores_rules(store):
    seed(store)
    api, _ = make_api(catalog())

    changes = on_mod_enabled(store, api, GAME_ID, "farm")

    rules = store.get_mod(GAME_ID, "farm").rules
    assert changes.to_remove == []
    assert [(r.dependency_id, r.state) for r in rules] == [
        (CP_ID, STATE_LOCAL), ("Nobody.Ghost", STATE_UNRESOLVED)]


def test_reconciliation_is_idempotent(store):
    seed(store)
    api, _ = make_api(catalog())

    on_mod_enabled(store, api, GAME_ID, "farm")
    first = [r.to_json() for r in store.get_mod(GAME_ID, "farm").rules]
    changes = on_mod_enabled(store, api, GAME_ID, "farm")
    second = [r.to_json() for r in store.get_mod(GAME_ID, "farm").rules]
    third_changes = on_mod_enabled(store, api, GAME_ID, "farm")
    third = [r.to_json() for r in store.get_mod(GAME_ID, "farm").rules]

    assert first == second == third
    assert len(third) == 2
    assert len(changes.to_remove) == 2
    assert len(changes.to_add) == 2
    assert [r.to_json() for r in third_changes.to_remove] == [r.to_json() for r in third_changes.to_add]


def test_stale_rule_for_same_dependency_is_replaced(store):
    seed(store)
    stale = ModRule(type=RULE_REQUIRES, state=STATE_UNRESOLVED, dependency_id=CP_ID.upper(),
                    reference=ModReference(file_expression=CP_ID.upper()))
    store.batch_add_rules(GAME_ID, "farm", [stale])
    api, _ = make_api(catalog())

    on_mod_enabled(store, api, GAME_ID, "farm")

    rules = store.get_mod(GAME_ID, "farm").rules
    cp_rules = [r for r in rules if r.match_key == CP_ID.lower()]
    assert len(cp_rules) == 1
    assert cp_rules[0].state == STATE_LOCAL


def test_unrelated_rules_are_kept(store):
    seed(store)
    manual = ModRule(type="after", reference=ModReference(id="cp"))
    other = ModRule(type=RULE_REQUIRES, dependency_id="Someone.Else",
                    reference=ModReference(file_expression="Someone.Else"))
    store.batch_add_rules(GAME_ID, "farm", [manual, other])
    api, _ = make_api(catalog())

    on_mod_enabled(store, api, GAME_ID, "farm")

    rules = store.get_mod(GAME_ID, "farm").rules
    assert rules[:2] == [manual, other]
    assert len(rules) == 4


def test_multiple_manifests_share_one_rule_per_dependency(store):
    store.add_mod(GAME_ID, make_mod("bundle",
        {"UniqueID": "Someone.A", "Version": "1.0.0", "Dependencies": [{"UniqueID": CP_ID}]},
        {"UniqueID": "Someone.B", "Version": "1.0.0", "ContentPackFor": {"UniqueID": CP_ID}},
    ))
    api, _ = make_api(catalog())

    changes = on_mod_enabled(store, api, GAME_ID, "bundle")

    assert [r.dependency_id for r in changes.to_add] == [CP_ID]
    assert len(store.get_mod(GAME_ID, "bundle").rules) == 1


def test_other_games_are_ignored(store):
    seed(store)
    api, session = make_api(catalog())
    assert on_mod_enabled(store, api, "skyrimse", "farm").is_empty
    assert store.get_mod(GAME_ID, "farm").rules == []
    assert session.posts == []


def test_unknown_mod_is_ignored(store):
    api, session = make_api(catalog())
    assert on_mod_enabled(store, api, GAME_ID, "missing").is_empty
    assert session.posts == []


def test_mod_without_manifests_has_no_changes(store):
    store.add_mod(GAME_ID, make_mod("textures"))
    api, session = make_api(catalog())
    assert on_mod_enabled(store, api, GAME_ID, "textures").is_empty
    assert session.posts == []


def test_store_failure_is_logged_not_raised(store, monkeypatch, log_lines):
    seed(store)
    api, _ = make_api(catalog())

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(store, "batch_add_rules", boom)
    assert on_mod_enabled(store, api, GAME_ID, "farm").is_empty
    assert any("[ERROR] Could not update dependency rules for farm" in line for line in log_lines)


def test_plan_does_not_touch_the_store(store):
    seed(store)
    api, _ = make_api(catalog())
    mods = store.get_installed_mods(GAME_ID)
    changes = plan_rule_changes(mods["farm"], mods, api)
    assert len(changes.to_add) == 2
    assert store.get_mod(GAME_ID, "farm").rules == []


def test_apply_removes_before_adding():
    calls = []

    class RecordingStore:
        def batch_remove_rules(self, game_id, mod_id, rules):
            calls.append(("remove", list(rules)))

        def batch_add_rules(self, game_id, mod_id, rules):
            calls.append(("add", list(rules)))

    old = ModRule(type=RULE_REQUIRES, dependency_id="a", reference=ModReference(file_expression="a"))
    new = ModRule(type=RULE_REQUIRES, dependency_id="a", state=STATE_LOCAL,
                  reference=ModReference(id="mod-a"))
    apply_rule_changes(RecordingStore(), GAME_ID, "m", RuleChanges(to_remove=[old], to_add=[new]))
    assert calls == [("remove", [old]), ("add", [new])]


def test_apply_skips_empty_batches():
    calls = []

    class RecordingStore:
        def batch_remove_rules(self, *args):
            calls.append("remove")

        def batch_add_rules(self, *args):
            calls.append("add")

    new = ModRule(type=RULE_REQUIRES, dependency_id="a", reference=ModReference(file_expression="a"))
    apply_rule_changes(RecordingStore(), GAME_ID, "m", RuleChanges(to_add=[new]))
    assert calls == ["add"]
