# tests/packforge/content/test_type_registry.py
from pathlib import Path

from packforge.content.baseline import BaselineEntry, BaselineManifest
from packforge.content.type_registry import TypeRegistry


def _baseline() -> BaselineManifest:
    return BaselineManifest([
        BaselineEntry("Weapon_Laser", "WeaponDef", Path("/b/Weapon_Laser.json")),
        BaselineEntry("Weapon_Laser", "UpgradeDef", Path("/b/upgrades/Weapon_Laser.json")),
    ])


def test_getTypes_learns_from_baseline_once():
    registry = TypeRegistry()
    assert registry.getTypes("Weapon_Laser") is None
    assert registry.getTypes("Weapon_Laser", _baseline()) == ["WeaponDef", "UpgradeDef"]
    # Now known without the baseline
    assert registry.getTypes("Weapon_Laser") == ["WeaponDef", "UpgradeDef"]


def test_getTypes_unknown_everywhere_is_none():
    assert TypeRegistry().getTypes("nope", _baseline()) is None


def test_tryAddType_is_append_only_and_unique():
    registry = TypeRegistry()
    assert registry.tryAddType("x", "MechDef") is True
    assert registry.tryAddType("x", "MechDef") is False
    assert registry.tryAddType("x", "ChassisDef") is True
    assert registry.getTypes("x") == ["MechDef", "ChassisDef"]


def test_registry_persists(tmp_path):
    path = tmp_path / "Cache" / "type_cache.json5"
    registry = TypeRegistry({"a": ["MechDef"]})
    registry.tryAddType("b", "WeaponDef")
    registry.writeTo(path)

    loaded = TypeRegistry.readFrom(path)
    assert loaded.toDict() == {"a": ["MechDef"], "b": ["WeaponDef"]}


def test_unreadable_registry_starts_empty(tmp_path):
    path = tmp_path / "type_cache.json5"
    path.write_text("][", encoding="utf-8")
    assert TypeRegistry.readFrom(path).toDict() == {}


def test_baseline_lookups():
    baseline = _baseline()
    assert baseline.findById("Weapon_Laser").type == "UpgradeDef"
    assert baseline.findByFileName("Weapon_Laser.json").type == "UpgradeDef"
    assert baseline.findById("missing") is None


def test_getTypes_adds_baseline_types_to_an_already_known_id():
    registry = TypeRegistry()
    registry.tryAddType("Weapon_Laser", "UpgradeDef")
    assert registry.getTypes("Weapon_Laser", _baseline()) == ["UpgradeDef", "WeaponDef"]
