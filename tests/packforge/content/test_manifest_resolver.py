# tests/packforge/content/test_manifest_resolver.py
import json

import pytest

from packforge.config.settings import PackageSettings
from packforge.content.load_order import ExclusionReason, resolveLoadOrder
from packforge.content.manifest_resolver import ManifestResolver
from packforge.content.merge_cache import MergeCache
from packforge.content.pack_descriptor import discoverPackages
from packforge.content.type_registry import TypeRegistry


@pytest.fixture
def resolve(host):
    """resolve() -> (ManifestResult, ManifestResolver) over every package currently on disk."""
    def _resolve():
        discovery = discoverPackages(host.packagesDir, PackageSettings())
        order = resolveLoadOrder(discovery.packages, [], host.hostVersion())
        resolver = ManifestResolver(
            baseline=host.baselineManifest(),
            baselineDir=host.baselineDir,
            typeRegistry=TypeRegistry(),
            mergeCache=MergeCache(rootDir=host.rootDir, cacheDir=host.rootDir / ".packforge" / "Cache"),
        )
        resolver.result.excluded.update(order.excluded)
        return resolver.resolve(order.order, discovery.packages), resolver
    return _resolve


def _read(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_full_replacement_discards_pending_merge(makePackage, resolve):
    makePackage("Core", manifest=[{"type": "WeaponDef", "path": "x.json"}], files={"x.json": {"id": "X", "Damage": 1}})
    makePackage(
        "AddOnA",
        dependsOn=["Core"],
        manifest=[{"type": "WeaponDef", "path": "p1.json", "shouldMerge": True}],
        files={"p1.json": {"id": "X", "Damage": 2}},
    )
    e2 = makePackage(
        "AddOnB",
        dependsOn=["AddOnA"],
        manifest=[{"type": "WeaponDef", "path": "x.json"}],
        files={"x.json": {"id": "X", "Damage": 3}},
    ) / "x.json"

    result, resolver = resolve()

    winning = result.entries[("X", "WeaponDef")]
    assert winning.path == e2.resolve()
    assert winning.packageName == "AddOnB"
    assert resolver.mergeCache.mergesPerformed == 0
    assert resolver.pendingMerges() == {}


def test_merge_chain_builds_artifact_on_last_placed_entry(makePackage, resolve):
    makePackage("Core", manifest=[{"type": "WeaponDef", "path": "x.json"}], files={"x.json": {"id": "X", "Damage": 1, "Tags": ["a"]}})
    makePackage(
        "Patch",
        dependsOn=["Core"],
        manifest=[{"type": "WeaponDef", "path": "patches"}],
        files={},
    )
    makePackage(
        "Patch2",
        dependsOn=["Core"],
        manifest=[{"type": "WeaponDef", "path": "p.json", "shouldMerge": True}],
        files={"p.json": {"id": "X", "Tags": ["b"], "Tags__merge": "append"}},
    )

    result, resolver = resolve()

    winning = result.entries[("X", "WeaponDef")]
    assert winning.packageName is None
    assert winning.addToDatabase is True
    assert _read(winning.path) == {"id": "X", "Damage": 1, "Tags": ["a", "b"]}
    assert resolver.mergeCache.mergesPerformed == 1


def test_implicit_override_merges_onto_baseline(makePackage, resolve, host):
    makePackage("Tweaks", files={"baseline/data/weapon/Weapon_Laser.json": {"Damage": 12}})

    result, resolver = resolve()

    winning = result.entries[("Weapon_Laser", "WeaponDef")]
    assert _read(winning.path) == {"Description": {"Id": "Weapon_Laser"}, "Damage": 12, "Tags": ["energy"]}
    assert resolver.typeRegistry.getTypes("Weapon_Laser") == ["WeaponDef"]


def test_implicit_override_without_baseline_file_is_skipped(makePackage, resolve):
    makePackage("Stray", files={"baseline/data/weapon/Weapon_Ghost.json": {"Damage": 1}})
    result, _ = resolve()
    assert result.entries == {}


def test_implicit_non_json_override_replaces(makePackage, resolve, hostRoot):
    baseline = hostRoot / "baseline"
    (baseline / "sprites").mkdir()
    (baseline / "sprites" / "mech_atlas_icon.png").write_bytes(b"png")
    manifest = json.loads((baseline / "manifest.json5").read_text(encoding="utf-8"))
    manifest["entries"].append({"id": "mech_atlas_icon", "type": "Sprite", "path": "sprites/mech_atlas_icon.png"})
    (baseline / "manifest.json5").write_text(json.dumps(manifest), encoding="utf-8")
    makePackage("Art", files={"baseline/sprites/mech_atlas_icon.png": "new png"})

    result, _ = resolve()

    # Type comes from the baseline manifest through the registry
    assert result.entries[("mech_atlas_icon", "Sprite")].packageName == "Art"


def test_explicit_merge_onto_unknown_id_is_skipped(makePackage, resolve):
    makePackage(
        "Orphan",
        manifest=[{"type": "WeaponDef", "path": "p.json", "shouldMerge": True}],
        files={"p.json": {"id": "Nobody", "Damage": 2}},
    )
    result, resolver = resolve()
    assert result.entries == {}
    assert resolver.pendingMerges() == {}


def test_advanced_merge_targets_id_inside_file(makePackage, resolve):
    makePackage(
        "Adv",
        manifest=[{"type": "AdvancedJSONMerge", "path": "adv"}],
        files={
            "adv/laser.json": {
                "targetId": "Weapon_Laser",
                "instructions": [{"jsonPath": "Damage", "action": "replace", "value": 50}],
            },
            "adv/unknown.json": {"targetId": "Weapon_Missing", "instructions": []},
        },
    )

    result, _ = resolve()

    assert list(result.entries) == [("Weapon_Laser", "WeaponDef")]
    assert _read(result.entries[("Weapon_Laser", "WeaponDef")].path)["Damage"] == 50


def test_special_types_register_paths(makePackage, resolve):
    pkgDir = makePackage(
        "Media",
        manifest=[
            {"type": "Video", "path": "video"},
            {"type": "SoundBank", "path": "audio/bank.bnk", "id": "MechBank"},
            {"type": "AssetBundle", "path": "bundles/mechs"},
        ],
        files={"video/intro.bk2": "v", "audio/bank.bnk": "a", "bundles/mechs": "b"},
    )

    result, _ = resolve()

    assert result.mediaPaths == {"intro.bk2": (pkgDir / "video" / "intro.bk2").resolve()}
    assert result.soundBankPaths == {"MechBank": (pkgDir / "audio" / "bank.bnk").resolve()}
    assert result.assetBundlePaths == {"mechs": (pkgDir / "bundles" / "mechs").resolve()}
    assert ("intro", "Video") not in result.entries
    assert ("mechs", "AssetBundle") in result.entries


def test_addendum_must_exist(makePackage, resolve):
    makePackage(
        "Addenda",
        manifest=[
            {"type": "WeaponDef", "path": "ok.json", "addToAddendum": "ExtraWeapons"},
            {"type": "WeaponDef", "path": "bad.json", "addToAddendum": "Nope"},
        ],
        files={"ok.json": {"id": "ok"}, "bad.json": {"id": "bad"}},
    )

    result, _ = resolve()

    assert list(result.entries) == [("ok", "WeaponDef")]
    assert result.entries[("ok", "WeaponDef")].addendum == "ExtraWeapons"


def test_content_error_voids_package_and_dependents(makePackage, resolve):
    makePackage(
        "Broken",
        manifest=[
            {"type": "WeaponDef", "path": "fine.json"},
            {"type": "Mystery", "path": "fine.json"},
        ],
        files={"fine.json": {"id": "fine"}},
    )
    makePackage("Child", dependsOn=["Broken"], manifest=[{"type": "WeaponDef", "path": "c.json"}], files={"c.json": {"id": "c"}})
    makePackage("Tolerant", dependsOn=["Broken"], ignoreLoadFailure=True, manifest=[{"type": "WeaponDef", "path": "t.json"}], files={"t.json": {"id": "t"}})

    result, _ = resolve()

    assert result.excluded["Broken"].reason is ExclusionReason.CONTENT_ERROR
    assert result.excluded["Child"].reason is ExclusionReason.DEPENDENCY_EXCLUDED
    assert "Tolerant" not in result.excluded
    assert list(result.entries) == [("t", "WeaponDef")]


def test_content_error_with_ignoreLoadFailure_is_silent(makePackage, resolve):
    makePackage("Quiet", ignoreLoadFailure=True, manifest=[{"id": "nothing"}])
    result, _ = resolve()
    assert result.excluded["Quiet"].silent is True


def test_custom_types_flow_to_later_packages(makePackage, resolve):
    makePackage("Core", customTypes=["QuirkDef"], manifest=[{"type": "QuirkDef", "path": "q.json"}], files={"q.json": {"id": "quirk"}})
    makePackage(
        "Extra",
        dependsOn=["Core"],
        manifest=[{"type": "QuirkDef", "path": "q2.json"}],
        files={"q2.json": {"id": "quirk2"}},
    )

    result, _ = resolve()

    assert result.entries[("quirk", "QuirkDef")].isCustom is True
    assert result.entries[("quirk2", "QuirkDef")].isCustom is True


def test_multi_type_implicit_id_places_every_type_and_discards_chain(makePackage, resolve, hostRoot):
    baseline = hostRoot / "baseline"
    (baseline / "sprites").mkdir()
    (baseline / "sprites" / "icon.png").write_bytes(b"png")
    manifest = json.loads((baseline / "manifest.json5").read_text(encoding="utf-8"))
    manifest["entries"] += [
        {"id": "icon", "type": "Sprite", "path": "sprites/icon.png"},
        {"id": "icon", "type": "Texture2D", "path": "sprites/icon.png"},
    ]
    (baseline / "manifest.json5").write_text(json.dumps(manifest), encoding="utf-8")
    makePackage(
        "IconPatch",
        manifest=[{"type": "Sprite", "path": "icon.json", "id": "icon", "shouldMerge": True}],
        files={"icon.json": {"Tint": "red"}},
    )
    makePackage("IconArt", dependsOn=["IconPatch"], files={"baseline/sprites/icon.png": "new png"})

    result, resolver = resolve()

    assert result.entries[("icon", "Sprite")].packageName == "IconArt"
    assert result.entries[("icon", "Texture2D")].packageName == "IconArt"
    assert resolver.pendingMerges() == {}
    assert resolver.mergeCache.mergesPerformed == 0
