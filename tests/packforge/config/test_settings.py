# tests/packforge/config/test_settings.py
import pytest
from pydantic import ValidationError

from packforge.config.settings import ResolverSettings, deepMerge, loadSettings, saveSettings


def test_deepMerge_only_recurses_into_dicts():
    assert deepMerge({"a": {"x": 1, "y": 2}, "l": [1]}, {"a": {"y": 3}, "l": [2]}) == {"a": {"x": 1, "y": 3}, "l": [2]}


def test_loadSettings_defaults_without_file(tmp_path):
    settings = loadSettings(tmp_path / "missing.json5")
    assert settings == ResolverSettings()
    assert settings.packages.implicitBaselineDir == "baseline"
    assert "WeaponDef" in settings.database.types


def test_loadSettings_merges_user_file_over_defaults(tmp_path):
    path = tmp_path / "config.json5"
    path.write_text("{\n  // hash the shared drive\n  mergeCache: { hashRoots: ['shared'] },\n}\n", encoding="utf-8")
    settings = loadSettings(path)
    assert settings.mergeCache.hashRoots == ["shared"]
    assert settings.mergeCache.alwaysHash is False


def test_loadSettings_broken_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json5"
    path.write_text("{ unknownSection: { a: 1 } }", encoding="utf-8")
    assert loadSettings(path) == ResolverSettings()


def test_loadSettings_bad_overrides_raise(tmp_path):
    with pytest.raises(ValidationError):
        loadSettings(None, overrides={"logging": {"nope": True}})


def test_saveSettings_round_trips(tmp_path):
    path = tmp_path / "config.json5"
    settings = loadSettings(None, overrides={"logging": {"devMode": True}})
    saveSettings(path, settings)
    assert loadSettings(path) == settings
