# tests/packforge/db/test_database.py
import sqlite3

from packforge.db.database import SCHEMA_SQL, ContentDatabase


def _makeBaselineDb(path):
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    conn.execute(
        "INSERT INTO content_rows (type, id, source_path, data_json) VALUES (?, ?, ?, ?)",
        ("MechDef", "mech_atlas", "baseline/mech_atlas.json", '{"Tonnage": 100}'),
    )
    conn.commit()
    conn.close()


def test_working_copy_starts_from_baseline(tmp_path):
    baselinePath = tmp_path / "baseline.db"
    _makeBaselineDb(baselinePath)

    with ContentDatabase(tmp_path / "mod" / "content.db", baselinePath) as db:
        assert db.fetch("MechDef", "mech_atlas") == {"Tonnage": 100}
        db.upsert("WeaponDef", "Weapon_PPC", {"Damage": 15}, "packages/Core/Weapon_PPC.json")
        assert db.rowCount() == 2

    # Nothing reached disk without flush()
    assert not (tmp_path / "mod" / "content.db").exists()


def test_flush_persists_and_reload_prefers_packaged_copy(tmp_path):
    baselinePath = tmp_path / "baseline.db"
    dbPath = tmp_path / "mod" / "content.db"
    _makeBaselineDb(baselinePath)

    with ContentDatabase(dbPath, baselinePath) as db:
        db.upsert("WeaponDef", "Weapon_PPC", {"Damage": 15})
        db.upsert("WeaponDef", "Weapon_PPC", {"Damage": 16})
        db.flush()

    with ContentDatabase(dbPath, baselinePath) as db:
        assert db.fetch("WeaponDef", "Weapon_PPC") == {"Damage": 16}
        assert db.rowCount() == 2


def test_resetToBaseline_drops_packaged_rows(tmp_path):
    baselinePath = tmp_path / "baseline.db"
    _makeBaselineDb(baselinePath)

    with ContentDatabase(tmp_path / "content.db", baselinePath) as db:
        db.upsert("WeaponDef", "Weapon_PPC", {"Damage": 15})
        db.resetToBaseline()
        assert db.fetch("WeaponDef", "Weapon_PPC") is None
        assert db.fetch("MechDef", "mech_atlas") == {"Tonnage": 100}


def test_missing_baseline_gives_empty_schema(tmp_path):
    with ContentDatabase(tmp_path / "content.db") as db:
        assert db.rowCount() == 0
        db.resetToBaseline()
        assert db.rowCount() == 0
