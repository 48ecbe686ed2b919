import json
import os
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

from packforge.pipeline.host import LocalHost



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



def writeJson(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path



def bumpMtime(path: Path, seconds: int = 10) -> None:
    """Moves a file's mtime forward so mtime fingerprints change deterministically."""
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + seconds * 1_000_000_000))



@pytest.fixture
def hostRoot(tmp_path: Path) -> Path:
    """
    Host installation with an empty packages dir and a baseline tree holding:
      - data/weapon/Weapon_Laser.json   (WeaponDef "Weapon_Laser")
      - data/mech/mech_atlas.json       (MechDef "mech_atlas")
    """
    root = tmp_path / "host"
    (root / "packages").mkdir(parents=True)
    baseline = root / "baseline"
    writeJson(baseline / "data" / "weapon" / "Weapon_Laser.json", {"Description": {"Id": "Weapon_Laser"}, "Damage": 10, "Tags": ["energy"]})
    writeJson(baseline / "data" / "mech" / "mech_atlas.json", {"Description": {"Id": "mech_atlas"}, "Tonnage": 100})
    writeJson(baseline / "manifest.json5", {
        "addenda": ["ExtraWeapons"],
        "entries": [
            {"id": "Weapon_Laser", "type": "WeaponDef", "path": "data/weapon/Weapon_Laser.json"},
            {"id": "mech_atlas", "type": "MechDef", "path": "data/mech/mech_atlas.json"},
        ],
    })
    return root



@pytest.fixture
def host(hostRoot: Path) -> LocalHost:
    return LocalHost(hostRoot, "1.9.1")



@pytest.fixture
def makePackage(hostRoot: Path) -> Callable[..., Path]:
    """
    makePackage(name, manifest=[...], files={"rel/path.json": {...} or "text"}, **descriptorFields)
    writes packages/<name>/mod.json plus the given files and returns the package dir.
    """
    def _make(name: str, *, manifest: list[dict[str, Any]] | None = None, files: dict[str, Any] | None = None, dirName: str | None = None, **fields: Any) -> Path:
        pkgDir = hostRoot / "packages" / (dirName or name)
        descriptor = {"name": name, "version": "1.0.0", "manifest": manifest or [], **fields}
        writeJson(pkgDir / "mod.json", descriptor)
        for relPath, content in (files or {}).items():
            target = pkgDir / relPath
            if isinstance(content, str):
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
            else:
                writeJson(target, content)
        return pkgDir
    return _make
