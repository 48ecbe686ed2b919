# packforge/core/paths.py
from __future__ import annotations
import os
from pathlib import Path

__all__ = ["toRelPath", "resolveRelPath", "isUnder"]



def toRelPath(base: Path, path: str | Path) -> str:
    """
    Returns a POSIX-style path relative to base, used as a persisted cache key.
    Paths on another drive (no relative form) are returned absolute.
    """
    path = Path(path)
    if not path.is_absolute():
        return path.as_posix()
    try:
        rel = os.path.relpath(path, base)
    except ValueError:
        return path.as_posix()
    return Path(rel).as_posix()



def resolveRelPath(base: Path, path: str | Path) -> Path:
    """Inverse of toRelPath: absolute, normalized path for a persisted key."""
    path = Path(path)
    if not path.is_absolute():
        path = base / path
    return Path(os.path.normpath(path))



def isUnder(path: str | Path, root: Path) -> bool:
    try:
        return Path(os.path.normpath(path)).is_relative_to(Path(os.path.normpath(root)))
    except ValueError:
        return False
