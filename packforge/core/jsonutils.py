# packforge/core/jsonutils.py
from __future__ import annotations

import json
import os
from dataclasses import is_dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import Any

import json5

__all__ = ["safeJsonDumps", "readJson5", "writeJson5", "writeJsonArtifact"]



# ------------------------------------------------
#                JSON serialization
# ------------------------------------------------

def _jsonDefault(obj: Any) -> Any:
    """json.dumps() hook for the values log records and state files carry."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Path):
        return obj.as_posix()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    if isinstance(obj, BaseException):
        return {"type": type(obj).__name__, "message": str(obj)}
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    return repr(obj)



def safeJsonDumps(obj: object) -> str:
    """Compact one-line JSON. Never raises for unserializable values; they become strings."""
    try:
        return json.dumps(obj, ensure_ascii=False, allow_nan=False, separators=(",", ":"), default=_jsonDefault)
    except ValueError:
        # NaN/infinity or a circular reference
        return json.dumps(repr(obj), ensure_ascii=False)



# ------------------------------------------------
#                  File helpers
# ------------------------------------------------

def readJson5(path: Path) -> Any:
    """Parses a JSON or JSON5 file (comments and trailing commas are tolerated)."""
    return json5.loads(path.read_text(encoding="utf-8-sig"))



def _writeAtomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmpPath = path.with_name(path.name + ".tmp")
    tmpPath.write_text(text, encoding="utf-8")
    os.replace(tmpPath, path)



def writeJson5(path: Path, obj: Any) -> None:
    """Writes a persisted state file. Keys are sorted so unchanged state gives identical bytes."""
    _writeAtomic(path, json5.dumps(obj, ensure_ascii=False, indent=2, sort_keys=True) + "\n")



def writeJsonArtifact(path: Path, obj: Any) -> None:
    """Writes a merged content document as plain JSON, which every host parser accepts."""
    _writeAtomic(path, json.dumps(obj, ensure_ascii=False, indent=4) + "\n")
