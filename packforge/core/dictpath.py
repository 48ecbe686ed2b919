# packforge/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping

__all__ = ["splitPath", "getByPath", "setByPath", "deleteByPath"]

_MISSING = object()



# ----------------------------------------------
#                  path parsing
# ----------------------------------------------

def splitPath(path: str) -> list[str | int]:
    """
    Splits a dotted path into keys and list indices.
    '.' separates segments, "[n]" addresses a list element and
    backslash escapes the next character.

    Examples:
      - Description.Id        -> ["Description", "Id"]
      - Locations[2].Name     -> ["Locations", 2, "Name"]
      - a\\.b.c               -> ["a.b", "c"]
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    
    parts: list[str | int] = []
    curr: list[str] = []
    esc = False
    idx = 0
    while idx < len(path):
        ch = path[idx]
        if esc:
            curr.append(ch)
            esc = False
        elif ch == "\\":
            esc = True
        elif ch == ".":
            if curr:
                parts.append("".join(curr))
                curr = []
            elif not parts or not isinstance(parts[-1], int):
                raise ValueError(f"Path '{path}' contains empty segment(s)")
        elif ch == "[":
            end = path.find("]", idx)
            if end == -1:
                raise ValueError(f"Path '{path}' has an unclosed '['")
            if curr:
                parts.append("".join(curr))
                curr = []
            rawIndex = path[idx + 1:end]
            try:
                parts.append(int(rawIndex))
            except ValueError as err:
                raise ValueError(f"Path '{path}' has a non-integer index '{rawIndex}'") from err
            idx = end
        else:
            curr.append(ch)
        idx += 1
    
    if esc:
        raise ValueError("Path ends with a dangling escape (trailing backslash)")
    if curr:
        parts.append("".join(curr))
    elif path.endswith("."):
        raise ValueError(f"Path '{path}' contains empty segment(s)")
    return parts



def _step(current: Any, part: str | int) -> Any:
    if isinstance(part, int):
        if isinstance(current, list) and -len(current) <= part < len(current):
            return current[part]
        return _MISSING
    if isinstance(current, Mapping) and part in current:
        return current[part]
    return _MISSING



# ----------------------------------------------
#                   Public API
# ----------------------------------------------

def getByPath(obj: Any, path: str, default: Any | None = None) -> Any:
    """
    Returns the value at `path` from `obj`, or `default` when the chain
    cannot be resolved (including invalid paths).
    """
    try:
        parts = splitPath(path)
    except ValueError:
        return default
    
    current: Any = obj
    for part in parts:
        current = _step(current, part)
        if current is _MISSING:
            return default
    return current



def setByPath(obj: Any, path: str, value: Any, *, createIfMissing: bool = False) -> None:
    """
    Sets the value at `path` on `obj`.

    Missing intermediate objects are created only when createIfMissing=True.
    A list index may address an existing element, or len(list) to append.
    Raises KeyError/IndexError/TypeError when the path cannot be walked.
    """
    parts = splitPath(path)
    current: Any = obj
    for part in parts[:-1]:
        nxt = _step(current, part)
        if nxt is _MISSING:
            if not createIfMissing or isinstance(part, int) or not isinstance(current, MutableMapping):
                raise KeyError(f"Cannot descend into '{part}' while setting '{path}'")
            nxt = {}
            current[part] = nxt
        current = nxt
    
    last = parts[-1]
    if isinstance(last, int):
        if not isinstance(current, list):
            raise TypeError(f"Index {last} used on non-list while setting '{path}'")
        if last == len(current):
            current.append(value)
            return
        if not -len(current) <= last < len(current):
            raise IndexError(f"Index {last} out of range while setting '{path}'")
        current[last] = value
        return
    if not isinstance(current, MutableMapping):
        raise TypeError(f"Cannot set key '{last}' on {type(current).__name__} while setting '{path}'")
    current[last] = value



def deleteByPath(obj: Any, path: str) -> bool:
    """Deletes the value at `path`. Returns True if something was removed."""
    try:
        parts = splitPath(path)
    except ValueError:
        return False
    current: Any = obj
    for part in parts[:-1]:
        current = _step(current, part)
        if current is _MISSING:
            return False
    
    last = parts[-1]
    if isinstance(last, int):
        if isinstance(current, list) and -len(current) <= last < len(current):
            del current[last]
            return True
        return False
    if isinstance(current, MutableMapping) and last in current:
        del current[last]
        return True
    return False
