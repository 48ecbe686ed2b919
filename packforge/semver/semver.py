# packforge/semver/semver.py
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Literal

__all__ = [
    "HostVersion",
    "HostVersionConstraint",
    "parseHostVersion",
    "matchesExactVersion",
]

_NUMERIC_RE = re.compile(r"0|[1-9]\d*|0\d+")



@total_ordering
@dataclass(frozen=True)
class HostVersion:
    """
    Dotted numeric host version ("1.9", "1.10.2", "1.10.2.3611").

    Missing trailing components compare as 0, so "1.9" == "1.9.0".
    Build/prerelease suffixes of the host string are not part of the ordering.
    """
    parts: tuple[int, ...]
    
    def __str__(self) -> str:
        return ".".join(str(part) for part in self.parts)
    
    def _cmpKey(self) -> tuple[int, ...]:
        key = list(self.parts)
        while len(key) > 1 and key[-1] == 0:
            key.pop()
        return tuple(key)
    
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HostVersion):
            return NotImplemented
        return self._cmpKey() == other._cmpKey()
    
    def __hash__(self) -> int:
        return hash(self._cmpKey())
    
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HostVersion):
            return NotImplemented
        width = max(len(self.parts), len(other.parts))
        left = self.parts + (0,) * (width - len(self.parts))
        right = other.parts + (0,) * (width - len(other.parts))
        return left < right



def parseHostVersion(raw: str) -> HostVersion:
    """
    Parse a host version string into HostVersion.

    Accepted forms (examples):
        "1"           -> 1
        "1.9"         -> 1.9
        "1.10.2"      -> 1.10.2
        "1.10.2.3611" -> 1.10.2.3611
        "v1.2"        -> 1.2
        "1.10.2-beta" -> 1.10.2 (suffix ignored)
    
    Rejected:
        "", ".1", "1.", "1..3", "1.2.3.4.5", "x.y"
    """
    if raw is None:
        raise ValueError("Version string cannot be None")
    if not isinstance(raw, str):
        raise TypeError(f"Version string must be a string type, got {type(raw).__name__}")
    
    text = raw.strip()
    if not text:
        raise ValueError("Version string cannot be empty or whitespace only")
    
    if text.startswith("v") and len(text) > 1 and text[1].isdigit():
        text = text[1:]
    
    # Drop "-prerelease" / "+build" suffixes
    for sep in ("-", "+", " "):
        idx = text.find(sep)
        if idx != -1:
            text = text[:idx]
    
    coreParts = text.split(".")
    if not 1 <= len(coreParts) <= 4:
        raise ValueError(f"Invalid version {raw!r}: expected 1 to 4 numeric components")
    if any(part == "" for part in coreParts):
        raise ValueError(f"Empty numeric component in version {raw!r}")
    for part in coreParts:
        if not _NUMERIC_RE.fullmatch(part):
            raise ValueError(f"Invalid numeric component {part!r} in version {raw!r}")
    
    return HostVersion(tuple(int(part) for part in coreParts))



def matchesExactVersion(hostVersion: str, required: str) -> bool:
    """
    Exact constraint check: "1.9" matches host "1.9" and "1.9.1", not "1.90".
    """
    host = hostVersion.strip()
    req = required.strip()
    return host == req or host.startswith(req + ".")



ConstraintKind = Literal["exact", "min", "max"]



@dataclass(frozen=True)
class HostVersionConstraint:
    """Exact / min / max host version requirements of one package. All must hold."""
    exact: str | None = None
    minimum: str | None = None
    maximum: str | None = None
    
    @property
    def isEmpty(self) -> bool:
        return not (self.exact or self.minimum or self.maximum)
    
    def check(self, hostVersion: str) -> tuple[ConstraintKind, str] | None:
        """
        Returns None when satisfied, else (kind, message) for the first failing constraint.
        
        Raises ValueError when a constraint (or the host version) cannot be parsed.
        """
        if self.exact and not matchesExactVersion(hostVersion, self.exact):
            return ("exact", f"requires host version {self.exact}, host is {hostVersion}")
        
        if not (self.minimum or self.maximum):
            return None
        
        host = parseHostVersion(hostVersion)
        if self.minimum and host < parseHostVersion(self.minimum):
            return ("min", f"requires host version >= {self.minimum}, host is {hostVersion}")
        if self.maximum and host > parseHostVersion(self.maximum):
            return ("max", f"requires host version <= {self.maximum}, host is {hostVersion}")
        return None
