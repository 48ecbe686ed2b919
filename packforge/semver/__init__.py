# packforge/semver/__init__.py
from .semver import (
    HostVersion,
    HostVersionConstraint,
    parseHostVersion,
    matchesExactVersion,
)

__all__ = [
    "HostVersion",
    "HostVersionConstraint",
    "parseHostVersion",
    "matchesExactVersion",
]
