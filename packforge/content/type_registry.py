# packforge/content/type_registry.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from packforge.content.baseline import BaselineManifest
from packforge.core.jsonutils import readJson5, writeJson5

logger = logging.getLogger(__name__)

__all__ = ["TypeRegistry"]



class TypeRegistry:
    """
    Persistent id -> content types map.

    Lets implicit entries (baseline overrides, targeted patches) find the
    type of an id that was declared by an earlier package in this or a
    previous run. Types are only ever added; order of first sighting is kept.
    """

    def __init__(self, data: Mapping[str, list[str]] | None = None) -> None:
        self._types: dict[str, list[str]] = {}
        for entryId, types in (data or {}).items():
            for typeName in types:
                self.tryAddType(entryId, typeName)

    def __contains__(self, entryId: object) -> bool:
        return entryId in self._types

    def getTypes(self, entryId: str, baseline: BaselineManifest | None = None) -> list[str] | None:
        """
        Returns the known types for entryId. When a baseline is given, its
        types for the id are learned too, after any already known. None when
        nothing is known.
        """
        if baseline is not None:
            for typeName in baseline.typesFor(entryId):
                self.tryAddType(entryId, typeName)
        types = self._types.get(entryId)
        return list(types) if types else None

    def tryAddType(self, entryId: str, typeName: str) -> bool:
        known = self._types.setdefault(entryId, [])
        if typeName in known:
            return False
        known.append(typeName)
        return True

    def toDict(self) -> dict[str, list[str]]:
        return {entryId: list(types) for entryId, types in self._types.items()}

    # ----- Persistence -----

    @classmethod
    def readFrom(cls, path: Path) -> TypeRegistry:
        if not path.is_file():
            return cls()
        try:
            rawJson: Any = readJson5(path)
        except (OSError, ValueError) as err:
            logger.warning("Type cache '%s' is unreadable, starting empty: %s", path, err)
            return cls()
        if not isinstance(rawJson, Mapping):
            logger.warning("Type cache '%s' is not an object, starting empty", path)
            return cls()
        clean = {
            str(entryId): [str(typeName) for typeName in types]
            for entryId, types in rawJson.items()
            if isinstance(types, list)
        }
        return cls(clean)

    def writeTo(self, path: Path) -> None:
        writeJson5(path, self.toDict())
