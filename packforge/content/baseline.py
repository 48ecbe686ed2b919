# packforge/content/baseline.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from packforge.core.errors import DescriptorError
from packforge.core.jsonutils import readJson5

logger = logging.getLogger(__name__)

__all__ = ["BaselineEntry", "BaselineManifest"]



@dataclass(frozen=True, slots=True)
class BaselineEntry:
    """Factory-shipped content: what the host loads when no package touches an id."""
    id: str
    type: str
    path: Path
    addendum: str | None = None



class BaselineManifest:
    """
    Read-only view over the host's baseline content manifest.

    Lookups by id return the last matching entry, like the host does
    when an id appears more than once.
    """

    def __init__(self, entries: Iterable[BaselineEntry], addenda: Iterable[str] = ()) -> None:
        self._entries: list[BaselineEntry] = list(entries)
        self._addenda: set[str] = set(addenda)
        self._byId: dict[str, list[BaselineEntry]] = {}
        self._byFileName: dict[str, BaselineEntry] = {}
        for entry in self._entries:
            self._byId.setdefault(entry.id, []).append(entry)
            self._byFileName[entry.path.name] = entry
            if entry.addendum:
                self._addenda.add(entry.addendum)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> tuple[BaselineEntry, ...]:
        return tuple(self._entries)

    def findById(self, entryId: str) -> BaselineEntry | None:
        matches = self._byId.get(entryId)
        return matches[-1] if matches else None

    def typesFor(self, entryId: str) -> list[str]:
        types: list[str] = []
        for entry in self._byId.get(entryId, ()):
            if entry.type not in types:
                types.append(entry.type)
        return types

    def findByFileName(self, fileName: str) -> BaselineEntry | None:
        return self._byFileName.get(fileName)

    def hasAddendum(self, name: str) -> bool:
        return name in self._addenda

    @classmethod
    def fromFile(cls, path: Path, *, baseDir: Path) -> BaselineManifest:
        """
        Loads a json5 manifest:

            {
              "addenda": ["Extra"],
              "entries": [{"id": "...", "type": "...", "path": "data/weapon/x.json", "addendum": null}]
            }

        Relative entry paths are resolved against baseDir.
        """
        try:
            rawJson: Any = readJson5(path)
        except (OSError, ValueError) as err:
            raise DescriptorError(f"Cannot read baseline manifest '{path}': {err}", path=str(path)) from err
        if not isinstance(rawJson, Mapping):
            raise DescriptorError(f"Baseline manifest '{path}' is not a JSON object", path=str(path))

        entries: list[BaselineEntry] = []
        for index, item in enumerate(rawJson.get("entries") or []):
            if not isinstance(item, Mapping) or not item.get("id") or not item.get("type") or not item.get("path"):
                logger.warning("Skipping malformed baseline entry #%d in '%s'", index, path)
                continue
            entryPath = Path(str(item["path"]))
            if not entryPath.is_absolute():
                entryPath = baseDir / entryPath
            entries.append(BaselineEntry(
                id=str(item["id"]),
                type=str(item["type"]),
                path=entryPath.resolve(),
                addendum=item.get("addendum") or None,
            ))
        return cls(entries, addenda=[str(name) for name in rawJson.get("addenda") or []])
