# packforge/content/package_loader.py
from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from packforge.config.settings import PackageSettings
from packforge.content.pack_descriptor import ContentEntry, PackageDescriptor
from packforge.content.types import BuiltinType, TypeCatalog, isJsonPath
from packforge.core.dictpath import getByPath
from packforge.core.errors import ContentError
from packforge.core.jsonutils import readJson5

logger = logging.getLogger(__name__)

__all__ = [
    "JsonParseCache",
    "ExpandedPackage",
    "inferIdFromFile",
    "expandPackageEntries",
]



class JsonParseCache:
    """
    Parsed content documents of one run, keyed by absolute path.

    Id inference and targeted-patch lookups read the same files; each file
    is parsed at most once. Parse failures are not cached.
    """

    def __init__(self) -> None:
        self._docs: dict[Path, Any] = {}
        self.parses = 0

    def load(self, path: Path) -> Any:
        """Raises OSError / ValueError when the file cannot be read or parsed."""
        if path in self._docs:
            return self._docs[path]
        doc = readJson5(path)
        self.parses += 1
        self._docs[path] = doc
        return doc

    def clear(self) -> None:
        self._docs.clear()



@dataclass(slots=True)
class ExpandedPackage:
    entries: list[ContentEntry] = field(default_factory=list)
    # Custom types this package may declare once it loads successfully
    customTypes: list[str] = field(default_factory=list)



def inferIdFromFile(path: Path, idPaths: list[str], parseCache: JsonParseCache) -> str:
    """
    Id of a content file: the first non-empty string found at one of idPaths
    in a JSON document, else the file name without extension.

    Raises ValueError / OSError for unreadable JSON.
    """
    if not isJsonPath(path):
        return path.stem

    doc = parseCache.load(path)
    for idPath in idPaths:
        value = getByPath(doc, idPath)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return path.stem



def _isDenied(name: str, denyList: list[str]) -> bool:
    lowered = name.lower()
    return any(lowered.endswith(suffix.lower()) for suffix in denyList)



def _walkFiles(root: Path, denyList: list[str]) -> Iterator[Path]:
    """Recursive, sorted walk so the same tree always expands in the same order."""
    for dirPath, dirNames, fileNames in os.walk(root):
        dirNames.sort()
        for fileName in sorted(fileNames):
            if _isDenied(fileName, denyList):
                continue
            yield Path(dirPath) / fileName



def _declaredEntries(desc: PackageDescriptor, settings: PackageSettings) -> list[ContentEntry]:
    entries = list(desc.entries)
    if not desc.loadImplicitBaseline:
        return entries

    implicitDir = settings.implicitBaselineDir
    implicitPath = Path(implicitDir)
    if any(entry.path is not None and entry.path == implicitPath for entry in entries):
        return entries
    if not (desc.directory / implicitDir).is_dir():
        return entries

    entries.insert(0, ContentEntry(id=None, type=None, path=implicitPath, shouldMerge=True))
    return entries



def expandPackageEntries(
    desc: PackageDescriptor,
    *,
    settings: PackageSettings,
    catalog: TypeCatalog,
    parseCache: JsonParseCache,
) -> ExpandedPackage:
    """
    Expands the declared manifest of `desc` into concrete entries.

    Directory entries expand to one entry per file (ids inferred), the
    implicit baseline-override directory is added when present. Missing
    paths are logged and skipped. Problems that make the package's content
    untrustworthy raise ContentError and void the whole package:
      - an entry with neither path nor type
      - an unknown type
      - malformed JSON in a file whose id must be inferred
      - a Prefab naming an asset bundle not declared earlier in the package
    """
    result = ExpandedPackage(customTypes=catalog.filterCustom(desc.customTypes, owner=desc.name))
    ownTypes = set(result.customTypes)
    implicitRoot = (desc.directory / settings.implicitBaselineDir).resolve()

    for declared in _declaredEntries(desc, settings):
        if declared.path is None and declared.type is None:
            raise ContentError(
                f"'{desc.name}' has a manifest entry that is missing its path and type",
                packageName=desc.name,
            )
        if declared.type is not None and not (catalog.isKnown(declared.type) or declared.type in ownTypes):
            raise ContentError(
                f"'{desc.name}' has a manifest entry with unknown type '{declared.type}'",
                packageName=desc.name,
            )
        if declared.path is None:
            logger.warning("'%s' has a %s entry without a path; skipping it", desc.name, declared.type)
            continue
        if declared.type == BuiltinType.PREFAB.value and declared.assetBundleName:
            if not any(
                entry.type == BuiltinType.ASSET_BUNDLE.value and entry.id == declared.assetBundleName
                for entry in result.entries
            ):
                raise ContentError(
                    f"'{desc.name}' has a Prefab that references asset bundle '{declared.assetBundleName}' "
                    "which is not declared before it",
                    packageName=desc.name,
                )

        fullPath = (desc.directory / declared.path).resolve()
        isDirectory = fullPath.is_dir()
        if isDirectory:
            files = list(_walkFiles(fullPath, settings.denyList))
        elif fullPath.is_file():
            if _isDenied(fullPath.name, settings.denyList):
                logger.debug("Skipping deny-listed file '%s' in package '%s'", fullPath, desc.name)
                continue
            files = [fullPath]
        else:
            logger.warning("Could not find path '%s' in package '%s'; skipping it", fullPath, desc.name)
            continue

        for filePath in files:
            # An explicit id only names a single-file entry
            entryId = None if isDirectory else declared.id
            if not entryId:
                try:
                    entryId = inferIdFromFile(filePath, settings.idPaths, parseCache)
                except (OSError, ValueError) as err:
                    raise ContentError(
                        f"'{desc.name}' has a malformed JSON file '{filePath}': {err}",
                        packageName=desc.name,
                        path=str(filePath),
                    ) from err

            entry = declared.withPath(filePath, entryId)
            if declared.type is None and filePath.is_relative_to(implicitRoot):
                entry = replace(entry, baselineRelPath=filePath.relative_to(implicitRoot).as_posix())
            result.entries.append(entry)

    logger.debug("Expanded '%s' into %d entries", desc.name, len(result.entries))
    return result
