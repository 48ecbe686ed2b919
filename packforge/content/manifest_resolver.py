# packforge/content/manifest_resolver.py
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from packforge.config.settings import PackageSettings
from packforge.content.baseline import BaselineManifest
from packforge.content.load_order import Exclusion, ExclusionReason
from packforge.content.merge_cache import MergeCache
from packforge.content.pack_descriptor import ContentEntry, PackageDescriptor
from packforge.content.package_loader import JsonParseCache, expandPackageEntries
from packforge.content.type_registry import TypeRegistry
from packforge.content.types import BuiltinType, SpecialType, TypeCatalog, isJsonPath
from packforge.core.errors import ContentError
from packforge.core.logging import logContext

logger = logging.getLogger(__name__)

__all__ = [
    "WinningEntry",
    "ManifestResult",
    "MergeStep",
    "ManifestResolver",
]



@dataclass(frozen=True, slots=True)
class WinningEntry:
    """The entry the host loads for one (id, type) slot."""
    id: str
    type: str
    path: Path
    addendum: str | None = None
    isCustom: bool = False
    addToDatabase: bool = True
    # None for merged artifacts
    packageName: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.type)

    def toDict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "path": self.path.as_posix(),
            "addendum": self.addendum,
            "isCustom": self.isCustom,
        }



@dataclass(slots=True)
class ManifestResult:
    entries: dict[tuple[str, str], WinningEntry] = field(default_factory=dict)
    # Video file name -> path
    mediaPaths: dict[str, Path] = field(default_factory=dict)
    soundBankPaths: dict[str, Path] = field(default_factory=dict)
    assetBundlePaths: dict[str, Path] = field(default_factory=dict)
    excluded: dict[str, Exclusion] = field(default_factory=dict)



@dataclass(frozen=True, slots=True)
class MergeStep:
    targetId: str
    index: int
    total: int
    # Artifact was reused from the merge cache
    cached: bool
    artifactPath: Path | None = None



class ManifestResolver:
    """
    Decides, package by package in load order, which file wins for every
    (id, type) slot and which merge fragments stack onto which base.

    Usage:
        resolver = ManifestResolver(...)
        for name in loadOrder:
            resolver.placePackage(packages[name])
        for step in resolver.iterMerges():
            ...
        result = resolver.result
    """

    def __init__(
        self,
        *,
        baseline: BaselineManifest,
        baselineDir: Path,
        typeRegistry: TypeRegistry,
        mergeCache: MergeCache,
        settings: PackageSettings | None = None,
        catalog: TypeCatalog | None = None,
        parseCache: JsonParseCache | None = None,
    ) -> None:
        self.baseline = baseline
        self.baselineDir = baselineDir
        self.typeRegistry = typeRegistry
        self.mergeCache = mergeCache
        self.settings = settings or PackageSettings()
        self.catalog = catalog or TypeCatalog()
        self.parseCache = parseCache or JsonParseCache()
        self.result = ManifestResult()

        # id -> ordered fragment paths waiting for a base
        self._mergeChains: dict[str, list[Path]] = {}
        # id -> most recently placed slot, plus the same for custom-typed slots
        self._lastPlaced: dict[str, tuple[str, str]] = {}
        self._lastCustom: dict[str, tuple[str, str]] = {}

    # ------------------------------------------------------------------ #
    # Packages
    # ------------------------------------------------------------------ #

    def placePackage(self, desc: PackageDescriptor) -> bool:
        """
        Expands and places every entry of `desc`. Returns False when the
        package was excluded (content error or excluded dependency).
        """
        with logContext(package=desc.name):
            return self._placePackage(desc)

    def _placePackage(self, desc: PackageDescriptor) -> bool:
        excludedDeps = sorted(dep for dep in desc.dependsOn if dep in self.result.excluded)
        if excludedDeps:
            detail = f"depends on excluded packages: {', '.join(excludedDeps)}"
            if not desc.ignoreLoadFailure:
                logger.error("Will not load '%s': %s", desc.name, detail)
                self.result.excluded[desc.name] = Exclusion(ExclusionReason.DEPENDENCY_EXCLUDED, detail)
                return False
            logger.warning("'%s' %s; loading anyway (ignoreLoadFailure)", desc.name, detail)

        try:
            expanded = expandPackageEntries(
                desc,
                settings=self.settings,
                catalog=self.catalog,
                parseCache=self.parseCache,
            )
        except ContentError as err:
            if desc.ignoreLoadFailure:
                logger.warning("Discarding all content of '%s': %s", desc.name, err)
            else:
                logger.error("Discarding all content of '%s': %s", desc.name, err)
            self.result.excluded[desc.name] = Exclusion(
                ExclusionReason.CONTENT_ERROR,
                str(err),
                silent=desc.ignoreLoadFailure,
            )
            return False

        self.catalog.declareCustom(expanded.customTypes, owner=desc.name)
        for entry in expanded.entries:
            self._processEntry(desc, entry)
        return True

    def _processEntry(self, desc: PackageDescriptor, entry: ContentEntry) -> None:
        if entry.type is not None:
            self._processTyped(desc, entry)
            return

        if entry.baselineRelPath is not None and not (self.baselineDir / entry.baselineRelPath).is_file():
            logger.warning(
                "'%s' overrides '%s' which does not exist in the baseline asset tree; skipping it",
                desc.name,
                entry.baselineRelPath,
            )
            return

        types = self.typeRegistry.getTypes(entry.id, self.baseline)
        if not types:
            logger.warning("Could not find a type for '%s' (%s); skipping it", entry.id, entry.path)
            return
        for typeName in types:
            self._processTyped(desc, replace(entry, type=typeName))

    def _processTyped(self, desc: PackageDescriptor, entry: ContentEntry) -> None:
        entryId, typeName, path = entry.id, entry.type, entry.path

        if typeName == SpecialType.VIDEO.value:
            self.result.mediaPaths[path.name] = path
            return
        if typeName == SpecialType.SOUND_BANK.value:
            self.result.soundBankPaths[entryId] = path
            return
        if typeName == SpecialType.ADVANCED_JSON_MERGE.value:
            self._queueAdvancedMerge(desc, path)
            return

        if entry.addendum and not self.baseline.hasAddendum(entry.addendum):
            logger.warning("Addendum '%s' for '%s' does not exist; skipping it", entry.addendum, entryId)
            return

        if entry.shouldMerge and isJsonPath(path):
            if entry.baselineRelPath is None:
                base = self._findBase(entryId)
                if base is None:
                    logger.warning("'%s' wants to merge into '%s' which does not exist; skipping it", desc.name, entryId)
                    return
                self.typeRegistry.tryAddType(entryId, base[1])
            self._queueMerge(entryId, path)
            return

        self._place(desc, entry)

    def _queueAdvancedMerge(self, desc: PackageDescriptor, path: Path) -> None:
        try:
            doc = self.parseCache.load(path)
        except (OSError, ValueError) as err:
            logger.error("Cannot read merge instructions '%s' in '%s': %s", path, desc.name, err)
            return
        targetId = (doc.get("targetId") or doc.get("TargetID")) if isinstance(doc, Mapping) else None
        if not isinstance(targetId, str) or not targetId:
            logger.error("Merge instructions '%s' in '%s' have no targetId; skipping them", path, desc.name)
            return
        if not self.typeRegistry.getTypes(targetId, self.baseline):
            logger.error("Merge instructions '%s' target unknown id '%s'; skipping them", path, targetId)
            return
        self._queueMerge(targetId, path)

    def _queueMerge(self, entryId: str, path: Path) -> None:
        chain = self._mergeChains.setdefault(entryId, [])
        if path in chain:
            return
        chain.append(path)
        logger.debug("Queued '%s' onto merge chain for '%s'", path, entryId)

    def _place(self, desc: PackageDescriptor, entry: ContentEntry) -> None:
        isCustom = self.catalog.isCustom(entry.type)
        winning = WinningEntry(
            id=entry.id,
            type=entry.type,
            path=entry.path,
            addendum=entry.addendum,
            isCustom=isCustom,
            addToDatabase=entry.addToDatabase,
            packageName=desc.name,
        )
        self.result.entries[winning.key] = winning
        self._lastPlaced[winning.id] = winning.key
        if isCustom:
            self._lastCustom[winning.id] = winning.key
        self.typeRegistry.tryAddType(winning.id, winning.type)

        if winning.type == BuiltinType.ASSET_BUNDLE.value:
            self.result.assetBundlePaths[winning.id] = winning.path

        pending = self._mergeChains.pop(winning.id, None)
        if pending:
            logger.info(
                "'%s' replaces '%s'; discarding %d pending merges",
                desc.name,
                winning.id,
                len(pending),
            )

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def _findBase(self, entryId: str) -> tuple[Path, str, str | None, bool] | None:
        """(path, type, addendum, isCustom) of the entry a merge for entryId applies to."""
        for table in (self._lastCustom, self._lastPlaced):
            key = table.get(entryId)
            if key is not None and key in self.result.entries:
                winning = self.result.entries[key]
                return (winning.path, winning.type, winning.addendum, winning.isCustom)
        baseEntry = self.baseline.findById(entryId)
        if baseEntry is not None:
            return (baseEntry.path, baseEntry.type, baseEntry.addendum, False)
        return None

    def pendingMerges(self) -> dict[str, list[Path]]:
        return {entryId: list(chain) for entryId, chain in self._mergeChains.items()}

    # ------------------------------------------------------------------ #
    # Finalization
    # ------------------------------------------------------------------ #

    def iterMerges(self) -> Iterator[MergeStep]:
        """Builds every pending merge chain, yielding one step per chain."""
        chains = list(self._mergeChains.items())
        self._mergeChains.clear()
        total = len(chains)

        for index, (entryId, fragments) in enumerate(chains):
            base = self._findBase(entryId)
            if base is None:
                logger.warning("No base entry for '%s'; dropping %d merges", entryId, len(fragments))
                yield MergeStep(entryId, index, total, cached=False)
                continue

            basePath, baseType, addendum, isCustom = base
            cached = self.mergeCache.hasCachedEntry(basePath, fragments)
            artifact = self.mergeCache.getOrCreate(basePath, fragments)
            if artifact is None:
                logger.warning("Merging into '%s' failed; dropping %d merges", entryId, len(fragments))
                yield MergeStep(entryId, index, total, cached=cached)
                continue

            merged = WinningEntry(
                id=entryId,
                type=baseType,
                path=artifact,
                addendum=addendum,
                isCustom=isCustom,
                addToDatabase=True,
            )
            self.result.entries[merged.key] = merged
            yield MergeStep(entryId, index, total, cached=cached, artifactPath=artifact)

    def resolveMerges(self) -> None:
        for _ in self.iterMerges():
            pass

    def resolve(self, order: Sequence[str], packages: Mapping[str, PackageDescriptor]) -> ManifestResult:
        for name in order:
            self.placePackage(packages[name])
        self.resolveMerges()
        return self.result
