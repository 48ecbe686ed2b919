# packforge/content/merge_cache.py
from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from packforge.config.settings import MergeCacheSettings
from packforge.core.errors import MergeError
from packforge.core.hashing import fileFingerprint
from packforge.core.jsonutils import readJson5, writeJson5, writeJsonArtifact
from packforge.core.merge_strategy import applyInstructions, mergeWithStrategy
from packforge.core.paths import isUnder, resolveRelPath, toRelPath

logger = logging.getLogger(__name__)

__all__ = ["MergeCacheRecord", "MergeCache", "applyFragment"]



@dataclass(slots=True)
class MergeCacheRecord:
    """One merged artifact and the inputs it was built from. Paths are root-relative."""
    basePath: str
    baseFingerprint: str
    fragments: list[tuple[str, str]] = field(default_factory=list)
    artifactPath: str = ""

    def toDict(self) -> dict[str, Any]:
        return {
            "baseFingerprint": self.baseFingerprint,
            "fragments": [[path, fingerprint] for path, fingerprint in self.fragments],
            "artifactPath": self.artifactPath,
        }

    @classmethod
    def fromDict(cls, basePath: str, data: Mapping[str, Any]) -> MergeCacheRecord:
        return cls(
            basePath=basePath,
            baseFingerprint=str(data["baseFingerprint"]),
            fragments=[(str(path), str(fingerprint)) for path, fingerprint in data.get("fragments", [])],
            artifactPath=str(data["artifactPath"]),
        )



def _isAdvancedFragment(fragment: Any) -> bool:
    if not isinstance(fragment, Mapping):
        return False
    hasTarget = "targetId" in fragment or "TargetID" in fragment
    hasInstructions = "instructions" in fragment or "Instructions" in fragment
    return hasTarget and hasInstructions



def applyFragment(document: Any, fragment: Any) -> Any:
    """
    Applies one fragment onto a document and returns the result.

    Fragments with targetId + instructions are ordered path instructions;
    anything else is a deep-merge patch. Raises MergeError.
    """
    if _isAdvancedFragment(fragment):
        instructions = fragment.get("instructions", fragment.get("Instructions"))
        if not isinstance(instructions, list):
            raise MergeError("Fragment 'instructions' must be a list")
        return applyInstructions(document, instructions)
    return mergeWithStrategy(document, fragment)



class MergeCache:
    """
    Persistent cache of merged documents.

    getOrCreate() returns the artifact for a base file with an ordered list of
    fragments applied, rebuilding it whenever the fragment list, its order,
    any fingerprint or the artifact file itself changed.
    """

    def __init__(
        self,
        *,
        rootDir: Path,
        cacheDir: Path,
        settings: MergeCacheSettings | None = None,
        records: Mapping[str, MergeCacheRecord] | None = None,
    ) -> None:
        self.rootDir = rootDir
        self.cacheDir = cacheDir
        self.settings = settings or MergeCacheSettings()
        self._records: dict[str, MergeCacheRecord] = dict(records or {})
        self._hashRoots = [resolveRelPath(rootDir, root) for root in self.settings.hashRoots]
        self._pruned = False
        # Keys looked up by getOrCreate() during this run
        self._used: set[str] = set()
        self.mergesPerformed = 0

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> dict[str, MergeCacheRecord]:
        return dict(self._records)

    # ----- Fingerprints -----

    def _fingerprint(self, path: Path) -> str:
        useHash = self.settings.alwaysHash or any(isUnder(path, root) for root in self._hashRoots)
        return fileFingerprint(path, useHash=useHash)

    def _currentInputs(self, basePath: Path, fragmentPaths: Sequence[Path]) -> tuple[str, list[tuple[str, str]]]:
        """Raises OSError when an input file is missing."""
        baseFingerprint = self._fingerprint(basePath)
        fragments = [(toRelPath(self.rootDir, path), self._fingerprint(path)) for path in fragmentPaths]
        return baseFingerprint, fragments

    def _isValid(self, record: MergeCacheRecord | None, baseFingerprint: str, fragments: list[tuple[str, str]]) -> bool:
        if record is None:
            return False
        if record.baseFingerprint != baseFingerprint or record.fragments != fragments:
            return False
        return resolveRelPath(self.rootDir, record.artifactPath).is_file()

    # ----- Lookups -----

    def hasCachedEntry(self, basePath: Path, fragmentPaths: Sequence[Path]) -> bool:
        """True when getOrCreate would return without merging. No side effects."""
        key = toRelPath(self.rootDir, basePath)
        try:
            baseFingerprint, fragments = self._currentInputs(basePath, fragmentPaths)
        except OSError:
            return False
        return self._isValid(self._records.get(key), baseFingerprint, fragments)

    def getOrCreate(self, basePath: Path, fragmentPaths: Sequence[Path]) -> Path | None:
        """
        Path of the merged artifact, or None when the base or a fragment
        cannot be read, parsed or applied (nothing is cached then).
        """
        if not self._pruned:
            self.prune()

        key = toRelPath(self.rootDir, basePath)
        self._used.add(key)
        try:
            baseFingerprint, fragments = self._currentInputs(basePath, fragmentPaths)
        except OSError as err:
            logger.error("Cannot fingerprint merge inputs of '%s': %s", basePath, err)
            self._drop(key)
            return None

        record = self._records.get(key)
        if self._isValid(record, baseFingerprint, fragments):
            return resolveRelPath(self.rootDir, record.artifactPath)

        try:
            merged = readJson5(basePath)
        except (OSError, ValueError) as err:
            logger.error("Cannot parse merge base '%s': %s", basePath, err)
            self._drop(key)
            return None

        for fragmentPath in fragmentPaths:
            try:
                merged = applyFragment(merged, readJson5(fragmentPath))
            except (OSError, ValueError, MergeError) as err:
                logger.error("Cannot apply '%s' onto '%s': %s", fragmentPath, basePath, err)
                self._drop(key)
                return None

        artifactPath = self._artifactPathFor(key, basePath)
        writeJsonArtifact(artifactPath, merged)
        self.mergesPerformed += 1
        logger.debug("Merged %d fragments into '%s'", len(fragmentPaths), artifactPath)

        self._records[key] = MergeCacheRecord(
            basePath=key,
            baseFingerprint=baseFingerprint,
            fragments=fragments,
            artifactPath=toRelPath(self.rootDir, artifactPath),
        )
        return artifactPath

    def _artifactPathFor(self, key: str, basePath: Path) -> Path:
        """Mirrors the base's root-relative path so the artifact keeps its file name."""
        merged = self.cacheDir / "merged"
        if Path(key).is_absolute() or key.startswith("../"):
            digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]
            return merged / "_external" / digest / basePath.name
        return merged / key

    def _drop(self, key: str) -> None:
        record = self._records.pop(key, None)
        if record is None:
            return
        artifact = resolveRelPath(self.rootDir, record.artifactPath)
        if artifact.is_file():
            artifact.unlink()

    def prune(self) -> int:
        """Drops records whose base or fragments vanished. Returns how many were dropped."""
        self._pruned = True
        stale = [
            key for key, record in self._records.items()
            if not resolveRelPath(self.rootDir, key).is_file()
            or any(not resolveRelPath(self.rootDir, path).is_file() for path, _ in record.fragments)
        ]
        for key in stale:
            logger.debug("Pruning merge cache record for '%s'", key)
            self._drop(key)
        return len(stale)

    def dropUnused(self) -> int:
        """Drops records no getOrCreate() asked for this run, artifacts included."""
        unused = [key for key in self._records if key not in self._used]
        for key in unused:
            logger.debug("Dropping unused merge cache record for '%s'", key)
            self._drop(key)
        return len(unused)

    # ----- Persistence -----

    def toDict(self) -> dict[str, Any]:
        return {key: record.toDict() for key, record in self._records.items()}

    @classmethod
    def readFrom(cls, path: Path, *, rootDir: Path, cacheDir: Path, settings: MergeCacheSettings | None = None) -> MergeCache:
        records: dict[str, MergeCacheRecord] = {}
        if path.is_file():
            try:
                rawJson: Any = readJson5(path)
                if not isinstance(rawJson, Mapping):
                    raise ValueError("merge cache root must be an object")
                for key, data in rawJson.items():
                    records[str(key)] = MergeCacheRecord.fromDict(str(key), data)
            except (OSError, ValueError, KeyError, TypeError) as err:
                logger.warning("Merge cache '%s' is unreadable, starting empty: %s", path, err)
                records = {}
        return cls(rootDir=rootDir, cacheDir=cacheDir, settings=settings, records=records)

    def writeTo(self, path: Path) -> None:
        writeJson5(path, self.toDict())
