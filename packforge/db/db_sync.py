# packforge/db/db_sync.py
from __future__ import annotations

import logging
from collections.abc import Collection, Generator, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from packforge.content.baseline import BaselineManifest
from packforge.content.manifest_resolver import WinningEntry
from packforge.content.types import isJsonPath
from packforge.core.jsonutils import readJson5, writeJson5
from packforge.core.paths import isUnder, resolveRelPath, toRelPath
from packforge.db.database import ContentDatabase

logger = logging.getLogger(__name__)

__all__ = ["DatabaseCache", "SyncStep", "SyncResult", "iterSyncDatabase", "syncDatabase"]



class DatabaseCache:
    """Root-relative path -> mtime (ns) of the file last written into the database."""

    def __init__(self, records: Mapping[str, int] | None = None) -> None:
        self.records: dict[str, int] = dict(records or {})

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, relPath: object) -> bool:
        return relPath in self.records

    def toDict(self) -> dict[str, int]:
        return dict(self.records)

    @classmethod
    def readFrom(cls, path: Path) -> DatabaseCache:
        if not path.is_file():
            return cls()
        try:
            rawJson: Any = readJson5(path)
            if not isinstance(rawJson, Mapping):
                raise ValueError("database cache root must be an object")
            return cls({str(key): int(value) for key, value in rawJson.items()})
        except (OSError, ValueError, TypeError) as err:
            logger.warning("Database cache '%s' is unreadable, starting empty: %s", path, err)
            return cls()

    def writeTo(self, path: Path) -> None:
        writeJson5(path, self.toDict())



@dataclass(frozen=True, slots=True)
class SyncStep:
    # "remove" for reconciliation, "add" for additions/updates
    phase: str
    item: str
    index: int
    total: int



@dataclass(slots=True)
class SyncResult:
    cache: DatabaseCache
    wroteDatabase: bool = False
    rebuilt: bool = False
    upserts: int = 0



class _Syncer:
    def __init__(
        self,
        database: ContentDatabase,
        cache: DatabaseCache,
        *,
        rootDir: Path,
        baselineDir: Path,
        dbTypes: Collection[str],
    ) -> None:
        self.database = database
        self.cache = cache
        self.rootDir = rootDir
        self.baselineDir = baselineDir
        self.dbTypes = set(dbTypes)
        self.upserts = 0

    def addEntry(self, entryId: str, typeName: str, path: Path, *, force: bool = False, rebuilding: bool = False) -> bool:
        """Upserts one content file when it is eligible and changed. Returns True on write."""
        if not isJsonPath(path) or typeName not in self.dbTypes:
            return False

        relPath = toRelPath(self.rootDir, path)
        inBaseline = isUnder(path, self.baselineDir)
        if inBaseline and not (force or rebuilding):
            return False

        try:
            mtime = path.stat().st_mtime_ns
        except OSError as err:
            logger.warning("Cannot stat '%s' for the database: %s", path, err)
            return False
        if not force and self.cache.records.get(relPath) == mtime:
            return False

        try:
            data = readJson5(path)
        except (OSError, ValueError) as err:
            logger.warning("Cannot parse '%s' for the database; skipping it: %s", path, err)
            return False

        self.database.upsert(typeName, entryId, data, relPath)
        self.upserts += 1
        if not inBaseline:
            self.cache.records[relPath] = mtime
        return True



def iterSyncDatabase(
    entries: Iterable[WinningEntry],
    dbCache: DatabaseCache,
    database: ContentDatabase,
    baseline: BaselineManifest,
    *,
    rootDir: Path,
    baselineDir: Path,
    dbTypes: Collection[str],
) -> Generator[SyncStep, None, SyncResult]:
    """
    Brings the database in line with the final winning entries.

    Phase "remove": cached files no longer referenced are replaced by the
    last winning (else baseline) entry sharing their file name; when one has
    no replacement the database is reset to baseline and rebuilt.
    Phase "add": new or modified eligible files are upserted.
    """
    entries = list(entries)
    syncer = _Syncer(database, dbCache, rootDir=rootDir, baselineDir=baselineDir, dbTypes=dbTypes)
    referenced = {toRelPath(rootDir, entry.path) for entry in entries}

    stale = sorted(relPath for relPath in dbCache.records if relPath not in referenced)
    replacements: list[tuple[str, str, Path]] = []
    rebuilt = False

    for index, relPath in enumerate(stale):
        yield SyncStep("remove", relPath, index, len(stale))
        logger.info("Need to remove database rows from '%s'", relPath)
        fileName = resolveRelPath(rootDir, relPath).name
        replacement = next((entry for entry in reversed(entries) if entry.path.name == fileName), None)
        if replacement is not None:
            replacements.append((replacement.id, replacement.type, replacement.path))
            continue
        baseEntry = baseline.findByFileName(fileName)
        if baseEntry is not None:
            replacements.append((baseEntry.id, baseEntry.type, baseEntry.path))
            continue
        logger.info("No entry replaces '%s'; rebuilding the database", relPath)
        rebuilt = True
        break

    if rebuilt:
        database.resetToBaseline()
        dbCache.records.clear()
    else:
        for entryId, typeName, path in replacements:
            if syncer.addEntry(entryId, typeName, path, force=True):
                logger.info("Replaced database rows with '%s'", path)
        for relPath in stale:
            dbCache.records.pop(relPath, None)

    eligible = [entry for entry in entries if entry.addToDatabase]
    for index, entry in enumerate(eligible):
        if syncer.addEntry(entry.id, entry.type, entry.path, rebuilding=rebuilt):
            logger.debug("Added '%s' (%s) to the database", entry.id, entry.type)
            yield SyncStep("add", entry.id, index, len(eligible))

    return SyncResult(
        cache=dbCache,
        wroteDatabase=rebuilt or syncer.upserts > 0,
        rebuilt=rebuilt,
        upserts=syncer.upserts,
    )



def syncDatabase(
    entries: Iterable[WinningEntry],
    dbCache: DatabaseCache,
    database: ContentDatabase,
    baseline: BaselineManifest,
    *,
    rootDir: Path,
    baselineDir: Path,
    dbTypes: Collection[str],
) -> SyncResult:
    gen = iterSyncDatabase(
        entries, dbCache, database, baseline,
        rootDir=rootDir, baselineDir=baselineDir, dbTypes=dbTypes,
    )
    while True:
        try:
            next(gen)
        except StopIteration as stop:
            return stop.value
