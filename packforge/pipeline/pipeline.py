# packforge/pipeline/pipeline.py
from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from packforge.config.settings import ResolverSettings
from packforge.content.load_order import Exclusion, ExclusionReason, resolveLoadOrder
from packforge.content.manifest_resolver import ManifestResolver, WinningEntry
from packforge.content.pack_descriptor import discoverPackages
from packforge.core.logging import setLogContext
from packforge.db.db_sync import SyncResult, iterSyncDatabase
from packforge.pipeline.host import HostEnvironment
from packforge.pipeline.session import STATE_DIR_NAME, ResolutionSession
from packforge.pipeline.types import ProgressReport, Stage

logger = logging.getLogger(__name__)

__all__ = ["ResolutionResult", "ResolutionPipeline", "runToCompletion"]



@dataclass(slots=True)
class ResolutionResult:
    # (id, type) -> winning entry
    entries: dict[tuple[str, str], WinningEntry] = field(default_factory=dict)
    mediaPaths: dict[str, Path] = field(default_factory=dict)
    soundBankPaths: dict[str, Path] = field(default_factory=dict)
    assetBundlePaths: dict[str, Path] = field(default_factory=dict)
    databaseModified: bool = False
    loadOrder: list[str] = field(default_factory=list)
    excluded: dict[str, Exclusion] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def failedPackages(self) -> dict[str, Exclusion]:
        """Exclusions the user should hear about (ignoreLoadFailure ones left out)."""
        return {name: exclusion for name, exclusion in self.excluded.items() if not exclusion.silent}

    def toDict(self) -> dict[str, Any]:
        return {
            "entries": [self.entries[key].toDict() for key in sorted(self.entries)],
            "mediaPaths": {name: path.as_posix() for name, path in sorted(self.mediaPaths.items())},
            "soundBankPaths": {name: path.as_posix() for name, path in sorted(self.soundBankPaths.items())},
            "assetBundlePaths": {name: path.as_posix() for name, path in sorted(self.assetBundlePaths.items())},
            "databaseModified": self.databaseModified,
            "loadOrder": list(self.loadOrder),
            "excluded": {name: exclusion.toDict() for name, exclusion in sorted(self.excluded.items())},
        }



class ResolutionPipeline:
    """
    One resolution run as a generator of progress checkpoints.

        pipeline = ResolutionPipeline(LocalHost(rootDir, "1.9.1"))
        for report in pipeline.run():
            ui.show(report)
        result = pipeline.result

    The generator's return value is the ResolutionResult, also kept on
    `pipeline.result`. FatalResolutionError propagates; everything else is
    isolated per package, per merge or per database write.
    """

    def __init__(
        self,
        host: HostEnvironment,
        *,
        settings: ResolverSettings | None = None,
        overrides: dict[str, Any] | None = None,
        configureLogs: bool = True,
    ) -> None:
        self.host = host
        self._settings = settings
        self._overrides = overrides
        self._configureLogs = configureLogs
        self.result: ResolutionResult | None = None

    def run(self) -> Generator[ProgressReport, None, ResolutionResult]:
        session = ResolutionSession(
            self.host,
            settings=self._settings,
            overrides=self._overrides,
            configureLogs=self._configureLogs,
        )
        session.open()
        try:
            result = yield from self._run(session)
        finally:
            session.close()
        self.result = result
        return result

    def _run(self, session: ResolutionSession) -> Generator[ProgressReport, None, ResolutionResult]:
        settings = session.settings

        # ----- Initializing Packages -----
        setLogContext(stage=Stage.INITIALIZING.value)
        yield ProgressReport.make(Stage.INITIALIZING, forceDisplay=True)
        discovery = discoverPackages(self.host.packagesDir, settings.packages, skipDirs=frozenset({STATE_DIR_NAME}))
        for dirName, reason in discovery.failed.items():
            session.excluded[dirName] = Exclusion(ExclusionReason.INVALID_DESCRIPTOR, reason)

        # ----- Reading Caches -----
        setLogContext(stage=Stage.READING_CACHES.value)
        yield ProgressReport.make(Stage.READING_CACHES, forceDisplay=True)
        session.readCaches()

        orderResult = resolveLoadOrder(discovery.packages, session.previousOrder, self.host.hostVersion())
        session.excluded.update(orderResult.excluded)
        session.warnings.extend(orderResult.warnings)

        resolver = ManifestResolver(
            baseline=session.baseline,
            baselineDir=self.host.baselineDir,
            typeRegistry=session.typeRegistry,
            mergeCache=session.mergeCache,
            settings=settings.packages,
            catalog=session.catalog,
            parseCache=session.parseCache,
        )
        resolver.result.excluded.update(session.excluded)

        # ----- Loading <package> -----
        total = len(orderResult.order)
        for index, name in enumerate(orderResult.order):
            setLogContext(stage=Stage.LOADING.value)
            yield ProgressReport.make(f"{Stage.LOADING.value} {name}", name, index, total)
            resolver.placePackage(discovery.packages[name])

        # ----- Merging -----
        setLogContext(stage=Stage.MERGING.value)
        for step in resolver.iterMerges():
            yield ProgressReport.make(Stage.MERGING, step.targetId, step.index + 1, step.total, forceDisplay=not step.cached)

        manifest = resolver.result
        session.excluded.update(manifest.excluded)

        # ----- Syncing / Populating / Writing Database -----
        databaseModified = False
        if session.database is not None:
            syncResult = yield from self._syncDatabase(session, list(manifest.entries.values()))
            session.dbCache = syncResult.cache
            if syncResult.wroteDatabase:
                setLogContext(stage=Stage.WRITING_DATABASE.value)
                yield ProgressReport.make(Stage.WRITING_DATABASE, forceDisplay=True)
                try:
                    session.database.flush()
                    databaseModified = True
                except (sqlite3.Error, OSError):
                    logger.exception("Failed to write the content database")

        # ----- Writing Caches -----
        setLogContext(stage=Stage.WRITING_CACHES.value)
        yield ProgressReport.make(Stage.WRITING_CACHES, forceDisplay=True)
        session.writeCaches(orderResult.order)

        result = ResolutionResult(
            entries=dict(manifest.entries),
            mediaPaths=dict(manifest.mediaPaths),
            soundBankPaths=dict(manifest.soundBankPaths),
            assetBundlePaths=dict(manifest.assetBundlePaths),
            databaseModified=databaseModified,
            loadOrder=[name for name in orderResult.order if name not in session.excluded],
            excluded=dict(session.excluded),
            warnings=list(session.warnings),
        )
        self._logSummary(result)
        return result

    def _syncDatabase(self, session: ResolutionSession, entries: list[WinningEntry]) -> Generator[ProgressReport, None, SyncResult]:
        gen = iterSyncDatabase(
            entries,
            session.dbCache,
            session.database,
            session.baseline,
            rootDir=self.host.rootDir,
            baselineDir=self.host.baselineDir,
            dbTypes=session.settings.database.types,
        )
        setLogContext(stage=Stage.SYNCING_DATABASE.value)
        yield ProgressReport.make(Stage.SYNCING_DATABASE, forceDisplay=True)
        populating = False
        while True:
            try:
                step = next(gen)
            except StopIteration as stop:
                return stop.value
            if step.phase == "remove":
                yield ProgressReport.make(Stage.SYNCING_DATABASE, step.item, step.index + 1, step.total)
                continue
            if not populating:
                populating = True
                setLogContext(stage=Stage.POPULATING_DATABASE.value)
            yield ProgressReport.make(Stage.POPULATING_DATABASE, step.item, step.index + 1, step.total)

    @staticmethod
    def _logSummary(result: ResolutionResult) -> None:
        logger.info(
            "Resolved %d entries from %d packages (%d media files, %d sound banks, %d asset bundles)",
            len(result.entries),
            len(result.loadOrder),
            len(result.mediaPaths),
            len(result.soundBankPaths),
            len(result.assetBundlePaths),
        )
        failed = result.failedPackages()
        if failed:
            logger.warning("Packages that failed to load:")
            for name, exclusion in sorted(failed.items()):
                logger.warning("  %s: %s (%s)", name, exclusion.reason.value, exclusion.detail)



def runToCompletion(
    pipeline: ResolutionPipeline,
    onProgress: Callable[[ProgressReport], None] | None = None,
) -> ResolutionResult:
    """Drives pipeline.run() to the end, forwarding every checkpoint to onProgress."""
    gen = pipeline.run()
    while True:
        try:
            report = next(gen)
        except StopIteration as stop:
            return stop.value
        if onProgress is not None:
            onProgress(report)
