# packforge/pipeline/session.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from packforge.config.settings import ResolverSettings, loadSettings, saveSettings
from packforge.content.baseline import BaselineManifest
from packforge.content.load_order import Exclusion, readLoadOrder, writeLoadOrder
from packforge.content.merge_cache import MergeCache
from packforge.content.package_loader import JsonParseCache
from packforge.content.type_registry import TypeRegistry
from packforge.content.types import TypeCatalog
from packforge.core.errors import DescriptorError, FatalResolutionError
from packforge.core.logging import clearLogContext, configureLogging, shutdownLogging
from packforge.db.database import ContentDatabase
from packforge.db.db_sync import DatabaseCache
from packforge.pipeline.host import HostEnvironment

logger = logging.getLogger(__name__)

__all__ = ["SessionPaths", "ResolutionSession"]

STATE_DIR_NAME = ".packforge"



@dataclass(frozen=True, slots=True)
class SessionPaths:
    stateDir: Path
    cacheDir: Path
    databaseDir: Path
    loadOrderPath: Path
    mergeCachePath: Path
    typeCachePath: Path
    dbCachePath: Path
    dbPath: Path
    configPath: Path
    logPath: Path

    @classmethod
    def forRoot(cls, rootDir: Path) -> SessionPaths:
        stateDir = rootDir / STATE_DIR_NAME
        cacheDir = stateDir / "Cache"
        databaseDir = stateDir / "Database"
        return cls(
            stateDir=stateDir,
            cacheDir=cacheDir,
            databaseDir=databaseDir,
            loadOrderPath=stateDir / "load_order.json5",
            mergeCachePath=cacheDir / "merge_cache.json5",
            typeCachePath=cacheDir / "type_cache.json5",
            dbCachePath=databaseDir / "database_cache.json5",
            dbPath=databaseDir / "content.db",
            configPath=stateDir / "config.json5",
            logPath=stateDir / "packforge.log",
        )

    def createLayout(self) -> None:
        """Raises FatalResolutionError when the state directories cannot be created."""
        for directory in (self.stateDir, self.cacheDir, self.databaseDir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as err:
                raise FatalResolutionError(f"Cannot create state directory '{directory}': {err}") from err



class ResolutionSession:
    """
    Everything one resolution run owns: settings, caches, the database
    handle, the JSON parse cache, custom types and the exclusion set.

    open() creates the state layout and reads persisted state; close()
    releases the database and the log handlers. Usable as a context manager.
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
        self.paths = SessionPaths.forRoot(host.rootDir)
        self._explicitSettings = settings
        self._overrides = overrides
        self._configureLogs = configureLogs

        self.settings: ResolverSettings = settings or ResolverSettings()
        self.catalog = TypeCatalog()
        self.parseCache = JsonParseCache()
        self.excluded: dict[str, Exclusion] = {}
        self.warnings: list[str] = []

        self.baseline: BaselineManifest | None = None
        self.previousOrder: list[str] = []
        self.typeRegistry: TypeRegistry | None = None
        self.mergeCache: MergeCache | None = None
        self.dbCache: DatabaseCache | None = None
        self.database: ContentDatabase | None = None
        self.isOpen = False

    def __enter__(self) -> ResolutionSession:
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def open(self) -> None:
        self.paths.createLayout()
        if self._explicitSettings is None:
            self.settings = loadSettings(self.paths.configPath, overrides=self._overrides)
        if self._configureLogs:
            configureLogging(self.settings.logging, self.paths.logPath)
        self.isOpen = True
        logger.info("Resolution session opened at '%s' (host %s)", self.host.rootDir, self.host.hostVersion())

    def readCaches(self) -> None:
        """Loads the baseline manifest and every persisted cache."""
        try:
            self.baseline = self.host.baselineManifest()
        except DescriptorError as err:
            logger.error("Baseline manifest is unusable, continuing without it: %s", err)
            self.baseline = BaselineManifest([])

        self.previousOrder = readLoadOrder(self.paths.loadOrderPath)
        self.typeRegistry = TypeRegistry.readFrom(self.paths.typeCachePath)
        self.mergeCache = MergeCache.readFrom(
            self.paths.mergeCachePath,
            rootDir=self.host.rootDir,
            cacheDir=self.paths.cacheDir,
            settings=self.settings.mergeCache,
        )
        self.dbCache = DatabaseCache.readFrom(self.paths.dbCachePath)
        if self.settings.database.enabled:
            self.database = ContentDatabase(self.paths.dbPath, self.host.baselineDatabasePath())

    def writeCaches(self, loadOrder: list[str]) -> None:
        """Raises FatalResolutionError when persisted state cannot be written."""
        try:
            writeLoadOrder(self.paths.loadOrderPath, loadOrder)
            if self.typeRegistry is not None:
                self.typeRegistry.writeTo(self.paths.typeCachePath)
            if self.mergeCache is not None:
                self.mergeCache.dropUnused()
                self.mergeCache.writeTo(self.paths.mergeCachePath)
            if self.dbCache is not None:
                self.dbCache.writeTo(self.paths.dbCachePath)
            saveSettings(self.paths.configPath, self.settings)
        except OSError as err:
            raise FatalResolutionError(f"Cannot write persisted state: {err}") from err

    def close(self) -> None:
        if self.database is not None:
            self.database.close()
            self.database = None
        self.parseCache.clear()
        clearLogContext()
        if self.isOpen:
            logger.info("Resolution session closed")
        if self._configureLogs:
            shutdownLogging()
        self.isOpen = False
