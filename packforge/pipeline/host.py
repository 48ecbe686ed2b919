# packforge/pipeline/host.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from packforge.content.baseline import BaselineManifest

logger = logging.getLogger(__name__)

__all__ = ["HostEnvironment", "LocalHost"]



@runtime_checkable
class HostEnvironment(Protocol):
    """What the resolver needs from the host application. Nothing more."""
    rootDir: Path
    packagesDir: Path
    baselineDir: Path

    def hostVersion(self) -> str: ...

    def baselineManifest(self) -> BaselineManifest: ...

    def baselineDatabasePath(self) -> Path | None: ...



@dataclass
class LocalHost:
    """
    Host installed on the local filesystem.

    Layout defaults (all relative to rootDir):
        packages/                 package directories
        baseline/                 baseline asset tree
        baseline/manifest.json5   baseline content manifest
        baseline/content.db       baseline structured database
    """
    rootDir: Path
    version: str
    packagesDir: Path | None = None
    baselineDir: Path | None = None
    manifestPath: Path | None = None
    databasePath: Path | None = None

    def __post_init__(self) -> None:
        self.rootDir = Path(self.rootDir).resolve()
        self.packagesDir = Path(self.packagesDir).resolve() if self.packagesDir else self.rootDir / "packages"
        self.baselineDir = Path(self.baselineDir).resolve() if self.baselineDir else self.rootDir / "baseline"
        self.manifestPath = Path(self.manifestPath) if self.manifestPath else self.baselineDir / "manifest.json5"
        self.databasePath = Path(self.databasePath) if self.databasePath else self.baselineDir / "content.db"
        self._manifest: BaselineManifest | None = None

    def hostVersion(self) -> str:
        return self.version

    def baselineManifest(self) -> BaselineManifest:
        if self._manifest is None:
            if self.manifestPath.is_file():
                self._manifest = BaselineManifest.fromFile(self.manifestPath, baseDir=self.baselineDir)
            else:
                logger.warning("No baseline manifest at '%s'; baseline is empty", self.manifestPath)
                self._manifest = BaselineManifest([])
        return self._manifest

    def baselineDatabasePath(self) -> Path | None:
        return self.databasePath if self.databasePath.is_file() else None
