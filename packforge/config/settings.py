# packforge/config/settings.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any

import json5
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packforge.core.jsonutils import writeJson5

logger = logging.getLogger(__name__)

__all__ = [
    "LoggingSettings", "PackageSettings", "MergeCacheSettings",
    "DatabaseSettings", "ResolverSettings",
    "deepMerge", "loadSettings", "saveSettings",
]



class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    devMode: bool = False
    consoleLevel: str = "INFO"
    fileLevel: str = "DEBUG"
    maxBytes: int = 10 * 1024 * 1024
    backupCount: int = 2



class PackageSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Descriptor file names, first hit wins
    descriptorNames: list[str] = Field(default_factory=lambda: ["mod.json5", "mod.json"])
    # File name suffixes never picked up by directory expansion
    denyList: list[str] = Field(default_factory=lambda: [".DS_Store", "~", ".nomedia"])
    # Directory inside a package that mirrors the host's baseline asset tree
    implicitBaselineDir: str = "baseline"
    # JSON paths tried in order when inferring an id from a content file
    idPaths: list[str] = Field(default_factory=lambda: ["Description.Id", "id", "Id", "ID", "identifier", "Identifier"])



class MergeCacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Fingerprint every file by content hash instead of modification time
    alwaysHash: bool = False
    # Files below these roots (relative to the host root) are fingerprinted by hash
    hashRoots: list[str] = Field(default_factory=list)



class DatabaseSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    # Content types whose rows live in the structured database
    types: list[str] = Field(default_factory=lambda: [
        "ContractOverride",
        "LanceDef",
        "MechDef",
        "PilotDef",
        "SimGameEventDef",
        "TurretDef",
        "UpgradeDef",
        "VehicleDef",
        "WeaponDef",
    ])



class ResolverSettings(BaseModel):
    """Validated run configuration. Unknown keys are rejected."""
    model_config = ConfigDict(extra="forbid")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    packages: PackageSettings = Field(default_factory=PackageSettings)
    mergeCache: MergeCacheSettings = Field(default_factory=MergeCacheSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)



def deepMerge(first: Any, second: Any) -> Any:
    """
    Returns a new value where keys from `second` override/extend `first`.
    Only merges recursively when BOTH sides are dicts; otherwise `second` wins.
    """
    if isinstance(first, dict) and isinstance(second, dict):
        out: dict[str, Any] = dict(first)
        for key, value in second.items():
            out[key] = deepMerge(out[key], value) if key in out else value
        return out
    return second



def loadSettings(path: Path | None = None, *, overrides: dict[str, Any] | None = None) -> ResolverSettings:
    """
    Builds settings from defaults, the user's config file (json5) and explicit overrides.

    A config file that fails to parse or validate is logged and ignored, so a
    broken config never blocks a run; explicit overrides are trusted and raise.
    """
    merged: dict[str, Any] = ResolverSettings().model_dump()
    if path is not None and path.is_file():
        try:
            userData = json5.loads(path.read_text(encoding="utf-8"))
            if not isinstance(userData, dict):
                raise TypeError(f"config root must be an object, got {type(userData).__name__}")
            candidate = deepMerge(merged, userData)
            ResolverSettings.model_validate(candidate)
            merged = candidate
        except (ValueError, TypeError, ValidationError) as err:
            logger.error("Failed to load config '%s', using defaults: %s", path, err)
    if overrides:
        merged = deepMerge(merged, overrides)
    return ResolverSettings.model_validate(merged)



def saveSettings(path: Path, settings: ResolverSettings) -> None:
    writeJson5(path, settings.model_dump())
