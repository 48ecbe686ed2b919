# packforge/content/pack_descriptor.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packforge.config.settings import PackageSettings
from packforge.core.errors import DescriptorError
from packforge.core.jsonutils import readJson5
from packforge.semver.semver import HostVersionConstraint

logger = logging.getLogger(__name__)

__all__ = [
    "ManifestEntryModel",
    "DescriptorModel",
    "ContentEntry",
    "PackageDescriptor",
    "DiscoveryResult",
    "loadDescriptor",
    "discoverPackages",
]



# ------------------------------------------------------------------ #
# Descriptor file models
# ------------------------------------------------------------------ #

class ManifestEntryModel(BaseModel):
    """One declared content entry as written in the descriptor file."""
    model_config = ConfigDict(extra="forbid")

    type: str | None = None
    path: str | None = None
    id: str | None = None
    shouldMerge: bool = False
    addToDatabase: bool = True
    addToAddendum: str | None = None
    assetBundleName: str | None = None



class DescriptorModel(BaseModel):
    """Validated package descriptor (mod.json5 / mod.json)."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    version: str = ""
    enabled: bool = True
    description: str | None = None
    author: str | None = None
    website: str | None = None
    dependsOn: list[str] = Field(default_factory=list)
    conflictsWith: list[str] = Field(default_factory=list)
    hostVersion: str | None = None
    hostVersionMin: str | None = None
    hostVersionMax: str | None = None
    ignoreLoadFailure: bool = False
    loadImplicitBaseline: bool = True
    customTypes: list[str] = Field(default_factory=list)
    manifest: list[ManifestEntryModel] = Field(default_factory=list)



# ------------------------------------------------------------------ #
# Runtime shapes
# ------------------------------------------------------------------ #

@dataclass(frozen=True, slots=True)
class ContentEntry:
    """
    One unit of content contributed by a package.

    Declared entries carry the path as written (relative to the package);
    expanded entries carry an absolute path and a concrete id.
    type None means implicit: resolved later from the type registry.
    """
    id: str | None
    type: str | None
    path: Path | None
    shouldMerge: bool = False
    addToDatabase: bool = True
    addendum: str | None = None
    assetBundleName: str | None = None
    # Path relative to the implicit baseline-override directory, POSIX form
    baselineRelPath: str | None = None

    def withPath(self, path: Path, entryId: str | None) -> ContentEntry:
        return replace(self, path=path, id=entryId)



@dataclass(frozen=True, slots=True, kw_only=True)
class PackageDescriptor:
    """Canonical, immutable description of one discovered package."""
    name: str
    version: str
    enabled: bool
    directory: Path
    descriptorPath: Path
    entries: tuple[ContentEntry, ...] = ()
    dependsOn: frozenset[str] = frozenset()
    conflictsWith: frozenset[str] = frozenset()
    hostConstraint: HostVersionConstraint = field(default_factory=HostVersionConstraint)
    ignoreLoadFailure: bool = False
    loadImplicitBaseline: bool = True
    customTypes: tuple[str, ...] = ()
    description: str | None = None
    author: str | None = None



@dataclass(slots=True)
class DiscoveryResult:
    # name -> descriptor, enabled packages only
    packages: dict[str, PackageDescriptor] = field(default_factory=dict)
    # package directory name -> reason, for unreadable descriptors
    failed: dict[str, str] = field(default_factory=dict)
    disabled: list[str] = field(default_factory=list)



# ------------------------------------------------------------------ #
# Descriptor reading / normalization
# ------------------------------------------------------------------ #

def _findDescriptorPath(dirPath: Path, names: list[str]) -> Path | None:
    for name in names:
        candidate = dirPath / name
        if candidate.is_file():
            return candidate
    return None



def _toEntry(model: ManifestEntryModel) -> ContentEntry:
    return ContentEntry(
        id=model.id,
        type=model.type or None,
        path=Path(model.path) if model.path else None,
        shouldMerge=model.shouldMerge,
        addToDatabase=model.addToDatabase,
        addendum=model.addToAddendum or None,
        assetBundleName=model.assetBundleName or None,
    )



def loadDescriptor(path: Path) -> PackageDescriptor:
    """
    Reads and validates one descriptor file.

    Raises DescriptorError for unreadable files, invalid JSON5 and schema violations.
    """
    try:
        rawJson: Any = readJson5(path)
    except (OSError, ValueError) as err:
        raise DescriptorError(f"Cannot read descriptor '{path}': {err}", path=str(path)) from err

    if not isinstance(rawJson, Mapping):
        raise DescriptorError(f"Descriptor '{path}' is not a JSON object", path=str(path))

    try:
        model = DescriptorModel.model_validate(dict(rawJson))
    except ValidationError as err:
        raise DescriptorError(f"Invalid descriptor '{path}': {err}", path=str(path)) from err

    name = model.name.strip()
    if not name:
        raise DescriptorError(f"Descriptor '{path}' has an empty name", path=str(path))

    return PackageDescriptor(
        name=name,
        version=model.version.strip(),
        enabled=model.enabled,
        directory=path.parent.resolve(),
        descriptorPath=path.resolve(),
        entries=tuple(_toEntry(entry) for entry in model.manifest),
        dependsOn=frozenset(dep.strip() for dep in model.dependsOn if dep.strip()),
        conflictsWith=frozenset(other.strip() for other in model.conflictsWith if other.strip()),
        hostConstraint=HostVersionConstraint(
            exact=model.hostVersion or None,
            minimum=model.hostVersionMin or None,
            maximum=model.hostVersionMax or None,
        ),
        ignoreLoadFailure=model.ignoreLoadFailure,
        loadImplicitBaseline=model.loadImplicitBaseline,
        customTypes=tuple(model.customTypes),
        description=model.description,
        author=model.author,
    )



# ------------------------------------------------------------------ #
# Discovery
# ------------------------------------------------------------------ #

def discoverPackages(packagesDir: Path, settings: PackageSettings, *, skipDirs: frozenset[str] = frozenset()) -> DiscoveryResult:
    """
    Finds every direct sub-directory of packagesDir holding a descriptor.

    Discovery rules:
      - Directories are visited in sorted name order, so duplicates resolve
        the same way on every platform: the first directory wins and later
        packages with the same name are logged and skipped.
      - Disabled packages are reported but never reach the resolver.
      - A descriptor that fails to parse is recorded in `failed`.
    """
    result = DiscoveryResult()
    if not packagesDir.is_dir():
        logger.info("Packages directory '%s' does not exist; nothing to load", packagesDir)
        return result

    for child in sorted(packagesDir.iterdir(), key=lambda item: item.name):
        if not child.is_dir() or child.name in skipDirs or child.name.startswith("."):
            continue
        descriptorPath = _findDescriptorPath(child, settings.descriptorNames)
        if descriptorPath is None:
            continue

        try:
            desc = loadDescriptor(descriptorPath)
        except DescriptorError as err:
            logger.error("Caught error while parsing descriptor at '%s': %s", descriptorPath, err)
            result.failed[child.name] = str(err)
            continue

        if not desc.enabled:
            logger.info("Will not load '%s' because it's disabled", desc.name)
            result.disabled.append(desc.name)
            continue

        if desc.name in result.packages:
            logger.warning(
                "Already found a package named '%s'; skipping the copy in '%s'",
                desc.name,
                desc.directory,
            )
            continue

        logger.debug("Discovered package '%s' %s at '%s'", desc.name, desc.version, desc.directory)
        result.packages[desc.name] = desc

    return result
