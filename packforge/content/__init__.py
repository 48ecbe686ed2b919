# packforge/content/__init__.py
from .baseline import BaselineEntry, BaselineManifest
from .load_order import Exclusion, ExclusionReason, LoadOrderResult, resolveLoadOrder, readLoadOrder, writeLoadOrder
from .manifest_resolver import ManifestResolver, ManifestResult, WinningEntry
from .merge_cache import MergeCache, MergeCacheRecord
from .pack_descriptor import ContentEntry, PackageDescriptor, discoverPackages, loadDescriptor
from .package_loader import JsonParseCache, expandPackageEntries
from .type_registry import TypeRegistry
from .types import BuiltinType, SpecialType, TypeCatalog

__all__ = [
    "BaselineEntry",
    "BaselineManifest",
    "Exclusion",
    "ExclusionReason",
    "LoadOrderResult",
    "resolveLoadOrder",
    "readLoadOrder",
    "writeLoadOrder",
    "ManifestResolver",
    "ManifestResult",
    "WinningEntry",
    "MergeCache",
    "MergeCacheRecord",
    "ContentEntry",
    "PackageDescriptor",
    "discoverPackages",
    "loadDescriptor",
    "JsonParseCache",
    "expandPackageEntries",
    "TypeRegistry",
    "BuiltinType",
    "SpecialType",
    "TypeCatalog",
]
