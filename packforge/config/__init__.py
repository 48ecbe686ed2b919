# packforge/config/__init__.py
from .settings import (
    ResolverSettings,
    LoggingSettings,
    PackageSettings,
    MergeCacheSettings,
    DatabaseSettings,
    loadSettings,
    saveSettings,
)

__all__ = [
    "ResolverSettings",
    "LoggingSettings",
    "PackageSettings",
    "MergeCacheSettings",
    "DatabaseSettings",
    "loadSettings",
    "saveSettings",
]
