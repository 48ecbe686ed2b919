# packforge/core/logging/__init__.py
from __future__ import annotations

from .context import setLogContext, clearLogContext, getLogContext, logContext
from .setup import configureLogging, shutdownLogging

__all__ = [
    "configureLogging",
    "shutdownLogging",
    "setLogContext",
    "clearLogContext",
    "getLogContext",
    "logContext",
]
