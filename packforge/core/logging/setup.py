# packforge/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path

from packforge.config.settings import LoggingSettings
from .formatters import DevFormatter, JsonFormatter

__all__ = ["configureLogging", "shutdownLogging"]

_ROOT_LOGGER_NAME = "packforge"
# Handlers attached by configureLogging(), removed again by shutdownLogging()
_installed: list[logging.Handler] = []



def configureLogging(settings: LoggingSettings, logPath: Path | None = None) -> logging.Logger:
    """
    Attach run handlers to the "packforge" logger.

    Console:
      - DevFormatter at settings.consoleLevel (DEBUG when devMode)
    File (when logPath is given):
      - JsonFormatter, rotating, truncated at the start of every run
    
    Calling it again replaces the handlers from the previous call.
    """
    shutdownLogging()

    level = logging.DEBUG if settings.devMode else getattr(logging, settings.consoleLevel.upper(), logging.INFO)
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(level)
    consoleHandler.setFormatter(DevFormatter())
    root.addHandler(consoleHandler)
    _installed.append(consoleHandler)

    if logPath is not None:
        logPath.parent.mkdir(parents=True, exist_ok=True)
        fileHandler = logging.handlers.RotatingFileHandler(
            logPath,
            mode="w",
            maxBytes=settings.maxBytes,
            backupCount=settings.backupCount,
            encoding="utf-8",
        )
        fileHandler.setLevel(getattr(logging, settings.fileLevel.upper(), logging.DEBUG))
        fileHandler.setFormatter(JsonFormatter())
        root.addHandler(fileHandler)
        _installed.append(fileHandler)
    
    return root



def shutdownLogging() -> None:
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()
