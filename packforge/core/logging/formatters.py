# packforge/core/logging/formatters.py
from __future__ import annotations

import logging

from packforge.core.jsonutils import safeJsonDumps
from .context import getLogContext

# Context keys shown on console lines, in this order
_CONSOLE_CTX_KEYS = ("stage", "package")



def _consoleContext() -> str:
    ctx = getLogContext() or {}
    parts = [str(ctx[key]) for key in _CONSOLE_CTX_KEYS if ctx.get(key)]
    return f" [{'/'.join(parts)}]" if parts else ""



class JsonFormatter(logging.Formatter):
    """One JSON object per line for the run log file."""
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": int(record.created * 1000),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
            "ctx": getLogContext() or {},
        }
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc"] = {
                "type": type(exc).__name__,
                "message": str(exc),
                "stack": self.formatException(record.exc_info),
            }
        return safeJsonDumps(payload)



class DevFormatter(logging.Formatter):
    """Console lines: `LEVEL: [logger] message [stage/package]`."""
    def format(self, record: logging.LogRecord) -> str:
        text = f"{record.levelname}: [{record.name}] {record.getMessage()}{_consoleContext()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        if record.stack_info:
            text += "\n" + self.formatStack(record.stack_info)
        return text
