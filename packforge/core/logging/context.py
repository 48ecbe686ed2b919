# packforge/core/logging/context.py
from __future__ import annotations
import contextvars
from collections.abc import Iterator
from contextlib import contextmanager

# Run-scoped log context: the pipeline stage and the package being placed.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("packforge.logctx", default=None)

def setLogContext(**kvs):
    """Updates stage/package values. Passing None removes a key."""
    current = dict(_logContextVar.get() or {})
    for key, value in kvs.items():
        if value is None:
            current.pop(key, None)
        else:
            current[key] = value
    _logContextVar.set(current)

@contextmanager
def logContext(**kvs) -> Iterator[None]:
    """Scoped setLogContext(); the previous context is restored on exit."""
    token = _logContextVar.set(dict(_logContextVar.get() or {}))
    setLogContext(**kvs)
    try:
        yield
    finally:
        _logContextVar.reset(token)

def clearLogContext():
    _logContextVar.set(None)

def getLogContext():
    return _logContextVar.get()
