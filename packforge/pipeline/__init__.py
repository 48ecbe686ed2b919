# packforge/pipeline/__init__.py
from .host import HostEnvironment, LocalHost
from .pipeline import ResolutionPipeline, ResolutionResult, runToCompletion
from .session import ResolutionSession, SessionPaths
from .types import ProgressReport, Stage

__all__ = [
    "HostEnvironment",
    "LocalHost",
    "ResolutionPipeline",
    "ResolutionResult",
    "runToCompletion",
    "ResolutionSession",
    "SessionPaths",
    "ProgressReport",
    "Stage",
]
