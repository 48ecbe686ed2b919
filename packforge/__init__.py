# packforge/__init__.py
from .pipeline.host import HostEnvironment, LocalHost
from .pipeline.pipeline import ResolutionPipeline, ResolutionResult, runToCompletion
from .pipeline.types import ProgressReport

__all__ = [
    "HostEnvironment",
    "LocalHost",
    "ResolutionPipeline",
    "ResolutionResult",
    "ProgressReport",
    "runToCompletion",
]

__version__ = "0.4.0"
