# packforge/core/errors.py
from __future__ import annotations

__all__ = [
    "PackforgeError",
    "DescriptorError",
    "ContentError",
    "MergeError",
    "FatalResolutionError",
]



class PackforgeError(Exception):
    """Base class for every error raised by packforge."""
    pass



class DescriptorError(PackforgeError):
    """Raised when a package descriptor cannot be read or normalized."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path



class ContentError(PackforgeError):
    """
    Raised while expanding a package's content entries.

    Scoped to a single package: the caller discards every entry of the
    package and records it as excluded, siblings keep loading.
    """

    def __init__(self, message: str, *, packageName: str, path: str | None = None) -> None:
        super().__init__(message)
        self.packageName = packageName
        self.path = path



class MergeError(PackforgeError):
    """Raised when a fragment cannot be applied onto its base document."""
    pass



class FatalResolutionError(PackforgeError):
    """Raised when the run cannot continue at all (state layout or cache writes failed)."""
    pass
