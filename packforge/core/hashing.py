# packforge/core/hashing.py
from __future__ import annotations

import hashlib
from pathlib import Path



def sha256sum(path: str | Path) -> str:
    """Returns a SHA-256 hex digest of the file content."""
    sha = hashlib.sha256()
    with Path(path).open("rb") as file:
        for chunk in iter(lambda: file.read(8192), b""):
            sha.update(chunk)
    return sha.hexdigest()



def fileFingerprint(path: str | Path, *, useHash: bool = False) -> str:
    """
    Change fingerprint of a file.

    "mtime:<ns>" by default; "sha256:<hex>" for stores without reliable
    timestamps (network shares, archives unpacked with fixed mtimes).
    Raises FileNotFoundError when the file is gone.
    """
    path = Path(path)
    if useHash:
        return f"sha256:{sha256sum(path)}"
    return f"mtime:{path.stat().st_mtime_ns}"
