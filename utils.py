"""Utility functions."""
from pathlib import Path

from errors import FileMissingError, PixelSyncError


def resolve_under_root(root: Path, candidate: Path) -> Path:
    """Resolve an existing file path, ensuring it's under the root directory."""
    real = candidate.resolve()
    if root.resolve() not in real.parents:
        raise PixelSyncError("Path is outside storage root", status_code=400)
    if not real.is_file():
        raise FileMissingError(str(candidate))
    return real
