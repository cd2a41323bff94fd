"""Storage root listing and the path convention shared by writers."""
import logging
import os
import stat
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

from models import SyncFileError

logger = logging.getLogger(__name__)

# Configuration
ALLOWED_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff"}
DEFAULT_MIME_TYPE = "image/jpeg"
MIME_BY_EXT = {
    ".png": "image/png",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def mime_type_for(path: Union[str, Path]) -> str:
    """Infer a MIME type from the file extension."""
    return MIME_BY_EXT.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def is_image_name(name: str) -> bool:
    return Path(name).suffix.lower() in ALLOWED_EXTS


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    full_path: str
    mime_type: str


@dataclass
class DirectoryScan:
    entries: List[DirectoryEntry] = field(default_factory=list)
    errors: List[SyncFileError] = field(default_factory=list)


class ContentDirectory:
    """The single flat directory holding every image file."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> str:
        return str(self.root / name)

    def new_path(self, filename: str) -> str:
        """Reserve the storage path for a newly written file.

        Uploads and crops both go through here so their rows carry exactly
        the path a later scan() reports. The file is created empty with
        O_EXCL, so concurrent writers never share a path; the caller
        overwrites it with the real content.
        """
        safe_name = Path(filename).name or "image"
        stamp = int(time.time() * 1000)
        while True:
            candidate = self.path_for(f"{stamp}_{safe_name}")
            try:
                fd = os.open(candidate, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                stamp += 1
                continue
            os.close(fd)
            return candidate

    def scan(self) -> DirectoryScan:
        """List image files directly under the root (non-recursive).

        Failing to open the root raises. A single entry whose type cannot be
        determined is reported in ``errors`` and skipped.
        """
        result = DirectoryScan()
        with os.scandir(self.root) as it:
            for entry in it:
                if not is_image_name(entry.name):
                    continue
                full_path = self.path_for(entry.name)
                try:
                    if not entry.is_file():
                        continue
                except OSError as exc:
                    logger.warning("Skipping %s: %s", full_path, exc)
                    result.errors.append(SyncFileError(path=full_path, error=str(exc)))
                    continue
                result.entries.append(
                    DirectoryEntry(
                        name=entry.name,
                        full_path=full_path,
                        mime_type=mime_type_for(entry.name),
                    )
                )
        result.entries.sort(key=lambda e: e.name)
        return result

    def exists(self, path: str) -> bool:
        """True for a regular file, False when nothing is at ``path``.

        Any other stat failure (permissions, symlink loops) raises OSError.
        """
        try:
            st = os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return False
        return stat.S_ISREG(st.st_mode)

    def size_of(self, path: str) -> int:
        return os.stat(path).st_size
