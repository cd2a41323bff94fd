"""Upload and crop writers.

Both write a new file under the storage root with ContentDirectory.new_path()
and insert the matching row, so the next sync does not see an orphan.
"""
import logging
import os
from typing import Optional

from PIL import Image as PILImage, ImageOps

from errors import FileMissingError, InvalidCropError, UndecodableImageError
from inspector import analyze
from models import CropRegion, ImageRecord
from scanner import ContentDirectory, mime_type_for
from store import RecordStore

logger = logging.getLogger(__name__)


def save_upload(
    store: RecordStore,
    directory: ContentDirectory,
    filename: str,
    content_type: Optional[str],
    data: bytes,
) -> ImageRecord:
    """Write uploaded bytes to the storage root and record them."""
    path = directory.new_path(filename)
    try:
        with open(path, "wb") as f:
            f.write(data)

        analysis = analyze(path)
        record = ImageRecord(
            filename=filename,
            mime_type=content_type or mime_type_for(filename),
            size_bytes=len(data),
            width=analysis.width,
            height=analysis.height,
            storage_path=path,
            is_corrupted=analysis.is_corrupted,
            decode_failed=analysis.is_corrupted,
        )
        record = store.insert(record)
    except Exception:
        _discard(path)
        raise
    logger.info("Uploaded %s as %s", filename, path)
    return record


def _discard(path: str) -> None:
    """Remove a file this module reserved but could not record."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def crop_box(region: CropRegion, width: int, height: int) -> tuple[int, int, int, int]:
    """Convert a normalized region to a pixel box clipped to the image."""
    left = round(region.x * width)
    top = round(region.y * height)
    right = min(width, round((region.x + region.width) * width))
    bottom = min(height, round((region.y + region.height) * height))
    if right <= left or bottom <= top:
        raise InvalidCropError("Selection does not overlap image")
    return left, top, right, bottom


def crop_image(
    store: RecordStore,
    directory: ContentDirectory,
    source: ImageRecord,
    region: CropRegion,
) -> ImageRecord:
    """Write the cropped part of ``source`` as a new image and record it."""
    if not os.path.isfile(source.storage_path):
        raise FileMissingError(source.storage_path)

    try:
        with PILImage.open(source.storage_path) as im:
            fmt = im.format
            oriented = ImageOps.exif_transpose(im)
            box = crop_box(region, oriented.width, oriented.height)
            cropped = oriented.crop(box)
            cropped.load()
    except (OSError, ValueError, SyntaxError) as exc:
        logger.warning("Cannot crop %s: %s", source.storage_path, exc)
        raise UndecodableImageError(source.storage_path) from exc

    new_name = f"crop_{source.filename}"
    path = directory.new_path(new_name)
    try:
        cropped.save(path, format=fmt)
        analysis = analyze(path)
        record = ImageRecord(
            filename=new_name,
            mime_type=source.mime_type,
            size_bytes=directory.size_of(path),
            width=analysis.width,
            height=analysis.height,
            storage_path=path,
            is_corrupted=analysis.is_corrupted,
            decode_failed=analysis.is_corrupted,
        )
        record = store.insert(record)
    except Exception:
        _discard(path)
        raise
    logger.info("Cropped %s into %s", source.storage_path, path)
    return record
