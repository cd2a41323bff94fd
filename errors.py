"""Exceptions and their HTTP rendering."""
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PixelSyncError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class DuplicateStoragePathError(PixelSyncError):
    """A record already references this storage path."""
    status_code = 409

    def __init__(self, storage_path: str):
        super().__init__(f"Storage path already recorded: {storage_path}")
        self.storage_path = storage_path


class SyncInProgressError(PixelSyncError):
    status_code = 409

    def __init__(self):
        super().__init__("Sync already in progress")


class SyncFailedError(PixelSyncError):
    status_code = 500

    def __init__(self):
        super().__init__("Sync failed")


class UploadFailedError(PixelSyncError):
    status_code = 500

    def __init__(self):
        super().__init__("Upload failed")


class CropFailedError(PixelSyncError):
    status_code = 500

    def __init__(self):
        super().__init__("Crop failed")


class RecordNotFoundError(PixelSyncError):
    status_code = 404

    def __init__(self, record_id):
        super().__init__("Image not found")
        self.record_id = record_id


class FileMissingError(PixelSyncError):
    status_code = 404

    def __init__(self, storage_path: str):
        super().__init__("File missing on disk")
        self.storage_path = storage_path


class InvalidCropError(PixelSyncError):
    status_code = 400


class UndecodableImageError(PixelSyncError):
    status_code = 422

    def __init__(self, storage_path: str):
        super().__init__("Source image could not be decoded")
        self.storage_path = storage_path


async def pixelsync_exception_handler(request: Request, exc: PixelSyncError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
