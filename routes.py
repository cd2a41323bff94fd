"""FastAPI routes for PixelSync."""
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import File, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from errors import (
    CropFailedError,
    PixelSyncError,
    RecordNotFoundError,
    SyncFailedError,
    UploadFailedError,
)
from models import CropRegion, ImageRecord, SyncSummary
from utils import resolve_under_root
from writers import crop_image, save_upload

logger = logging.getLogger(__name__)


def _get_record(request: Request, image_id: uuid.UUID) -> ImageRecord:
    record = request.app.state.store.get(image_id)
    if not record:
        raise RecordNotFoundError(image_id)
    return record


def health(request: Request):
    """Report whether the record store is reachable."""
    try:
        request.app.state.store.ping()
    except Exception:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "error": "DB connection failed"},
        )
    return {"status": "ok", "db": "connected"}


def list_images(request: Request) -> List[ImageRecord]:
    return request.app.state.store.list_all()


def image_detail(request: Request, image_id: uuid.UUID) -> ImageRecord:
    return _get_record(request, image_id)


def upload_image(request: Request, file: Optional[UploadFile] = File(None)):
    """Store an uploaded file and its record."""
    if file is None or not file.filename:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})
    try:
        record = save_upload(
            request.app.state.store,
            request.app.state.directory,
            file.filename,
            file.content_type,
            file.file.read(),
        )
    except PixelSyncError:
        raise
    except Exception as exc:
        logger.exception("Upload of %s failed", file.filename)
        raise UploadFailedError() from exc
    return JSONResponse(
        status_code=201,
        content={"message": "File uploaded", "image": record.model_dump(mode="json")},
    )


def crop(request: Request, image_id: uuid.UUID, region: CropRegion):
    """Create a new image from a normalized region of an existing one."""
    source = _get_record(request, image_id)
    try:
        record = crop_image(
            request.app.state.store, request.app.state.directory, source, region
        )
    except PixelSyncError:
        raise
    except Exception as exc:
        logger.exception("Crop of %s failed", image_id)
        raise CropFailedError() from exc
    return JSONResponse(
        status_code=201,
        content={"message": "Image cropped", "image": record.model_dump(mode="json")},
    )


def media(request: Request, image_id: uuid.UUID):
    """Serve original media file."""
    record = _get_record(request, image_id)
    real = resolve_under_root(
        request.app.state.directory.root, Path(record.storage_path)
    )
    return FileResponse(real, media_type=record.mime_type)


def sync(request: Request) -> SyncSummary:
    """Reconcile the record store with the storage root."""
    try:
        return request.app.state.sync_engine.run()
    except PixelSyncError:
        raise
    except Exception as exc:
        logger.exception("Sync aborted")
        raise SyncFailedError() from exc
