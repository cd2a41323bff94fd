"""
PixelSync – image catalog server (FastAPI + SQLModel)

Quick start
-----------
1) python -m venv .venv && source .venv/bin/activate  # or .venv\\Scripts\\activate on Windows
2) pip install -e .
3) python app.py  # creates the storage root and tables
4) POST http://localhost:4000/sync to reconcile the catalog with the storage root

Notes
-----
• Configure with PIXELSYNC_* environment variables or a .env file
  (PIXELSYNC_DATABASE_URL, PIXELSYNC_STORAGE_ROOT, PIXELSYNC_LOG_LEVEL, ...).
• Files in the storage root are never modified by a sync; rows are never deleted.
• Sync is safe to re-run: a second run with nothing changed reports no work.
"""

import logging
import sys
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, configure_logging, get_settings
from database import init_db, make_engine
from errors import PixelSyncError, pixelsync_exception_handler
from routes import (
    crop,
    health,
    image_detail,
    list_images,
    media,
    sync,
    upload_image,
)
from scanner import ContentDirectory
from store import RecordStore
from sync_engine import SyncEngine

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one store, one storage root and one engine."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    directory = ContentDirectory(settings.storage_root)
    directory.ensure()

    engine = make_engine(settings.database_url)
    init_db(engine)
    store = RecordStore(engine)

    app = FastAPI(title="PixelSync")
    app.state.settings = settings
    app.state.db_engine = engine
    app.state.store = store
    app.state.directory = directory
    app.state.sync_engine = SyncEngine(store, directory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PixelSyncError, pixelsync_exception_handler)

    # Routes
    app.get("/health")(health)
    app.get("/images")(list_images)
    app.get("/images/{image_id}")(image_detail)
    app.post("/images/{image_id}/crop", status_code=201)(crop)
    app.post("/upload", status_code=201)(upload_image)
    app.get("/media/{image_id}")(media)
    app.post("/sync")(sync)

    logger.info("Storage root: %s", directory.root)
    return app


if __name__ == "__main__":
    # Allow `python app.py 4000`
    settings = get_settings()
    port = int(sys.argv[1]) if len(sys.argv) > 1 else settings.port
    print(f"→ PixelSync API on http://{settings.host}:{port}")
    import uvicorn

    uvicorn.run("app:create_app", factory=True, host=settings.host, port=port)
