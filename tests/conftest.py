import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image as PILImage

from app import create_app
from config import Settings
from database import init_db, make_engine
from models import ImageRecord
from scanner import ContentDirectory
from store import RecordStore
from sync_engine import SyncEngine


def write_image(path: Path, size=(8, 6), fmt="PNG") -> Path:
    """Write a small solid-color image to ``path``."""
    PILImage.new("RGB", size, (200, 40, 40)).save(path, format=fmt)
    return path


def image_bytes(size=(8, 6), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    PILImage.new("RGB", size, (10, 120, 200)).save(buf, format=fmt)
    return buf.getvalue()


def make_record(storage_path, **overrides) -> ImageRecord:
    fields = {
        "filename": Path(storage_path).name,
        "mime_type": "image/png",
        "size_bytes": 100,
        "storage_path": str(storage_path),
    }
    fields.update(overrides)
    return ImageRecord(**fields)


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def settings(tmp_path, storage_root):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        storage_root=storage_root,
        log_level="DEBUG",
    )


@pytest.fixture
def store(settings):
    engine = make_engine(settings.database_url)
    init_db(engine)
    yield RecordStore(engine)
    engine.dispose()


@pytest.fixture
def directory(settings):
    return ContentDirectory(settings.storage_root)


@pytest.fixture
def sync_engine(store, directory):
    return SyncEngine(store, directory)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
    app.state.db_engine.dispose()
