"""Record store access layer over the images table."""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from database import get_session
from errors import DuplicateStoragePathError
from models import ImageRecord, utcnow

logger = logging.getLogger(__name__)


class RecordStore:
    """CRUD over ImageRecord rows. Each call is its own transaction."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def list_all(self) -> List[ImageRecord]:
        """Return every record, newest first."""
        with get_session(self.engine) as s:
            stmt = select(ImageRecord).order_by(ImageRecord.created_at.desc())
            return list(s.exec(stmt).all())

    def get(self, record_id: uuid.UUID) -> Optional[ImageRecord]:
        with get_session(self.engine) as s:
            return s.get(ImageRecord, record_id)

    def find_by_path(self, storage_path: str) -> Optional[ImageRecord]:
        with get_session(self.engine) as s:
            stmt = select(ImageRecord).where(ImageRecord.storage_path == storage_path)
            return s.exec(stmt).first()

    def insert(self, record: ImageRecord) -> ImageRecord:
        """Insert a new record and return it with its generated fields loaded.

        Raises DuplicateStoragePathError when another row already owns
        ``record.storage_path``.
        """
        with get_session(self.engine) as s:
            s.add(record)
            try:
                s.commit()
            except IntegrityError as exc:
                s.rollback()
                raise DuplicateStoragePathError(record.storage_path) from exc
            s.refresh(record)
        logger.debug("Inserted image %s at %s", record.id, record.storage_path)
        return record

    def set_corrupted(self, record_id: uuid.UUID, corrupted: bool) -> bool:
        """Set or clear the missing-file flag in a single UPDATE.

        ``is_corrupted`` stays the union of ``decode_failed`` and
        ``file_missing``. Returns False when no row has ``record_id``.
        """
        if corrupted:
            values = {"file_missing": True, "is_corrupted": True}
        else:
            values = {"file_missing": False, "is_corrupted": ImageRecord.decode_failed}
        stmt = (
            update(ImageRecord)
            .where(ImageRecord.id == record_id)
            .values(updated_at=utcnow(), **values)
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0
