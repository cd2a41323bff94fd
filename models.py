"""Database models and API schemas for PixelSync."""
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageRecord(SQLModel, table=True):
    """Metadata row for one file in the storage root."""
    __tablename__ = "images"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    filename: str
    mime_type: str
    size_bytes: int
    width: Optional[int] = None
    height: Optional[int] = None
    # Reserved for content hashing; nothing populates or reads it yet.
    checksum: Optional[str] = None
    storage_path: str = Field(index=True, unique=True, description="Absolute path")
    is_corrupted: bool = False
    decode_failed: bool = False
    file_missing: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CropRegion(BaseModel):
    """Crop box normalized to the displayed (EXIF-oriented) image."""
    x: float = PydanticField(ge=0, le=1)
    y: float = PydanticField(ge=0, le=1)
    width: float = PydanticField(gt=0, le=1)
    height: float = PydanticField(gt=0, le=1)


class SyncFileError(BaseModel):
    path: str
    error: str


class SyncSummary(BaseModel):
    """Counts reported by one reconciliation run. Never persisted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_db_before: int = 0
    total_disk: int = 0
    added_from_disk: int = 0
    marked_missing: int = 0
    healed: int = 0
    errors: List[SyncFileError] = PydanticField(default_factory=list)
