"""Application settings."""
import logging
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Runtime configuration, read from PIXELSYNC_* env vars and .env."""

    model_config = SettingsConfigDict(
        env_prefix="PIXELSYNC_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = f"sqlite:///{APP_DIR / 'pixelsync.db'}"
    storage_root: Path = APP_DIR / "storage" / "mock"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 4000
    cors_origins: List[str] = ["*"]

    @field_validator("storage_root")
    @classmethod
    def resolve_storage_root(cls, v: Path) -> Path:
        # storage paths are compared as strings, so the root must be absolute
        return Path(v).expanduser().resolve()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    root.setLevel(level)
