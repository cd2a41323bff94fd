"""Database configuration and utilities."""
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

import models  # noqa: F401  registers the tables on SQLModel.metadata


def make_engine(database_url: str) -> Engine:
    """Create the engine for a SQLAlchemy URL."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


@contextmanager
def get_session(engine: Engine):
    """Get a database session context manager."""
    with Session(engine, expire_on_commit=False) as session:
        yield session


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    SQLModel.metadata.create_all(engine)
