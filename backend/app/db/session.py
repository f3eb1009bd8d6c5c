from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.config import settings


class Base(DeclarativeBase):
    pass


def is_memory_sqlite(database_url: str) -> bool:
    """In-memory SQLite lives on one shared connection, so one writer thread at a time."""
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and (
        not url.database or url.database == ":memory:"
    )


def make_engine(database_url: str, timeout_s: float = 5.0):
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if is_memory_sqlite(database_url):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False, "timeout": timeout_s},
                poolclass=StaticPool,
            )
        directory = os.path.dirname(url.database)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": timeout_s},
            pool_timeout=timeout_s,
        )
    return create_engine(database_url, pool_pre_ping=True, pool_timeout=timeout_s)


engine = make_engine(settings.database_url, settings.store_timeout_s)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
