"""SQLAlchemy plumbing for the admin session table."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from courier.core.config import get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    url = (settings.database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to store admin sessions.")
    options: dict = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        # requests are served from the thread pool, not the thread that opened the file
        options["connect_args"] = {"check_same_thread": False}
        settings.data_dir.mkdir(parents=True, exist_ok=True)
    return create_engine(url, **options)


@lru_cache
def _get_sessionmaker() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False, future=True)


@contextmanager
def get_session() -> Iterator[Session]:
    session = _get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


def create_all() -> None:
    """Create the session table if it is missing; called once at start-up."""
    from courier.db import models  # noqa: F401  registers AdminSession on Base.metadata

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Session store ready at %s", engine.url.render_as_string(hide_password=True))
