"""
db/session.py

Engine and session factory for the campaign store.

The engine is built on first use, so importing the ORM models or the
store never opens a connection.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class PoolSettings:
    """
    Connection pool sizing read from ``DB_POOL_*`` and ``SQL_ECHO``.
    """

    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800
    echo: bool = False

    @classmethod
    def from_env(cls) -> PoolSettings:
        return cls(
            pool_size=max(1, _env_int("DB_POOL_SIZE", cls.pool_size)),
            max_overflow=max(0, _env_int("DB_MAX_OVERFLOW", cls.max_overflow)),
            pool_recycle_seconds=_env_int("DB_POOL_RECYCLE", cls.pool_recycle_seconds),
            echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
        )


def create_db_engine(
    database_url: str | None = None,
    *,
    pool: PoolSettings | None = None,
) -> Engine:
    url = database_url or resolve_database_url()
    if not url.startswith("postgresql"):
        # Issue writes use INSERT ... ON CONFLICT DO NOTHING.
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    settings = pool or PoolSettings.from_env()
    return create_engine(
        url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_recycle=settings.pool_recycle_seconds,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(
        bind=get_engine(),
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def SessionLocal() -> Session:
    """Open a new session on the shared engine."""
    return get_session_factory()()


def dispose_engine() -> None:
    """
    Close pooled connections and forget the cached engine.

    No-op when the engine was never created.
    """

    if get_engine.cache_info().currsize:
        get_engine().dispose()
    get_session_factory.cache_clear()
    get_engine.cache_clear()
