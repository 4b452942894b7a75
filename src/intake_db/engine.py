"""Async SQLAlchemy engine and session factory.

The engine is created lazily on first use and reused across the process
lifetime.  The server calls ``configure_engine()`` with the settings it
loaded at startup; anything that touches the database before that (scripts,
the health check in a bare process) falls back to ``load_database_settings()``.
Call ``dispose_engine()`` during graceful shutdown.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from intake_db.config import DatabaseSettings, load_database_settings

logger = logging.getLogger(__name__)

# Module-level singletons so every event shares one connection pool.
_settings: DatabaseSettings | None = None
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def configure_engine(settings: DatabaseSettings) -> None:
    """Use ``settings`` for the engine created on the next ``get_engine()``.

    Has no effect on an engine that already exists; dispose it first.
    """
    global _settings
    if _engine is not None:
        logger.warning("configure_engine() called after the engine was created; ignored")
        return
    _settings = settings


def get_engine() -> AsyncEngine:
    """Return (and lazily create) the singleton async engine."""
    global _engine, _settings
    if _engine is None:
        if _settings is None:
            _settings = load_database_settings()
        _engine = create_async_engine(
            _settings.async_url,
            echo=_settings.echo,
            pool_size=_settings.pool_size,
            max_overflow=_settings.max_overflow,
            pool_recycle=_settings.pool_recycle_seconds,
            # Telegram long polling keeps the process idle for long stretches
            pool_pre_ping=True,
            connect_args=_settings.connect_args(),
        )
        logger.info(
            "Database engine created for %s (pool %d+%d)",
            _settings.safe_url, _settings.pool_size, _settings.max_overflow,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return (and lazily create) the async session factory.

    ``expire_on_commit=False`` keeps session rows readable after the
    dispatcher commits, when outbound messages and handoffs are built.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def dispose_engine() -> None:
    """Dispose the engine's connection pool (call on app shutdown)."""
    global _engine, _session_factory, _settings
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
    _settings = None
