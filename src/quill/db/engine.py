"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode: create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

There is no module-level engine. create_app() builds one Database and hangs
it on app.state; get_db() reaches it through the request. Tests hand
create_app() their own Database (in-memory SQLite) and nothing is shared
between them.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quill.config import Settings
from quill.db.models import Base
from quill.errors import ApiError, PersistenceError

logger = structlog.get_logger()


class Database:
    """Owns the engine (connection pool) and the session factory."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        # Session factory: each request gets its own session.
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build a pooled engine from settings.

        Learn: pool_recycle replaces connections that sat idle past the
        limit, pool_pre_ping drops dead ones on checkout. SQLite has no
        server-side pool to tune, so those knobs are skipped there.
        """
        kwargs = {"echo": settings.debug}
        if not settings.is_sqlite:
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=settings.db_pool_recycle_seconds,
                pool_pre_ping=settings.db_pool_pre_ping,
            )
        return cls(create_async_engine(settings.database_url, **kwargs))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("db.ping_failed", error=str(e))
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.db


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yields a session per request, auto-closes.

    Uncommitted work is rolled back if the handler fails. Driver errors
    surface as a generic 500 (PersistenceError); the details go to the log.
    """
    async with get_database(request).session() as session:
        try:
            yield session
        except ApiError:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception("db.error", path=request.url.path)
            raise PersistenceError() from e
