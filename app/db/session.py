"""Database handle, session dependency and transaction helper."""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

import structlog
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import Settings
from app.core.exceptions import AppError, ConflictError, InternalError
from app.db.base import Base

logger = structlog.get_logger(__name__)


class Database:
    """
    Owns the engine and session factory for one application instance.

    Lifecycle is explicit: ``open()`` at startup, ``close()`` at shutdown.
    Nothing is created at import time.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_timeout: int = 5,
        connect_timeout: int = 2,
        command_timeout: int = 30,
    ):
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            echo=settings.DEBUG,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
            connect_timeout=settings.DATABASE_CONNECT_TIMEOUT,
            command_timeout=settings.DATABASE_COMMAND_TIMEOUT,
        )

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def _engine_options(self) -> dict:
        options = {"echo": self.echo, "pool_pre_ping": True}
        if self.url.startswith("sqlite"):
            return options

        options.update(
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_timeout=self.pool_timeout,
        )
        if "+asyncpg" in self.url:
            options["connect_args"] = {
                "timeout": self.connect_timeout,
                "command_timeout": self.command_timeout,
            }
        return options

    async def open(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, **self._engine_options())
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("database_opened", dialect=self._engine.dialect.name)

    async def create_all(self) -> None:
        """Create tables directly (development and tests; production uses Alembic)."""
        import app.models  # noqa: F401  registers every model on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> dict:
        if self._engine is None:
            return {"status": "closed"}

        started = time.perf_counter()
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("database_health_check_failed", error=str(e))
            return {"status": "unhealthy"}

        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        }

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("database_closed")
        self._engine = None
        self._session_factory = None

    def session(self) -> AsyncSession:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    database: Database = request.app.state.db
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def atomic(
    session: AsyncSession,
    conflict_message: Optional[str] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Run a unit of work: commit on full success, roll back on any error.

    Application errors raised inside the block pass through unchanged.
    Unique-constraint violations become ``ConflictError`` when a conflict
    message is given; any other database error becomes a generic
    ``InternalError`` so that no SQL detail reaches the client.
    """
    try:
        yield session
        await session.commit()
    except AppError:
        await session.rollback()
        raise
    except IntegrityError as e:
        await session.rollback()
        if conflict_message:
            logger.info("transaction_conflict", error=str(e.orig))
            raise ConflictError(conflict_message) from e
        logger.error("transaction_failed", error=str(e.orig))
        raise InternalError() from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("transaction_failed", error=str(e))
        raise InternalError() from e
