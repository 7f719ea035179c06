"""
Engine, session factory and transaction helpers.

Every public quoting operation runs inside exactly one transaction: either
all of its writes commit or none do.
"""

import asyncio
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm.exc import StaleDataError

from switchboard_quoting.config.settings import settings
from switchboard_quoting.database.base import Base
from switchboard_quoting.utils.exceptions import (
    ConcurrencyConflictError,
    PersistenceFailureError,
    QuotingError,
)
from switchboard_quoting.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the async engine on first use."""
    url = settings.database.async_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.database.echo)
    return create_async_engine(
        url,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        pool_pre_ping=True,
        echo=settings.database.echo,
    )


@lru_cache()
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return create_session_factory(get_engine())


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with the options every service expects."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def translate_storage_error(error: Exception) -> QuotingError:
    """Map a SQLAlchemy failure onto the quoting error taxonomy."""
    if isinstance(error, (StaleDataError, IntegrityError)):
        return ConcurrencyConflictError(f"Concurrent modification detected: {error}")
    return PersistenceFailureError(f"Storage operation failed: {error}")


@asynccontextmanager
async def get_db_session(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for a unit of work.

    Commits on success, rolls back on any exception. Storage errors raised
    by the commit itself are translated; domain errors pass through.

    Usage:
        async with get_db_session() as session:
            await BoardService(session).synthesize_and_reconcile(board_id, config)
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise translate_storage_error(e) from e
    except BaseException:
        await session.rollback()
        raise
    finally:
        await session.close()


async def run_in_transaction(
    operation: Callable[[AsyncSession], Awaitable[T]],
    timeout: float | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> T:
    """
    Run ``operation`` in a single transaction under a deadline.

    A timeout or cancellation rolls the transaction back, so nothing the
    operation wrote is persisted.
    """
    if timeout is None:
        timeout = settings.quoting.operation_timeout_seconds

    async def _run() -> T:
        async with get_db_session(session_factory) as session:
            return await operation(session)

    try:
        return await asyncio.wait_for(_run(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("transaction_timed_out", timeout_seconds=timeout)
        raise


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables."""
    import switchboard_quoting.models  # noqa: F401  registers mappers

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await get_engine().dispose()
