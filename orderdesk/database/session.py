import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.database.engine import async_session
from orderdesk.exceptions import TransactionFailureException

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a database session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def atomic(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Run a mutating sequence as one all-or-nothing unit.

    The block executes inside a SAVEPOINT, so any exception rolls back every
    write made inside it while leaving the caller's outer transaction usable.
    Storage errors surface as ``TransactionFailureException``; domain errors
    propagate unchanged.
    """
    try:
        async with session.begin_nested():
            yield
    except SQLAlchemyError as exc:
        logger.error("Transaction failed during %s: %s", operation, exc)
        raise TransactionFailureException(
            f"Storage error during {operation}; no changes were applied",
            details=[{"operation": operation, "error": exc.__class__.__name__}],
        ) from exc
