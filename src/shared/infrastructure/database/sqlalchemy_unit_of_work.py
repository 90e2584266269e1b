"""
SQLAlchemy Implementation of Unit of Work
Manages database transactions with async SQLAlchemy sessions
"""
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class SQLAlchemyUnitOfWork:
    """
    SQLAlchemy-based Unit of Work implementation.

    Opens one session per context, so every ``async with`` block is its own
    transaction. Subclasses attach repositories in ``_bind_repositories``.

    Attributes:
        session: Async SQLAlchemy session (only valid inside the context)
        _committed: Flag tracking if transaction was committed
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self.session: AsyncSession | None = None
        self._committed = False

    def _bind_repositories(self, session: AsyncSession) -> None:
        """Hook for subclasses to construct repositories on the new session."""

    async def __aenter__(self) -> SQLAlchemyUnitOfWork:
        self.session = self._session_factory()
        self._committed = False
        await self.session.begin()
        self._bind_repositories(self.session)
        logger.debug("uow_transaction_started")
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
                logger.debug("uow_rolled_back_on_exception", error=str(exc_val))
            elif not self._committed:
                await self.rollback()
        finally:
            if self.session is not None:
                await self.session.close()
            self.session = None

    async def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            Exception: If commit fails (the transaction is rolled back first)
        """
        if self.session is None:
            raise RuntimeError("commit() outside of unit of work context")
        try:
            await self.session.commit()
            self._committed = True
            logger.debug("uow_transaction_committed")
        except Exception as e:
            await self.rollback()
            logger.error("uow_commit_failed", error=str(e))
            raise

    async def rollback(self) -> None:
        """Discard all changes made within this context."""
        if self.session is None:
            return
        await self.session.rollback()
        self._committed = False
