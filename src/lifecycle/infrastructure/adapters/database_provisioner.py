"""Per-instance PostgreSQL database creation."""
from __future__ import annotations

import re

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.lifecycle.domain.ports import DatabaseProvisioner
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

_VALID_NAME = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


class PostgresDatabaseProvisioner(DatabaseProvisioner):
    """
    Creates instance databases on the hub's PostgreSQL server.

    CREATE DATABASE cannot run inside a transaction block, so this uses its
    own engine in AUTOCOMMIT mode.
    """

    def __init__(self, admin_url: str, engine: AsyncEngine | None = None) -> None:
        self._engine = engine or create_async_engine(admin_url, isolation_level="AUTOCOMMIT", pool_size=1)

    @staticmethod
    def _check_name(name: str) -> str:
        if not _VALID_NAME.match(name):
            raise ValueError(f"Invalid database name: {name!r}")
        return name

    async def database_exists(self, name: str) -> bool:
        async with self._engine.connect() as conn:
            found = await conn.scalar(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": self._check_name(name)},
            )
        return found is not None

    async def create_database(self, name: str) -> None:
        name = self._check_name(name)
        if await self.database_exists(name):
            logger.debug("database_already_exists", database=name)
            return
        async with self._engine.connect() as conn:
            await conn.execute(text(f'CREATE DATABASE "{name}"'))
        logger.info("database_created", database=name)

    async def dispose(self) -> None:
        await self._engine.dispose()
