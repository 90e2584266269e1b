"""
SQLAlchemy Implementation of Generic Repository
Concrete async repository using SQLAlchemy 2.x
"""
from __future__ import annotations

from typing import Any, Generic, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from src.shared.exceptions import ConcurrencyConflictError
from src.shared.infrastructure.database.base_model import Base
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

TEntity = TypeVar("TEntity")
TModel = TypeVar("TModel", bound=Base)


class SQLAlchemyRepository(Generic[TEntity, TModel]):
    """
    Generic async SQLAlchemy repository implementation.

    Maps domain entities to/from ORM models and provides the versioned
    update used for optimistic concurrency.

    Type Parameters:
        TEntity: Domain entity type
        TModel: SQLAlchemy ORM model type
    """

    def __init__(
        self,
        session: AsyncSession,
        model_class: Type[TModel],
        entity_class: Type[TEntity],
    ) -> None:
        self.session = session
        self.model_class = model_class
        self.entity_class = entity_class

    def _to_entity(self, model: TModel) -> TEntity:
        """Convert ORM model to domain entity."""
        raise NotImplementedError("Subclass must implement _to_entity")

    def _to_model(self, entity: TEntity) -> TModel:
        """Convert domain entity to ORM model."""
        raise NotImplementedError("Subclass must implement _to_model")

    async def _add(self, entity: TEntity) -> TEntity:
        model = self._to_model(entity)
        self.session.add(model)
        await self.session.flush()
        logger.debug("entity_added", entity=self.entity_class.__name__)
        return self._to_entity(model)

    async def _get(self, key: Any) -> TEntity | None:
        model = await self.session.get(self.model_class, key)
        return self._to_entity(model) if model else None

    async def _update_versioned(self, key_column: Any, key: Any, expected_version: int, values: dict[str, Any]) -> int:
        """
        Apply ``values`` only if the row still carries ``expected_version``.

        Returns:
            The new version

        Raises:
            ConcurrencyConflictError: If the row changed (or vanished) since it was read
        """
        new_version = expected_version + 1
        stmt = (
            update(self.model_class)
            .where(key_column == key, self.model_class.version == expected_version)
            .values(**values, version=new_version)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            logger.info(
                "optimistic_concurrency_conflict",
                entity=self.entity_class.__name__,
                key=key,
                expected_version=expected_version,
            )
            raise ConcurrencyConflictError(self.entity_class.__name__, key, expected_version)
        return new_version
