"""
InstanceHealth Repository Implementation
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.entities import InstanceHealth
from src.lifecycle.domain.repositories import HealthRepository
from src.lifecycle.infrastructure.persistence.models import InstanceHealthModel
from src.shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository


class SqlAlchemyHealthRepository(SQLAlchemyRepository[InstanceHealth, InstanceHealthModel], HealthRepository):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=InstanceHealthModel, entity_class=InstanceHealth)

    def _to_entity(self, model: InstanceHealthModel) -> InstanceHealth:
        return InstanceHealth(
            instance_id=model.instance_id,
            is_healthy=model.is_healthy,
            last_check_at=model.last_check_at,
            consecutive_failures=model.consecutive_failures,
            response_time_ms=model.response_time_ms,
            error_message=model.error_message,
            version=model.version,
        )

    def _to_model(self, entity: InstanceHealth) -> InstanceHealthModel:
        return InstanceHealthModel(
            instance_id=entity.instance_id,
            is_healthy=entity.is_healthy,
            last_check_at=entity.last_check_at,
            consecutive_failures=entity.consecutive_failures,
            response_time_ms=entity.response_time_ms,
            error_message=entity.error_message,
            version=entity.version,
        )

    async def get_by_instance(self, instance_id: int) -> Optional[InstanceHealth]:
        return await self._get(instance_id)

    async def add(self, health: InstanceHealth) -> InstanceHealth:
        return await self._add(health)

    async def update(self, health: InstanceHealth) -> InstanceHealth:
        health.version = await self._update_versioned(
            InstanceHealthModel.instance_id,
            health.instance_id,
            health.version,
            {
                "is_healthy": health.is_healthy,
                "last_check_at": health.last_check_at,
                "consecutive_failures": health.consecutive_failures,
                "response_time_ms": health.response_time_ms,
                "error_message": health.error_message,
            },
        )
        return health
