"""
InstanceInfrastructure Repository Implementation
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.entities import InstanceInfrastructure
from src.lifecycle.domain.repositories import InfrastructureRepository
from src.lifecycle.infrastructure.persistence.models import InstanceInfrastructureModel
from src.shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository

_MUTABLE_FIELDS = (
    "database_name",
    "database_password",
    "storage_access_key",
    "storage_secret_key",
    "media_relay_api_key",
    "media_relay_secret",
    "instance_kek",
    "bootstrap_token_hash",
    "network_id",
    "container_id",
    "proxy_route_id",
    "runtime_secret_id",
)


class SqlAlchemyInfrastructureRepository(
    SQLAlchemyRepository[InstanceInfrastructure, InstanceInfrastructureModel],
    InfrastructureRepository,
):
    """Secret columns are encrypted by the column type, not here."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(
            session=session,
            model_class=InstanceInfrastructureModel,
            entity_class=InstanceInfrastructure,
        )

    def _to_entity(self, model: InstanceInfrastructureModel) -> InstanceInfrastructure:
        return InstanceInfrastructure(
            instance_id=model.instance_id,
            created_at=model.created_at,
            version=model.version,
            **{name: getattr(model, name) for name in _MUTABLE_FIELDS},
        )

    def _to_model(self, entity: InstanceInfrastructure) -> InstanceInfrastructureModel:
        return InstanceInfrastructureModel(
            instance_id=entity.instance_id,
            created_at=entity.created_at,
            version=entity.version,
            **{name: getattr(entity, name) for name in _MUTABLE_FIELDS},
        )

    async def get_by_instance(self, instance_id: int) -> Optional[InstanceInfrastructure]:
        return await self._get(instance_id)

    async def add(self, infrastructure: InstanceInfrastructure) -> InstanceInfrastructure:
        return await self._add(infrastructure)

    async def update(self, infrastructure: InstanceInfrastructure) -> InstanceInfrastructure:
        infrastructure.version = await self._update_versioned(
            InstanceInfrastructureModel.instance_id,
            infrastructure.instance_id,
            infrastructure.version,
            {name: getattr(infrastructure, name) for name in _MUTABLE_FIELDS},
        )
        return infrastructure
