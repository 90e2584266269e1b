"""
Instance Repository Implementation
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.entities import Instance
from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.domain.repositories import InstanceRepository
from src.lifecycle.infrastructure.persistence.models import InstanceModel
from src.shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository


class SqlAlchemyInstanceRepository(SQLAlchemyRepository[Instance, InstanceModel], InstanceRepository):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=InstanceModel, entity_class=Instance)

    def _to_entity(self, model: InstanceModel) -> Instance:
        return Instance(
            id=model.id,
            owner_id=model.owner_id,
            domain=model.domain,
            display_name=model.display_name,
            status=InstanceStatus(model.status),
            description=model.description,
            icon_url=model.icon_url,
            member_count=model.member_count,
            online_count=model.online_count,
            worker_identity=model.worker_identity,
            provisioning_attempts=model.provisioning_attempts,
            provisioning_started_at=model.provisioning_started_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
            deleted_at=model.deleted_at,
            version=model.version,
        )

    def _to_model(self, entity: Instance) -> InstanceModel:
        return InstanceModel(
            id=entity.id,
            owner_id=entity.owner_id,
            domain=entity.domain,
            display_name=entity.display_name,
            status=entity.status.value,
            description=entity.description,
            icon_url=entity.icon_url,
            member_count=entity.member_count,
            online_count=entity.online_count,
            worker_identity=entity.worker_identity,
            provisioning_attempts=entity.provisioning_attempts,
            provisioning_started_at=entity.provisioning_started_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            deleted_at=entity.deleted_at,
            version=entity.version,
        )

    async def get_by_id(self, instance_id: int) -> Optional[Instance]:
        return await self._get(instance_id)

    async def add(self, instance: Instance) -> Instance:
        return await self._add(instance)

    async def update(self, instance: Instance) -> Instance:
        instance.version = await self._update_versioned(
            InstanceModel.id,
            instance.id,
            instance.version,
            {
                "display_name": instance.display_name,
                "description": instance.description,
                "icon_url": instance.icon_url,
                "status": instance.status.value,
                "member_count": instance.member_count,
                "online_count": instance.online_count,
                "worker_identity": instance.worker_identity,
                "provisioning_attempts": instance.provisioning_attempts,
                "provisioning_started_at": instance.provisioning_started_at,
                "updated_at": instance.updated_at,
                "deleted_at": instance.deleted_at,
            },
        )
        return instance

    async def domain_taken(self, domain: str, exclude_instance_id: int) -> bool:
        stmt = select(
            exists().where(
                InstanceModel.domain == domain,
                InstanceModel.id != exclude_instance_id,
                InstanceModel.deleted_at.is_(None),
            )
        )
        return bool(await self.session.scalar(stmt))

    async def count_live_for_owner(self, owner_id: int) -> int:
        stmt = select(func.count()).where(
            InstanceModel.owner_id == owner_id,
            InstanceModel.deleted_at.is_(None),
            InstanceModel.status != InstanceStatus.DESTROYED.value,
        )
        return int(await self.session.scalar(stmt) or 0)

    async def list_by_status(self, status: InstanceStatus) -> Sequence[Instance]:
        stmt = (
            select(InstanceModel)
            .where(InstanceModel.status == status.value, InstanceModel.deleted_at.is_(None))
            .order_by(InstanceModel.id)
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_stuck_provisioning(self, started_before: datetime) -> Sequence[Instance]:
        started = func.coalesce(InstanceModel.provisioning_started_at, InstanceModel.created_at)
        stmt = (
            select(InstanceModel)
            .where(
                InstanceModel.status == InstanceStatus.PROVISIONING.value,
                InstanceModel.deleted_at.is_(None),
                started < started_before,
            )
            .order_by(started)
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]
