"""
ProvisioningEvent Repository Implementation
"""
from __future__ import annotations

from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.entities import ProvisioningEvent
from src.lifecycle.domain.enums import ProvisioningEventStatus, ProvisioningPhase
from src.lifecycle.domain.repositories import ProvisioningEventRepository
from src.lifecycle.infrastructure.persistence.models import ProvisioningEventModel
from src.shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository


class SqlAlchemyProvisioningEventRepository(
    SQLAlchemyRepository[ProvisioningEvent, ProvisioningEventModel],
    ProvisioningEventRepository,
):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=ProvisioningEventModel, entity_class=ProvisioningEvent)

    def _to_entity(self, model: ProvisioningEventModel) -> ProvisioningEvent:
        return ProvisioningEvent(
            id=model.id,
            instance_id=model.instance_id,
            step_name=model.step_name,
            phase=ProvisioningPhase(model.phase),
            status=ProvisioningEventStatus(model.status),
            error_message=model.error_message,
            started_at=model.started_at,
            completed_at=model.completed_at,
        )

    def _to_model(self, entity: ProvisioningEvent) -> ProvisioningEventModel:
        return ProvisioningEventModel(
            id=entity.id,
            instance_id=entity.instance_id,
            step_name=entity.step_name,
            phase=entity.phase.value,
            status=entity.status.value,
            error_message=entity.error_message,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
        )

    async def add(self, event: ProvisioningEvent) -> ProvisioningEvent:
        return await self._add(event)

    async def finish(self, event: ProvisioningEvent) -> None:
        stmt = (
            update(ProvisioningEventModel)
            .where(
                ProvisioningEventModel.id == event.id,
                ProvisioningEventModel.status == ProvisioningEventStatus.IN_PROGRESS.value,
            )
            .values(
                status=event.status.value,
                error_message=event.error_message,
                completed_at=event.completed_at,
            )
        )
        await self.session.execute(stmt)

    async def list_for_instance(self, instance_id: int) -> Sequence[ProvisioningEvent]:
        stmt = (
            select(ProvisioningEventModel)
            .where(ProvisioningEventModel.instance_id == instance_id)
            .order_by(ProvisioningEventModel.started_at, ProvisioningEventModel.id)
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]
