"""
InstanceBilling and InstanceConfig Repository Implementations
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.entities import InstanceBilling, InstanceConfig
from src.lifecycle.domain.enums import FeatureTier, UserCountTier
from src.lifecycle.domain.repositories import BillingRepository, ConfigRepository
from src.lifecycle.infrastructure.persistence.models import InstanceBillingModel, InstanceConfigModel
from src.shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository


class SqlAlchemyBillingRepository(SQLAlchemyRepository[InstanceBilling, InstanceBillingModel], BillingRepository):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=InstanceBillingModel, entity_class=InstanceBilling)

    def _to_entity(self, model: InstanceBillingModel) -> InstanceBilling:
        return InstanceBilling(
            instance_id=model.instance_id,
            feature_tier=FeatureTier(model.feature_tier),
            user_count_tier=UserCountTier(model.user_count_tier),
            billing_exempt=model.billing_exempt,
        )

    def _to_model(self, entity: InstanceBilling) -> InstanceBillingModel:
        return InstanceBillingModel(
            instance_id=entity.instance_id,
            feature_tier=entity.feature_tier.value,
            user_count_tier=int(entity.user_count_tier),
            billing_exempt=entity.billing_exempt,
        )

    async def get_by_instance(self, instance_id: int) -> Optional[InstanceBilling]:
        return await self._get(instance_id)

    async def add(self, billing: InstanceBilling) -> InstanceBilling:
        return await self._add(billing)


class SqlAlchemyConfigRepository(SQLAlchemyRepository[InstanceConfig, InstanceConfigModel], ConfigRepository):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=InstanceConfigModel, entity_class=InstanceConfig)

    def _to_entity(self, model: InstanceConfigModel) -> InstanceConfig:
        return InstanceConfig(
            instance_id=model.instance_id,
            resource_limits=dict(model.resource_limits or {}),
            feature_flags=dict(model.feature_flags or {}),
            updated_at=model.updated_at,
        )

    async def get_by_instance(self, instance_id: int) -> Optional[InstanceConfig]:
        return await self._get(instance_id)

    async def upsert(self, config: InstanceConfig) -> InstanceConfig:
        values = {
            "instance_id": config.instance_id,
            "resource_limits": config.resource_limits,
            "feature_flags": config.feature_flags,
            "updated_at": config.updated_at,
        }
        stmt = (
            insert(InstanceConfigModel)
            .values(**values)
            .on_conflict_do_update(
                index_elements=[InstanceConfigModel.instance_id],
                set_={key: value for key, value in values.items() if key != "instance_id"},
            )
        )
        await self.session.execute(stmt)
        return config
