"""
Lifecycle Unit of Work backed by SQLAlchemy
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.repositories import LifecycleUnitOfWork
from src.lifecycle.infrastructure.persistence.repositories.billing_repository import (
    SqlAlchemyBillingRepository,
    SqlAlchemyConfigRepository,
)
from src.lifecycle.infrastructure.persistence.repositories.health_repository import SqlAlchemyHealthRepository
from src.lifecycle.infrastructure.persistence.repositories.infrastructure_repository import (
    SqlAlchemyInfrastructureRepository,
)
from src.lifecycle.infrastructure.persistence.repositories.instance_repository import SqlAlchemyInstanceRepository
from src.lifecycle.infrastructure.persistence.repositories.provisioning_event_repository import (
    SqlAlchemyProvisioningEventRepository,
)
from src.lifecycle.infrastructure.persistence.repositories.provisioning_queue import SqlAlchemyProvisioningQueue
from src.lifecycle.infrastructure.persistence.repositories.worker_identity_repository import (
    SqlAlchemyWorkerIdentityRepository,
)
from src.shared.infrastructure.database.sqlalchemy_unit_of_work import SQLAlchemyUnitOfWork


class SqlAlchemyLifecycleUnitOfWork(SQLAlchemyUnitOfWork, LifecycleUnitOfWork):
    """
    Usage:
        async with SqlAlchemyLifecycleUnitOfWork(session_factory) as uow:
            instance = await uow.instances.get_by_id(instance_id)
            ...
            await uow.commit()
    """

    def _bind_repositories(self, session: AsyncSession) -> None:
        self.instances = SqlAlchemyInstanceRepository(session)
        self.infrastructure = SqlAlchemyInfrastructureRepository(session)
        self.health = SqlAlchemyHealthRepository(session)
        self.billing = SqlAlchemyBillingRepository(session)
        self.configs = SqlAlchemyConfigRepository(session)
        self.events = SqlAlchemyProvisioningEventRepository(session)
        self.worker_identities = SqlAlchemyWorkerIdentityRepository(session)
        self.queue = SqlAlchemyProvisioningQueue(session)
