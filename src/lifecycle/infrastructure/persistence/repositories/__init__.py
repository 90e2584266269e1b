"""
Lifecycle Infrastructure - Repositories
"""
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
from src.lifecycle.infrastructure.persistence.repositories.unit_of_work import SqlAlchemyLifecycleUnitOfWork
from src.lifecycle.infrastructure.persistence.repositories.worker_identity_repository import (
    SqlAlchemyWorkerIdentityRepository,
)

__all__ = [
    "SqlAlchemyBillingRepository",
    "SqlAlchemyConfigRepository",
    "SqlAlchemyHealthRepository",
    "SqlAlchemyInfrastructureRepository",
    "SqlAlchemyInstanceRepository",
    "SqlAlchemyLifecycleUnitOfWork",
    "SqlAlchemyProvisioningEventRepository",
    "SqlAlchemyProvisioningQueue",
    "SqlAlchemyWorkerIdentityRepository",
]
