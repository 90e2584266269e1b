from src.lifecycle.domain.entities.instance import Instance
from src.lifecycle.domain.entities.records import (
    InstanceBilling,
    InstanceConfig,
    InstanceHealth,
    InstanceInfrastructure,
    ProvisioningEvent,
    QueueClaim,
    WorkerIdentityLease,
)

__all__ = [
    "Instance",
    "InstanceBilling",
    "InstanceConfig",
    "InstanceHealth",
    "InstanceInfrastructure",
    "ProvisioningEvent",
    "QueueClaim",
    "WorkerIdentityLease",
]
