"""
Lifecycle Infrastructure - ORM Models
"""
from src.lifecycle.infrastructure.persistence.models.billing_model import InstanceBillingModel
from src.lifecycle.infrastructure.persistence.models.config_model import InstanceConfigModel
from src.lifecycle.infrastructure.persistence.models.health_model import InstanceHealthModel
from src.lifecycle.infrastructure.persistence.models.infrastructure_model import InstanceInfrastructureModel
from src.lifecycle.infrastructure.persistence.models.instance_model import InstanceModel
from src.lifecycle.infrastructure.persistence.models.provisioning_event_model import ProvisioningEventModel
from src.lifecycle.infrastructure.persistence.models.provisioning_queue_model import ProvisioningQueueModel
from src.lifecycle.infrastructure.persistence.models.worker_identity_model import WorkerIdentityModel

__all__ = [
    "InstanceBillingModel",
    "InstanceConfigModel",
    "InstanceHealthModel",
    "InstanceInfrastructureModel",
    "InstanceModel",
    "ProvisioningEventModel",
    "ProvisioningQueueModel",
    "WorkerIdentityModel",
]
