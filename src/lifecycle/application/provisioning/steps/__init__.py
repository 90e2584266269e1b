from src.lifecycle.application.provisioning.steps.credentials import GenerateSecretsStep
from src.lifecycle.application.provisioning.steps.routing import ConfigureDnsAndProxyStep
from src.lifecycle.application.provisioning.steps.runtime import CreateNetworkStep, StartContainerStep
from src.lifecycle.application.provisioning.steps.storage import ProvisionDatabaseStep, ProvisionObjectStorageStep
from src.lifecycle.application.provisioning.steps.validation import EnforceTierLimitsStep, ValidateSubdomainStep
from src.lifecycle.application.provisioning.steps.worker_identity import AllocateWorkerIdentityStep

__all__ = [
    "ValidateSubdomainStep",
    "EnforceTierLimitsStep",
    "GenerateSecretsStep",
    "AllocateWorkerIdentityStep",
    "CreateNetworkStep",
    "ProvisionDatabaseStep",
    "ProvisionObjectStorageStep",
    "StartContainerStep",
    "ConfigureDnsAndProxyStep",
]
