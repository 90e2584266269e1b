from src.lifecycle.application.provisioning.pipeline import ProvisioningPipeline
from src.lifecycle.application.provisioning.step import ProvisioningStep

__all__ = ["ProvisioningPipeline", "ProvisioningStep"]
