"""
Secret generation: creates the instance's infrastructure record exactly once.
"""
from __future__ import annotations

from src.lifecycle.application.provisioning.step import InstanceStep, StepResult, step_failed, step_ok
from src.lifecycle.domain import errors
from src.lifecycle.domain.entities import InstanceInfrastructure
from src.lifecycle.domain.naming import database_name
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.domain.result import Error, Failure
from src.shared.infrastructure.observability.logger import get_logger
from src.shared.infrastructure.security.encryption import EncryptionManager
from src.shared.utils.clock import utcnow
from src.shared.utils.crypto import generate_access_key, generate_password, generate_token, sha256_hex

logger = get_logger(__name__)


class GenerateSecretsStep(InstanceStep):
    """
    Generates database, object-storage and media-relay credentials, a
    per-instance key-encryption key and a bootstrap token.

    Only the hash of the bootstrap token is kept. The other secrets are
    encrypted by the persistence layer when the record is written.
    """

    name = "GenerateSecrets"

    def __init__(self, uow_factory: UnitOfWorkFactory, resource_prefix: str) -> None:
        super().__init__(uow_factory)
        self._resource_prefix = resource_prefix

    async def execute(self, instance_id: int) -> StepResult:
        async with self._uow_factory() as uow:
            instance = await uow.instances.get_by_id(instance_id)
            if instance is None:
                return Failure(Error.not_found(errors.INSTANCE_NOT_FOUND, f"Instance {instance_id} not found"))

            if await uow.infrastructure.get_by_instance(instance_id) is not None:
                return step_ok()

            await uow.infrastructure.add(
                InstanceInfrastructure(
                    instance_id=instance_id,
                    database_name=database_name(self._resource_prefix, instance.domain),
                    database_password=generate_password(32),
                    storage_access_key=generate_access_key(20),
                    storage_secret_key=generate_password(40),
                    media_relay_api_key=generate_access_key(20),
                    media_relay_secret=generate_password(40),
                    instance_kek=EncryptionManager.generate_key(),
                    bootstrap_token_hash=sha256_hex(generate_token()),
                    created_at=utcnow(),
                )
            )
            await uow.commit()

        logger.info("instance_secrets_generated", instance_id=instance_id)
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        _, infrastructure = await self._load(instance_id)
        if infrastructure is None:
            return step_failed(errors.SECRETS_MISSING, "Infrastructure secrets not found")
        if not infrastructure.has_complete_secrets():
            return step_failed(errors.SECRETS_INCOMPLETE, "Infrastructure secrets are incomplete")
        return step_ok()
