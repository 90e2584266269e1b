"""
Data stores for the instance: its database and its object-storage bucket.
"""
from __future__ import annotations

from src.lifecycle.application.provisioning.step import InstanceStep, StepResult, step_failed, step_ok
from src.lifecycle.domain import errors
from src.lifecycle.domain.naming import bucket_name
from src.lifecycle.domain.ports import DatabaseProvisioner, ObjectStorageProvisioner
from src.lifecycle.domain.repositories import UnitOfWorkFactory


class ProvisionDatabaseStep(InstanceStep):
    name = "ProvisionDatabase"

    def __init__(self, uow_factory: UnitOfWorkFactory, provisioner: DatabaseProvisioner) -> None:
        super().__init__(uow_factory)
        self._provisioner = provisioner

    async def execute(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        _, infrastructure = loaded.value
        await self._provisioner.create_database(infrastructure.database_name)
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        _, infrastructure = loaded.value
        if not await self._provisioner.database_exists(infrastructure.database_name):
            return step_failed(errors.DATABASE_MISSING, f"Database {infrastructure.database_name} does not exist")
        return step_ok()


class ProvisionObjectStorageStep(InstanceStep):
    name = "ProvisionObjectStorage"

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        storage: ObjectStorageProvisioner,
        resource_prefix: str,
    ) -> None:
        super().__init__(uow_factory)
        self._storage = storage
        self._resource_prefix = resource_prefix

    async def execute(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        instance, infrastructure = loaded.value
        await self._storage.provision_bucket(
            bucket_name(self._resource_prefix, instance.domain),
            infrastructure.storage_access_key,
            infrastructure.storage_secret_key or "",
        )
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        instance, infrastructure = loaded.value
        bucket = bucket_name(self._resource_prefix, instance.domain)
        if not await self._storage.verify_bucket(
            bucket, infrastructure.storage_access_key, infrastructure.storage_secret_key or ""
        ):
            return step_failed(errors.BUCKET_MISSING, f"Bucket {bucket} not accessible")
        return step_ok()
