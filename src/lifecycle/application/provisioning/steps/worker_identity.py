"""
Worker identity allocation for the instance's id generator.
"""
from __future__ import annotations

from src.lifecycle.application.instance_state import mutate_instance
from src.lifecycle.application.provisioning.step import InstanceStep, StepResult, step_failed, step_ok
from src.lifecycle.application.worker_identity_allocator import WorkerIdentityAllocator
from src.lifecycle.domain import errors
from src.lifecycle.domain.entities import Instance
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.lifecycle.domain.services.snowflake import SnowflakeGenerator
from src.shared.domain.result import Error, Failure


class AllocateWorkerIdentityStep(InstanceStep):
    name = "AllocateWorkerId"

    def __init__(self, uow_factory: UnitOfWorkFactory, allocator: WorkerIdentityAllocator) -> None:
        super().__init__(uow_factory)
        self._allocator = allocator

    async def execute(self, instance_id: int) -> StepResult:
        allocation = await self._allocator.allocate(instance_id)
        if allocation.is_failure():
            return allocation
        worker_id = allocation.value

        def _assign(instance: Instance) -> bool:
            if instance.worker_identity == worker_id:
                return False
            instance.assign_worker_identity(worker_id)
            return True

        instance = await mutate_instance(self._uow_factory, instance_id, _assign)
        if instance is None:
            await self._allocator.release(worker_id)
            return Failure(Error.not_found(errors.INSTANCE_NOT_FOUND, f"Instance {instance_id} not found"))
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        async with self._uow_factory() as uow:
            instance = await uow.instances.get_by_id(instance_id)
            if instance is None or instance.worker_identity is None:
                return step_failed(errors.WORKER_ID_MISSING, "Worker identity was not assigned")
            lease = await uow.worker_identities.get(instance.worker_identity)

        if lease is None or lease.instance_id != instance_id or lease.is_tombstoned:
            return step_failed(
                errors.WORKER_ID_MISMATCH,
                f"Worker identity {instance.worker_identity} is not bound to instance {instance_id}",
            )
        try:
            SnowflakeGenerator(instance.worker_identity)
        except ValueError as e:
            return step_failed(errors.WORKER_ID_MISMATCH, str(e))
        return step_ok()
