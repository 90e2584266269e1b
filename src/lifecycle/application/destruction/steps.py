"""
Destruction steps, in teardown order.

Each step treats an absent resource handle as already removed. Steps that
need the infrastructure record declare it; the pipeline skips them when the
instance never got one.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from src.lifecycle.application.instance_state import mutate_infrastructure
from src.lifecycle.application.worker_identity_allocator import WorkerIdentityAllocator
from src.lifecycle.domain.entities import Instance, InstanceInfrastructure
from src.lifecycle.domain.naming import bucket_name
from src.lifecycle.domain.ports import ContainerRuntime, DnsProvider, ObjectStorageProvisioner, ProxyManager
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


@dataclass
class DestructionContext:
    instance: Instance
    infrastructure: Optional[InstanceInfrastructure]


class DestructionStep(ABC):
    name: str
    requires_infrastructure: bool = True

    @abstractmethod
    async def run(self, context: DestructionContext) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class StopContainerStep(DestructionStep):
    name = "StopContainer"

    def __init__(self, runtime: ContainerRuntime) -> None:
        self._runtime = runtime

    async def run(self, context: DestructionContext) -> None:
        container_id = context.infrastructure.container_id if context.infrastructure else None
        if not container_id:
            return
        await self._runtime.stop_container(container_id)


class RemoveProxyRouteStep(DestructionStep):
    name = "RemoveProxyRoute"

    def __init__(self, proxy: ProxyManager) -> None:
        self._proxy = proxy

    async def run(self, context: DestructionContext) -> None:
        route_id = context.infrastructure.proxy_route_id if context.infrastructure else None
        if not route_id:
            return
        await self._proxy.delete_route(route_id)


class RemoveDnsRecordStep(DestructionStep):
    name = "RemoveDnsRecord"

    def __init__(self, dns: DnsProvider) -> None:
        self._dns = dns

    async def run(self, context: DestructionContext) -> None:
        await self._dns.delete_a_record(context.instance.domain)


class RemoveContainerStep(DestructionStep):
    name = "RemoveContainer"

    def __init__(self, runtime: ContainerRuntime) -> None:
        self._runtime = runtime

    async def run(self, context: DestructionContext) -> None:
        container_id = context.infrastructure.container_id if context.infrastructure else None
        if not container_id:
            return
        await self._runtime.remove_container(container_id)


class RemoveSecretStep(DestructionStep):
    """Removes the runtime secret (if any) and scrubs stored secret material."""

    name = "RemoveSecret"

    def __init__(self, runtime: ContainerRuntime, uow_factory: UnitOfWorkFactory) -> None:
        self._runtime = runtime
        self._uow_factory = uow_factory

    async def run(self, context: DestructionContext) -> None:
        secret_id = context.infrastructure.runtime_secret_id if context.infrastructure else None
        if secret_id:
            await self._runtime.remove_secret(secret_id)

        def _scrub(infra: InstanceInfrastructure) -> None:
            infra.scrub_secrets()

        await mutate_infrastructure(self._uow_factory, context.instance.id, _scrub)


class RemoveNetworkStep(DestructionStep):
    name = "RemoveNetwork"

    def __init__(self, runtime: ContainerRuntime) -> None:
        self._runtime = runtime

    async def run(self, context: DestructionContext) -> None:
        network_id = context.infrastructure.network_id if context.infrastructure else None
        if not network_id:
            return
        await self._runtime.remove_network(network_id)


class RemoveObjectStorageBucketStep(DestructionStep):
    name = "RemoveObjectStorageBucket"

    def __init__(self, storage: ObjectStorageProvisioner, resource_prefix: str) -> None:
        self._storage = storage
        self._resource_prefix = resource_prefix

    async def run(self, context: DestructionContext) -> None:
        if not context.infrastructure:
            return
        await self._storage.deprovision_bucket(
            bucket_name(self._resource_prefix, context.instance.domain),
            context.infrastructure.storage_access_key,
        )


class ReleaseWorkerIdentityStep(DestructionStep):
    """Unbinds the instance's worker identity so it can be allocated again."""

    name = "ReleaseWorkerIdentity"
    requires_infrastructure = False

    def __init__(self, allocator: WorkerIdentityAllocator, uow_factory: UnitOfWorkFactory) -> None:
        self._allocator = allocator
        self._uow_factory = uow_factory

    async def run(self, context: DestructionContext) -> None:
        worker_id = context.instance.worker_identity
        if worker_id is None:
            async with self._uow_factory() as uow:
                lease = await uow.worker_identities.get_by_instance(context.instance.id)
            worker_id = lease.worker_id if lease else None
        if worker_id is None:
            return
        await self._allocator.release(worker_id)
