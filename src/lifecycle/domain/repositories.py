"""
Repository interfaces for the lifecycle context.

Versioned records (Instance, InstanceInfrastructure, InstanceHealth) are
updated with a compare-and-increment on ``version``; implementations raise
ConcurrencyConflictError when the stored version moved on.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional, Sequence

from src.lifecycle.domain.entities import (
    Instance,
    InstanceBilling,
    InstanceConfig,
    InstanceHealth,
    InstanceInfrastructure,
    ProvisioningEvent,
    QueueClaim,
    WorkerIdentityLease,
)
from src.lifecycle.domain.enums import InstanceStatus


class InstanceRepository(ABC):
    @abstractmethod
    async def get_by_id(self, instance_id: int) -> Optional[Instance]:
        pass

    @abstractmethod
    async def add(self, instance: Instance) -> Instance:
        pass

    @abstractmethod
    async def update(self, instance: Instance) -> Instance:
        """
        Persist changes guarded by ``instance.version``.

        Returns:
            The instance with its version bumped

        Raises:
            ConcurrencyConflictError: If the row changed since it was read
        """
        pass

    @abstractmethod
    async def domain_taken(self, domain: str, exclude_instance_id: int) -> bool:
        """True if another non-deleted instance owns ``domain``."""
        pass

    @abstractmethod
    async def count_live_for_owner(self, owner_id: int) -> int:
        pass

    @abstractmethod
    async def list_by_status(self, status: InstanceStatus) -> Sequence[Instance]:
        """Non-deleted instances currently in ``status``."""
        pass

    @abstractmethod
    async def list_stuck_provisioning(self, started_before: datetime) -> Sequence[Instance]:
        """
        Non-deleted PROVISIONING instances whose current run started before
        ``started_before`` (falling back to ``created_at`` if never started).
        """
        pass


class InfrastructureRepository(ABC):
    @abstractmethod
    async def get_by_instance(self, instance_id: int) -> Optional[InstanceInfrastructure]:
        pass

    @abstractmethod
    async def add(self, infrastructure: InstanceInfrastructure) -> InstanceInfrastructure:
        pass

    @abstractmethod
    async def update(self, infrastructure: InstanceInfrastructure) -> InstanceInfrastructure:
        pass


class HealthRepository(ABC):
    @abstractmethod
    async def get_by_instance(self, instance_id: int) -> Optional[InstanceHealth]:
        pass

    @abstractmethod
    async def add(self, health: InstanceHealth) -> InstanceHealth:
        pass

    @abstractmethod
    async def update(self, health: InstanceHealth) -> InstanceHealth:
        pass


class BillingRepository(ABC):
    @abstractmethod
    async def get_by_instance(self, instance_id: int) -> Optional[InstanceBilling]:
        pass

    @abstractmethod
    async def add(self, billing: InstanceBilling) -> InstanceBilling:
        pass


class ConfigRepository(ABC):
    @abstractmethod
    async def get_by_instance(self, instance_id: int) -> Optional[InstanceConfig]:
        pass

    @abstractmethod
    async def upsert(self, config: InstanceConfig) -> InstanceConfig:
        pass


class ProvisioningEventRepository(ABC):
    @abstractmethod
    async def add(self, event: ProvisioningEvent) -> ProvisioningEvent:
        """Insert an IN_PROGRESS event and return it with its id."""
        pass

    @abstractmethod
    async def finish(self, event: ProvisioningEvent) -> None:
        """Persist the terminal status of a previously added event."""
        pass

    @abstractmethod
    async def list_for_instance(self, instance_id: int) -> Sequence[ProvisioningEvent]:
        """Events in the order they were started."""
        pass


class WorkerIdentityRepository(ABC):
    @abstractmethod
    async def get(self, worker_id: int) -> Optional[WorkerIdentityLease]:
        pass

    @abstractmethod
    async def get_by_instance(self, instance_id: int) -> Optional[WorkerIdentityLease]:
        pass

    @abstractmethod
    async def list_free(self, limit: int) -> Sequence[int]:
        """Up to ``limit`` worker ids that are neither bound nor tombstoned."""
        pass

    @abstractmethod
    async def try_claim(self, worker_id: int, instance_id: int, now: datetime) -> bool:
        """
        Bind ``worker_id`` to ``instance_id`` if, and only if, it is still free.

        Returns:
            False when another allocation won the row

        Raises:
            DuplicateIdentityError: If ``instance_id`` already holds another identity
        """
        pass

    @abstractmethod
    async def release(self, worker_id: int, now: datetime, tombstone: bool = False) -> bool:
        """Unbind ``worker_id``. Returns False if it was not bound."""
        pass

    @abstractmethod
    async def seed(self, first: int, last: int) -> int:
        """Create any missing registry rows in ``first..last``; returns rows created."""
        pass


class ProvisioningQueue(ABC):
    """Durable queue of instance ids awaiting provisioning. Each id is present at most once."""

    @abstractmethod
    async def enqueue(self, instance_id: int) -> bool:
        """
        Queue ``instance_id`` unless it is already waiting.

        An entry claimed by a run that never completed is made claimable
        again instead of duplicated.

        Returns:
            False if the id was already waiting unclaimed
        """
        pass

    @abstractmethod
    async def dequeue(self) -> Optional[QueueClaim]:
        """Claim the oldest unclaimed id, or None when the queue is empty."""
        pass

    @abstractmethod
    async def list_pending(self) -> Sequence[int]:
        """Every queued id, unclaimed or claimed by a run that never completed."""
        pass

    @abstractmethod
    async def complete(self, claim: QueueClaim) -> bool:
        """
        Remove the entry if ``claim`` still holds it.

        An entry re-opened or re-claimed since ``claim`` was taken stays queued.

        Returns:
            False if the entry was no longer held by ``claim``
        """
        pass


class LifecycleUnitOfWork(ABC):
    """Transaction boundary exposing every lifecycle repository."""

    instances: InstanceRepository
    infrastructure: InfrastructureRepository
    health: HealthRepository
    billing: BillingRepository
    configs: ConfigRepository
    events: ProvisioningEventRepository
    worker_identities: WorkerIdentityRepository
    queue: ProvisioningQueue

    @abstractmethod
    async def __aenter__(self) -> LifecycleUnitOfWork:
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass


UnitOfWorkFactory = Callable[[], LifecycleUnitOfWork]
