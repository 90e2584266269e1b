"""
Optimistic-concurrency helpers for read-modify-write of versioned records.

Each attempt opens a fresh unit of work and re-reads the row, so a retry
after ConcurrencyConflictError always works on current state.
"""
from __future__ import annotations

from typing import Callable, Optional

from src.lifecycle.domain.entities import Instance, InstanceInfrastructure
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.exceptions import ConcurrencyConflictError
from src.shared.utils.retry import retry

CONFLICT_RETRY_ATTEMPTS = 3


async def mutate_instance(
    uow_factory: UnitOfWorkFactory,
    instance_id: int,
    mutate: Callable[[Instance], bool | None],
    *,
    attempts: int = CONFLICT_RETRY_ATTEMPTS,
) -> Optional[Instance]:
    """
    Load the instance, apply ``mutate`` and persist it.

    ``mutate`` may return False to signal "nothing to change", in which
    case no write happens. Returns None if the instance does not exist.
    """

    async def _attempt() -> Optional[Instance]:
        async with uow_factory() as uow:
            instance = await uow.instances.get_by_id(instance_id)
            if instance is None:
                return None
            if mutate(instance) is False:
                return instance
            instance = await uow.instances.update(instance)
            await uow.commit()
            return instance

    return await retry(
        _attempt,
        attempts=attempts,
        retry_on=(ConcurrencyConflictError,),
        operation="mutate_instance",
    )


async def mutate_infrastructure(
    uow_factory: UnitOfWorkFactory,
    instance_id: int,
    mutate: Callable[[InstanceInfrastructure], bool | None],
    *,
    attempts: int = CONFLICT_RETRY_ATTEMPTS,
) -> Optional[InstanceInfrastructure]:
    """Same contract as mutate_instance, for the infrastructure record."""

    async def _attempt() -> Optional[InstanceInfrastructure]:
        async with uow_factory() as uow:
            infrastructure = await uow.infrastructure.get_by_instance(instance_id)
            if infrastructure is None:
                return None
            if mutate(infrastructure) is False:
                return infrastructure
            infrastructure = await uow.infrastructure.update(infrastructure)
            await uow.commit()
            return infrastructure

    return await retry(
        _attempt,
        attempts=attempts,
        retry_on=(ConcurrencyConflictError,),
        operation="mutate_infrastructure",
    )
