"""
Worker Identity Allocator

Hands out Snowflake worker ids from the registry. The registry's storage
constraints decide every race: a claim is a conditional update that only
succeeds on a row that is still free, and the unique index on the bound
instance id stops one instance from holding two identities.
"""
from __future__ import annotations

from src.lifecycle.domain import errors
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.domain.result import Error, Failure, Result, Success
from src.shared.exceptions import DuplicateIdentityError
from src.shared.infrastructure.observability.logger import get_logger
from src.shared.utils.clock import utcnow

logger = get_logger(__name__)


class WorkerIdentityAllocator:
    """
    Allocate and release worker identities.

    Args:
        uow_factory: Creates a fresh unit of work per transaction
        candidate_batch: How many free ids to read per attempt
        tombstone_on_release: Whether released ids are retired instead of recycled
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        candidate_batch: int = 8,
        tombstone_on_release: bool = False,
    ) -> None:
        self._uow_factory = uow_factory
        self._candidate_batch = candidate_batch
        self._tombstone_on_release = tombstone_on_release

    async def allocate(self, instance_id: int) -> Result[int, Error]:
        """
        Bind a free identity to ``instance_id``.

        Idempotent: an instance that already holds an identity gets it back.

        Returns:
            Success(worker_id), or Failure with code EXHAUSTED when no free row is left
        """
        while True:
            async with self._uow_factory() as uow:
                existing = await uow.worker_identities.get_by_instance(instance_id)
                if existing is not None:
                    return Success(existing.worker_id)

                candidates = await uow.worker_identities.list_free(self._candidate_batch)
                if not candidates:
                    logger.error("worker_identity_pool_exhausted", instance_id=instance_id)
                    return Failure(Error.failure(errors.EXHAUSTED, "No free worker identity available"))

                for worker_id in candidates:
                    try:
                        claimed = await uow.worker_identities.try_claim(worker_id, instance_id, utcnow())
                    except DuplicateIdentityError:
                        # A concurrent allocation for the same instance won; re-read it.
                        break
                    if claimed:
                        await uow.commit()
                        logger.info("worker_identity_allocated", instance_id=instance_id, worker_id=worker_id)
                        return Success(worker_id)
                    logger.debug("worker_identity_claim_lost", instance_id=instance_id, worker_id=worker_id)

    async def release(self, worker_id: int) -> bool:
        """Unbind ``worker_id``. Returns False if it was not bound."""
        async with self._uow_factory() as uow:
            released = await uow.worker_identities.release(
                worker_id, utcnow(), tombstone=self._tombstone_on_release
            )
            await uow.commit()

        if released:
            logger.info("worker_identity_released", worker_id=worker_id, tombstoned=self._tombstone_on_release)
        else:
            logger.warning("worker_identity_release_noop", worker_id=worker_id)
        return released
