"""
Provisioning orchestrator loop.

Drains the durable provisioning queue one instance at a time. Entries left
claimed by a previous process are re-opened on startup and the whole queue is
drained before the first polling cycle. A run only acknowledges the entry it
claimed; an entry the reconciler re-opened while the run was in flight stays
queued and is picked up again.
"""
from typing import Optional

from src.lifecycle.application.provisioning import ProvisioningPipeline
from src.lifecycle.domain.entities import QueueClaim
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.exceptions import ClockMovedBackwardsError
from src.shared.infrastructure.observability.logger import get_logger
from src.workers.base_worker import BaseWorker

logger = get_logger(__name__)


class ProvisioningWorker(BaseWorker):
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        pipeline: ProvisioningPipeline,
        poll_interval: float = 5.0,
    ):
        super().__init__(worker_name="provisioning", interval=poll_interval)
        self._uow_factory = uow_factory
        self._pipeline = pipeline

    async def initialize(self) -> None:
        try:
            async with self._uow_factory() as uow:
                pending = list(await uow.queue.list_pending())
                reopened = [instance_id for instance_id in pending if await uow.queue.enqueue(instance_id)]
                await uow.commit()
        except Exception:
            logger.exception("provisioning_recovery_failed")
            return

        if reopened:
            logger.info("provisioning_recovery_started", count=len(reopened), instance_ids=reopened)
        try:
            await self.execute()
        except Exception:
            logger.exception("provisioning_recovery_failed")

    async def execute(self) -> bool:
        ok = True
        while not self.stopping:
            claim = await self._dequeue()
            if claim is None:
                break
            ok = await self.process(claim) and ok
        return ok

    async def _dequeue(self) -> Optional[QueueClaim]:
        async with self._uow_factory() as uow:
            claim = await uow.queue.dequeue()
            await uow.commit()
        return claim

    async def process(self, claim: QueueClaim) -> bool:
        """Run the pipeline for one claimed instance and acknowledge the claim."""
        instance_id = claim.instance_id
        try:
            result = await self._pipeline.run(instance_id)
        except ClockMovedBackwardsError as e:
            # Leave the entry claimed; it is re-opened after restart.
            logger.critical("provisioning_halted_clock_moved_backwards", instance_id=instance_id, error=str(e))
            await self.shutdown()
            return False
        except Exception:
            logger.exception("provisioning_run_crashed", instance_id=instance_id)
            result = None

        if result is not None and result.is_success():
            logger.info("provisioning_succeeded", instance_id=instance_id)
        elif result is not None:
            logger.warning("provisioning_unsuccessful", instance_id=instance_id, error=str(result.error))

        try:
            async with self._uow_factory() as uow:
                acknowledged = await uow.queue.complete(claim)
                await uow.commit()
        except Exception:
            logger.exception("provisioning_queue_ack_failed", instance_id=instance_id)
            return False
        if not acknowledged:
            logger.info("provisioning_entry_requeued_during_run", instance_id=instance_id)
        return result is not None and result.is_success()
