"""
Destruction Pipeline

Best-effort teardown: every step runs even if earlier ones failed, because
an incomplete-but-maximal cleanup leaks less than stopping at the first
error. Step failures are logged and counted, never raised.
"""
from __future__ import annotations

from typing import Optional, Sequence

from src.lifecycle.application.destruction.steps import DestructionContext, DestructionStep
from src.lifecycle.application.instance_state import mutate_instance
from src.lifecycle.domain.entities import Instance
from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.exceptions import ConcurrencyConflictError
from src.shared.infrastructure.observability.logger import bind_context, get_logger, unbind_context
from src.shared.infrastructure.observability.metrics import MetricsCollector, get_metrics
from src.shared.utils.clock import utcnow

logger = get_logger(__name__)


class DestructionPipeline:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        steps: Sequence[DestructionStep],
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._steps = list(steps)
        self._metrics = metrics or get_metrics()

    @property
    def steps(self) -> list[DestructionStep]:
        return list(self._steps)

    async def run(self, instance_id: int) -> None:
        bind_context(instance_id=instance_id)
        try:
            async with self._uow_factory() as uow:
                instance = await uow.instances.get_by_id(instance_id)
                infrastructure = await uow.infrastructure.get_by_instance(instance_id)

            if instance is None:
                logger.warning("destruction_skipped_instance_not_found")
                return

            if infrastructure is None:
                logger.warning("destruction_without_infrastructure")

            context = DestructionContext(instance=instance, infrastructure=infrastructure)
            failures = 0
            for step in self._steps:
                if step.requires_infrastructure and infrastructure is None:
                    logger.debug("destruction_step_skipped", step=step.name)
                    continue
                try:
                    await step.run(context)
                    logger.info("destruction_step_completed", step=step.name)
                except Exception:
                    failures += 1
                    self._metrics.increment_counter("destruction_step_failures_total", step=step.name)
                    logger.warning("destruction_step_failed", step=step.name, exc_info=True)

            await self._mark_destroyed(instance_id)
            logger.info("instance_destroyed", failed_steps=failures)
        finally:
            unbind_context("instance_id")

    async def _mark_destroyed(self, instance_id: int) -> None:
        now = utcnow()

        def _destroy(instance: Instance) -> bool:
            if instance.status == InstanceStatus.DESTROYED:
                return False
            instance.mark_destroyed(now)
            return True

        try:
            await mutate_instance(self._uow_factory, instance_id, _destroy)
        except ConcurrencyConflictError:
            logger.error("destruction_status_not_recorded")
