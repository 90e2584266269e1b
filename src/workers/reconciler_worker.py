"""
Drift reconciliation loop.

Two independent passes per cycle:

1. RUNNING instances are compared against the external resources they
   should own. Losing the network or the container is terminal (FAILED);
   a missing route or a failing health endpoint is only reported as degraded.
2. Instances stuck in PROVISIONING longer than the provisioning timeout are
   reset to PENDING and queued again.
"""
from datetime import datetime, timedelta
from typing import Optional

from src.lifecycle.application.instance_state import mutate_instance
from src.lifecycle.domain.entities import Instance
from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.domain.ports import ContainerRuntime, HealthCheckVerifier, ProxyManager
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.exceptions import ConcurrencyConflictError
from src.shared.infrastructure.observability.logger import get_logger
from src.shared.infrastructure.observability.metrics import MetricsCollector, get_metrics
from src.shared.utils.clock import utcnow
from src.workers.base_worker import BaseWorker

logger = get_logger(__name__)


class ReconcilerWorker(BaseWorker):
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        runtime: ContainerRuntime,
        proxy: ProxyManager,
        verifier: HealthCheckVerifier,
        *,
        provisioning_timeout: float = 300,
        interval: float = 60,
        startup_delay: float = 5,
        metrics: Optional[MetricsCollector] = None,
    ):
        super().__init__(worker_name="reconciler", interval=interval, startup_delay=startup_delay)
        self._uow_factory = uow_factory
        self._runtime = runtime
        self._proxy = proxy
        self._verifier = verifier
        self._provisioning_timeout = provisioning_timeout
        self._metrics = metrics or get_metrics()

    async def execute(self) -> bool:
        ok = True
        for reconcile_pass in (self.reconcile_running, self.requeue_stuck_provisioning):
            if self.stopping:
                break
            try:
                ok = await reconcile_pass() and ok
            except Exception:
                ok = False
                logger.exception("reconcile_pass_failed", reconcile_pass=reconcile_pass.__name__)
        logger.info("reconciliation_completed", ok=ok)
        return ok

    # ------------------------------------------------------------------ running

    async def reconcile_running(self) -> bool:
        async with self._uow_factory() as uow:
            instances = list(await uow.instances.list_by_status(InstanceStatus.RUNNING))

        logger.info("reconciling_running_instances", count=len(instances))
        ok = True
        for instance in instances:
            if self.stopping:
                break
            try:
                await self.reconcile_instance(instance)
            except ConcurrencyConflictError:
                logger.info("reconcile_skipped_conflict", instance_id=instance.id)
            except Exception:
                ok = False
                logger.exception("reconcile_instance_failed", instance_id=instance.id, domain=instance.domain)
        return ok

    async def reconcile_instance(self, instance: Instance) -> list[str]:
        """Returns the issues found; critical ones have already moved the instance to FAILED."""
        async with self._uow_factory() as uow:
            infrastructure = await uow.infrastructure.get_by_instance(instance.id)

        if infrastructure is None:
            logger.warning("running_instance_without_infrastructure", instance_id=instance.id)
            await self._mark_failed(instance.id, ["Infrastructure missing"])
            return ["Infrastructure missing"]

        critical: list[str] = []
        degraded: list[str] = []

        network_id = infrastructure.network_id
        if not network_id or not await self._runtime.verify_network(network_id):
            critical.append("Network missing")

        container_id = infrastructure.container_id
        container_running = bool(container_id) and await self._runtime.verify_container_running(container_id)
        if not container_running:
            critical.append("Container not running")

        route_id = infrastructure.proxy_route_id
        if not route_id or not await self._proxy.verify_route(route_id):
            degraded.append("Proxy route missing")

        if container_running:
            probe = await self._verifier.verify_instance_health(instance.domain)
            if not probe.is_healthy:
                degraded.append(f"Health check failed: {probe.error_message}")

        issues = critical + degraded
        if critical:
            logger.error("instance_critical_issues", instance_id=instance.id, domain=instance.domain, issues=issues)
            await self._mark_failed(instance.id, issues)
        elif degraded:
            logger.warning("instance_degraded", instance_id=instance.id, domain=instance.domain, issues=issues)
        return issues

    async def _mark_failed(self, instance_id: int, issues: list[str]) -> None:
        def _fail(instance: Instance) -> bool:
            if instance.status != InstanceStatus.RUNNING or instance.is_deleted:
                return False
            instance.mark_failed()
            return True

        # One attempt: a conflict means someone else changed the instance this cycle.
        updated = await mutate_instance(self._uow_factory, instance_id, _fail, attempts=1)
        if updated is not None and updated.status == InstanceStatus.FAILED:
            self._metrics.increment_counter("reconciler_instances_failed_total")
            logger.error("instance_marked_failed", instance_id=instance_id, issues=issues)

    # ------------------------------------------------------------------ stuck

    async def requeue_stuck_provisioning(self) -> bool:
        now = utcnow()
        cutoff = now - timedelta(seconds=self._provisioning_timeout)
        async with self._uow_factory() as uow:
            stuck = list(await uow.instances.list_stuck_provisioning(cutoff))

        if not stuck:
            return True

        logger.warning("stuck_provisioning_detected", count=len(stuck), timeout_s=self._provisioning_timeout)
        ok = True
        for instance in stuck:
            try:
                await self._requeue(instance.id, cutoff)
            except ConcurrencyConflictError:
                logger.info("requeue_skipped_conflict", instance_id=instance.id)
            except Exception:
                ok = False
                logger.exception("requeue_failed", instance_id=instance.id)
        return ok

    async def _requeue(self, instance_id: int, cutoff: datetime) -> None:
        async with self._uow_factory() as uow:
            instance = await uow.instances.get_by_id(instance_id)
            if instance is None or instance.is_deleted or instance.status != InstanceStatus.PROVISIONING:
                return
            started = instance.provisioning_started_at or instance.created_at
            if started >= cutoff:
                return
            instance.reset_to_pending()
            await uow.instances.update(instance)
            queued = await uow.queue.enqueue(instance_id)
            await uow.commit()

        self._metrics.increment_counter("reconciler_requeued_total")
        logger.error(
            "instance_stuck_requeued",
            instance_id=instance_id,
            domain=instance.domain,
            stuck_for_s=int((utcnow() - started).total_seconds()),
            newly_queued=queued,
        )
