"""
Health monitoring loop with threshold-based self-healing.

For each RUNNING instance the checks run in order and stop at the first
failure: container running, proxy route present, health endpoint healthy.
A failure streak triggers one container restart when it reaches the restart
threshold and one operator alert when it reaches the alert threshold.
"""
from typing import Optional

from src.lifecycle.domain.entities import Instance, InstanceHealth, InstanceInfrastructure
from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.domain.ports import AlertService, ContainerRuntime, HealthCheckVerifier, ProxyManager
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.exceptions import ConcurrencyConflictError
from src.shared.infrastructure.observability.logger import get_logger
from src.shared.infrastructure.observability.metrics import MetricsCollector, get_metrics
from src.shared.utils.clock import utcnow
from src.workers.base_worker import BaseWorker

logger = get_logger(__name__)


class HealthCheckWorker(BaseWorker):
    """
    Periodic health checks of running instances.

    Args:
        uow_factory: Creates a fresh unit of work per transaction
        runtime: Container runtime used for the container check and restarts
        proxy: Reverse proxy used for the route check
        verifier: Health endpoint prober
        alerts: Operator alert channel
        restart_threshold: Consecutive failures at which the container is restarted
        alert_threshold: Consecutive failures at which an alert is sent
        restart_wait: Seconds to wait after stopping a container
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        runtime: ContainerRuntime,
        proxy: ProxyManager,
        verifier: HealthCheckVerifier,
        alerts: AlertService,
        *,
        restart_threshold: int = 3,
        alert_threshold: int = 5,
        restart_wait: float = 5.0,
        interval: float = 60,
        startup_delay: float = 10,
        metrics: Optional[MetricsCollector] = None,
    ):
        super().__init__(worker_name="health_check", interval=interval, startup_delay=startup_delay)
        self._uow_factory = uow_factory
        self._runtime = runtime
        self._proxy = proxy
        self._verifier = verifier
        self._alerts = alerts
        self._restart_threshold = restart_threshold
        self._alert_threshold = alert_threshold
        self._restart_wait = restart_wait
        self._metrics = metrics or get_metrics()

    async def execute(self) -> bool:
        async with self._uow_factory() as uow:
            instances = list(await uow.instances.list_by_status(InstanceStatus.RUNNING))

        self._metrics.set_gauge("instances_running", len(instances))
        logger.info("health_checks_started", count=len(instances))
        ok = True
        for instance in instances:
            if self.stopping:
                break
            try:
                await self.check_instance(instance)
            except ConcurrencyConflictError:
                logger.info("health_check_skipped_conflict", instance_id=instance.id)
            except Exception:
                ok = False
                logger.exception("health_check_crashed", instance_id=instance.id, domain=instance.domain)
        return ok

    async def check_instance(self, instance: Instance) -> Optional[InstanceHealth]:
        """Check one instance, persist the outcome and apply remediation."""
        async with self._uow_factory() as uow:
            infrastructure = await uow.infrastructure.get_by_instance(instance.id)
            if infrastructure is None:
                logger.warning("health_check_skipped_no_infrastructure", instance_id=instance.id)
                return None
            health = await uow.health.get_by_instance(instance.id)
            if health is None:
                health = await uow.health.add(InstanceHealth(instance_id=instance.id, last_check_at=utcnow()))
                await uow.commit()

        try:
            reason, response_time_ms = await self._probe(instance, infrastructure)
        except Exception as e:
            logger.exception("health_check_error", instance_id=instance.id, domain=instance.domain)
            reason, response_time_ms = f"Health check error: {e}", None

        now = utcnow()
        if reason is None:
            previous_failures = health.consecutive_failures
            if health.record_success(response_time_ms, now):
                logger.info(
                    "instance_recovered",
                    instance_id=instance.id,
                    domain=instance.domain,
                    previous_failures=previous_failures,
                )
        else:
            failures = health.record_failure(reason, now)
            if response_time_ms is not None:
                health.response_time_ms = response_time_ms
            logger.warning(
                "instance_health_check_failed",
                instance_id=instance.id,
                domain=instance.domain,
                consecutive_failures=failures,
                error=reason,
            )

        async with self._uow_factory() as uow:
            health = await uow.health.update(health)
            await uow.commit()

        self._metrics.increment_counter("health_checks_total", result="success" if reason is None else "failure")
        if reason is not None:
            await self._remediate(instance, infrastructure, health)
        return health

    async def _probe(self, instance: Instance, infrastructure: InstanceInfrastructure) -> tuple[Optional[str], Optional[int]]:
        """Returns (failure reason or None, response time in ms if the endpoint was reached)."""
        container_id = infrastructure.container_id
        if not container_id or not await self._runtime.verify_container_running(container_id):
            return "Container not running", None

        route_id = infrastructure.proxy_route_id
        if not route_id or not await self._proxy.verify_route(route_id):
            return "Proxy route not accessible", None

        probe = await self._verifier.verify_instance_health(instance.domain)
        if not probe.is_healthy:
            return probe.error_message or "Health endpoint reported unhealthy", probe.response_time_ms
        return None, probe.response_time_ms

    async def _remediate(self, instance: Instance, infrastructure: InstanceInfrastructure, health: InstanceHealth) -> None:
        failures = health.consecutive_failures

        if failures == self._restart_threshold and infrastructure.container_id:
            logger.warning("instance_restart_initiated", instance_id=instance.id, domain=instance.domain, failures=failures)
            try:
                # The runtime's restart policy brings the container back up.
                await self._runtime.stop_container(infrastructure.container_id)
                await self.wait(self._restart_wait)
            except Exception:
                logger.exception("instance_restart_failed", instance_id=instance.id, domain=instance.domain)

        if failures == self._alert_threshold:
            logger.error("instance_health_alert", instance_id=instance.id, domain=instance.domain, failures=failures)
            await self._alerts.send_instance_health_alert(
                instance.id,
                instance.domain,
                failures,
                health.error_message or "Unknown error",
            )
