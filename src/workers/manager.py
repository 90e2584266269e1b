import asyncio
import signal
from typing import Dict, Optional

from src.shared.infrastructure.observability.logger import get_logger
from src.workers.base_worker import BaseWorker
from src.workers.bootstrap import LifecycleContainer
from src.workers.health_check_worker import HealthCheckWorker
from src.workers.provisioning_worker import ProvisioningWorker
from src.workers.reconciler_worker import ReconcilerWorker

logger = get_logger(__name__)

WORKER_NAMES = ("provisioning", "health_check", "reconciler")


class WorkerManager:
    """Manager for all background workers."""

    def __init__(self):
        self.workers: Dict[str, BaseWorker] = {}
        self.tasks: Dict[str, asyncio.Task] = {}
        self.shutdown_event = asyncio.Event()
        self._stopped = False

    def register_worker(self, worker: BaseWorker) -> None:
        """Register a worker with the manager."""
        self.workers[worker.worker_name] = worker
        logger.info("worker_registered", worker=worker.worker_name)

    def setup_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to a graceful shutdown."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda: asyncio.ensure_future(self.shutdown()))
            except NotImplementedError:
                # Not supported on this platform's event loop; KeyboardInterrupt still applies.
                logger.debug("signal_handler_unsupported", signal=sig.name)

    async def start_all(self) -> None:
        """Start all registered workers."""
        self.setup_signal_handlers()
        logger.info("workers_starting", count=len(self.workers))

        for worker_name, worker in self.workers.items():
            task = asyncio.create_task(worker.run(), name=f"worker_{worker_name}")
            task.add_done_callback(self._on_worker_exit)
            self.tasks[worker_name] = task
            logger.info("worker_task_started", worker=worker_name)

    def _on_worker_exit(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("worker_task_crashed", task=task.get_name(), error=str(error))
        if not self.shutdown_event.is_set() and all(t.done() for t in self.tasks.values()):
            self.shutdown_event.set()

    async def shutdown(self) -> None:
        """Graceful shutdown of all workers."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("workers_shutdown_initiated")
        self.shutdown_event.set()

        for worker in self.workers.values():
            await worker.shutdown()

        if self.tasks:
            await asyncio.gather(*self.tasks.values(), return_exceptions=True)

        logger.info("workers_shutdown_complete")

    async def wait_for_shutdown(self) -> None:
        """Wait for shutdown signal."""
        await self.shutdown_event.wait()

    def get_worker_status(self) -> Dict[str, str]:
        """Get status of all workers."""
        return {name: "running" if worker.is_running else "stopped" for name, worker in self.workers.items()}


def create_worker(name: str, container: LifecycleContainer) -> BaseWorker:
    settings = container.settings
    collaborators = container.collaborators
    if name == "provisioning":
        return ProvisioningWorker(
            container.uow_factory,
            container.provisioning_pipeline,
            poll_interval=settings.PROVISIONING_POLL_INTERVAL,
        )
    if name == "health_check":
        return HealthCheckWorker(
            container.uow_factory,
            collaborators.runtime,
            collaborators.proxy,
            collaborators.health_verifier,
            collaborators.alerts,
            restart_threshold=settings.HEALTH_RESTART_THRESHOLD,
            alert_threshold=settings.HEALTH_ALERT_THRESHOLD,
            restart_wait=settings.HEALTH_RESTART_WAIT,
            interval=settings.HEALTH_CHECK_INTERVAL,
            startup_delay=settings.HEALTH_CHECK_STARTUP_DELAY,
            metrics=container.metrics,
        )
    if name == "reconciler":
        return ReconcilerWorker(
            container.uow_factory,
            collaborators.runtime,
            collaborators.proxy,
            collaborators.health_verifier,
            provisioning_timeout=settings.PROVISIONING_TIMEOUT,
            interval=settings.RECONCILE_INTERVAL,
            startup_delay=settings.RECONCILE_STARTUP_DELAY,
            metrics=container.metrics,
        )
    raise ValueError(f"Unknown worker: {name}")


def create_worker_manager(container: LifecycleContainer, only: Optional[str] = None) -> WorkerManager:
    """Create a manager running every loop, or just ``only``."""
    manager = WorkerManager()
    for name in WORKER_NAMES:
        if only in (None, "all", name):
            manager.register_worker(create_worker(name, container))
    return manager
