import asyncio
from types import SimpleNamespace

import pytest

from src.config import Settings
from src.lifecycle.application.provisioning import ProvisioningPipeline
from src.shared.infrastructure.observability.metrics import MetricsCollector
from src.workers.__main__ import enqueue, seed_registry
from src.workers.base_worker import BaseWorker
from src.workers.bootstrap import Collaborators, LifecycleContainer
from src.workers.health_check_worker import HealthCheckWorker
from src.workers.manager import WorkerManager, create_worker_manager
from src.workers.reconciler_worker import ReconcilerWorker
from tests.fakes import RecordingAlertService, RecordingProxy, RecordingRuntime, StaticHealthVerifier


class CountingWorker(BaseWorker):
    def __init__(self, name: str = "counting", fail: bool = False) -> None:
        super().__init__(worker_name=name, interval=0.01)
        self.cycles = 0
        self.fail = fail

    async def execute(self) -> bool:
        self.cycles += 1
        if self.fail:
            raise RuntimeError("cycle failed")
        return True


def make_container(store) -> LifecycleContainer:
    settings = Settings(HEALTH_RESTART_THRESHOLD=2, HEALTH_ALERT_THRESHOLD=4, PROVISIONING_TIMEOUT=120)
    collaborators = Collaborators(
        runtime=RecordingRuntime(),
        proxy=RecordingProxy(),
        dns=None,
        storage=None,
        database=None,
        health_verifier=StaticHealthVerifier(),
        alerts=RecordingAlertService(),
    )
    return LifecycleContainer(
        settings=settings,
        database=None,
        uow_factory=store.uow_factory,
        collaborators=collaborators,
        metrics=MetricsCollector(),
        allocator=None,
        provisioning_pipeline=ProvisioningPipeline(store.uow_factory, []),
        destruction_pipeline=None,
    )


@pytest.mark.anyio
async def test_worker_loop_runs_until_shutdown():
    worker = CountingWorker()
    task = asyncio.create_task(worker.run())
    await asyncio.sleep(0.05)

    await worker.shutdown()
    await asyncio.wait_for(task, timeout=1)

    assert worker.cycles >= 2
    assert worker.is_running is False


@pytest.mark.anyio
async def test_failing_cycle_does_not_stop_worker():
    worker = CountingWorker(fail=True)
    task = asyncio.create_task(worker.run())
    await asyncio.sleep(0.05)

    assert worker.is_running
    await worker.shutdown()
    await asyncio.wait_for(task, timeout=1)
    assert worker.cycles >= 2


@pytest.mark.anyio
async def test_manager_starts_and_stops_all_workers():
    manager = WorkerManager()
    workers = [CountingWorker("a"), CountingWorker("b")]
    for worker in workers:
        manager.register_worker(worker)

    await manager.start_all()
    await asyncio.sleep(0.03)
    assert manager.get_worker_status() == {"a": "running", "b": "running"}

    await manager.shutdown()
    await manager.shutdown()

    assert all(task.done() for task in manager.tasks.values())
    assert manager.get_worker_status() == {"a": "stopped", "b": "stopped"}


def test_manager_builds_requested_loops(store):
    container = make_container(store)

    everything = create_worker_manager(container)
    only_reconciler = create_worker_manager(container, "reconciler")

    assert set(everything.workers) == {"provisioning", "health_check", "reconciler"}
    assert set(only_reconciler.workers) == {"reconciler"}
    assert isinstance(everything.workers["health_check"], HealthCheckWorker)
    assert isinstance(only_reconciler.workers["reconciler"], ReconcilerWorker)
    assert everything.workers["reconciler"].interval == container.settings.RECONCILE_INTERVAL


@pytest.mark.anyio
async def test_operator_commands(store):
    container = SimpleNamespace(uow_factory=store.uow_factory, settings=Settings(WORKER_ID_MIN=11, WORKER_ID_MAX=20))

    assert await seed_registry(container) == 10
    assert await seed_registry(container) == 0
    assert await enqueue(container, 42) is True
    assert await enqueue(container, 42) is False
    assert list(store.queue) == [42]
