from datetime import timedelta

import pytest

from src.lifecycle.domain.enums import InstanceStatus
from src.shared.domain.result import Error, Failure, Success
from src.shared.exceptions import ClockMovedBackwardsError
from src.shared.utils.clock import utcnow
from src.workers.provisioning_worker import ProvisioningWorker
from src.workers.reconciler_worker import ReconcilerWorker
from tests.fakes import RecordingProxy, RecordingRuntime, StaticHealthVerifier


class ScriptedPipeline:
    def __init__(self, outcomes=None) -> None:
        self.outcomes = outcomes or {}
        self.runs: list[int] = []

    async def run(self, instance_id: int):
        self.runs.append(instance_id)
        outcome = self.outcomes.get(instance_id, Success(True))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.anyio
async def test_drains_queue_in_order_and_acknowledges(store):
    store.queue.update({3: False, 1: False, 2: False})
    pipeline = ScriptedPipeline({1: Failure(Error.failure("BOOM", "nope"))})
    worker = ProvisioningWorker(store.uow_factory, pipeline)

    ok = await worker.execute()

    assert pipeline.runs == [3, 1, 2]
    assert ok is False
    assert store.queue == {}


@pytest.mark.anyio
async def test_crashing_run_is_still_acknowledged(store):
    store.queue[5] = False
    worker = ProvisioningWorker(store.uow_factory, ScriptedPipeline({5: RuntimeError("bug")}))

    assert await worker.execute() is False
    assert store.queue == {}


@pytest.mark.anyio
async def test_startup_replays_abandoned_claims(store):
    store.queue.update({8: True, 9: False})
    pipeline = ScriptedPipeline()
    worker = ProvisioningWorker(store.uow_factory, pipeline)

    await worker.initialize()

    assert pipeline.runs == [8, 9]
    assert store.queue == {}


@pytest.mark.anyio
async def test_clock_regression_halts_and_keeps_entry(store):
    store.queue.update({4: False, 6: False})
    pipeline = ScriptedPipeline({4: ClockMovedBackwardsError(200, 100)})
    worker = ProvisioningWorker(store.uow_factory, pipeline)

    await worker.execute()

    assert worker.stopping
    assert pipeline.runs == [4]
    assert 4 in store.queue


class OverrunPipeline:
    """First run outlives the provisioning timeout and is reset by the reconciler before it finishes."""

    def __init__(self, store, reconciler) -> None:
        self.store = store
        self.reconciler = reconciler
        self.runs: list[int] = []

    async def run(self, instance_id: int):
        self.runs.append(instance_id)
        if len(self.runs) > 1:
            return Success(True)
        instance = self.store.instances[instance_id]
        instance.status = InstanceStatus.PROVISIONING
        instance.provisioning_started_at = utcnow() - timedelta(hours=1)
        await self.reconciler.requeue_stuck_provisioning()
        return Failure(Error.failure("INVALID_STATE", "cannot move from pending to running"))


@pytest.fixture
def reconciler(store, metrics):
    return ReconcilerWorker(
        store.uow_factory,
        RecordingRuntime(),
        RecordingProxy(),
        StaticHealthVerifier(),
        provisioning_timeout=300,
        metrics=metrics,
    )


@pytest.mark.anyio
async def test_entry_reopened_during_run_is_not_acknowledged(store, reconciler):
    store.add_instance(1, "alpha.xcord.net")
    store.queue[1] = False
    worker = ProvisioningWorker(store.uow_factory, OverrunPipeline(store, reconciler))
    async with store.uow_factory() as uow:
        claim = await uow.queue.dequeue()

    assert await worker.process(claim) is False

    assert store.instances[1].status == InstanceStatus.PENDING
    assert store.queue == {1: False}


@pytest.mark.anyio
async def test_instance_reset_during_run_is_provisioned_again(store, reconciler):
    store.add_instance(1, "alpha.xcord.net")
    store.queue[1] = False
    pipeline = OverrunPipeline(store, reconciler)
    worker = ProvisioningWorker(store.uow_factory, pipeline)

    await worker.execute()

    assert pipeline.runs == [1, 1]
    assert store.queue == {}
