import pytest

from src.lifecycle.application.destruction import DestructionPipeline, DestructionStep
from src.lifecycle.application.destruction.steps import DestructionContext, RemoveObjectStorageBucketStep
from src.lifecycle.application.worker_identity_allocator import WorkerIdentityAllocator
from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.infrastructure.adapters import (
    NoopContainerRuntime,
    NoopDnsProvider,
    NoopObjectStorageProvisioner,
    NoopProxyManager,
)
from src.workers.bootstrap import Collaborators, build_destruction_steps
from src.config import Settings
from tests.fakes import RecordingAlertService, StaticHealthVerifier


class RecordingDestructionStep(DestructionStep):
    def __init__(self, name: str, calls: list, raises: bool = False, requires_infrastructure: bool = True) -> None:
        self.name = name
        self.calls = calls
        self.raises = raises
        self.requires_infrastructure = requires_infrastructure

    async def run(self, context) -> None:
        self.calls.append(self.name)
        if self.raises:
            raise RuntimeError(f"{self.name} exploded")


@pytest.mark.anyio
async def test_every_step_runs_even_when_one_raises(store, metrics):
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.RUNNING)
    store.add_infrastructure(1)
    calls: list = []
    steps = [RecordingDestructionStep(f"Step{i}", calls, raises=(i == 3)) for i in range(1, 7)]

    await DestructionPipeline(store.uow_factory, steps, metrics=metrics).run(1)

    assert calls == [f"Step{i}" for i in range(1, 7)]
    assert store.instances[1].status == InstanceStatus.DESTROYED
    assert store.instances[1].deleted_at is not None
    assert metrics.counter_value("destruction_step_failures_total", step="Step3") == 1


@pytest.mark.anyio
async def test_steps_needing_infrastructure_are_skipped_without_it(store, metrics):
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.FAILED)
    calls: list = []
    steps = [
        RecordingDestructionStep("NeedsInfra", calls),
        RecordingDestructionStep("Always", calls, requires_infrastructure=False),
    ]

    await DestructionPipeline(store.uow_factory, steps, metrics=metrics).run(1)

    assert calls == ["Always"]
    assert store.instances[1].status == InstanceStatus.DESTROYED


@pytest.mark.anyio
async def test_bucket_step_without_infrastructure_is_a_noop(store):
    instance = store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.FAILED)
    storage = NoopObjectStorageProvisioner()
    await storage.provision_bucket("xcord-alpha", "access-key", "storage-secret")
    step = RemoveObjectStorageBucketStep(storage, "xcord")

    await step.run(DestructionContext(instance=instance, infrastructure=None))

    assert list(storage.buckets) == ["xcord-alpha"]


@pytest.mark.anyio
async def test_unknown_instance_is_ignored(store, metrics):
    calls: list = []
    await DestructionPipeline(store.uow_factory, [RecordingDestructionStep("S", calls)], metrics=metrics).run(9)
    assert calls == []


@pytest.mark.anyio
async def test_destroying_twice_keeps_first_deletion_time(store, metrics):
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.RUNNING)
    pipeline = DestructionPipeline(store.uow_factory, [], metrics=metrics)

    await pipeline.run(1)
    deleted_at = store.instances[1].deleted_at
    await pipeline.run(1)

    assert store.instances[1].deleted_at == deleted_at


@pytest.mark.anyio
async def test_full_teardown_releases_everything(store, metrics):
    store.add_instance(1, "acme.xcord.net", status=InstanceStatus.RUNNING, worker_identity=11)
    store.seed_leases(11, 11)
    store.leases[11].instance_id = 1

    runtime = NoopContainerRuntime("xcord")
    proxy = NoopProxyManager()
    dns = NoopDnsProvider()
    storage = NoopObjectStorageProvisioner()
    network_id = await runtime.create_network("acme.xcord.net")
    container_id = await runtime.start_container("acme.xcord.net", "{}", None)
    route_id = await proxy.create_route("acme.xcord.net", container_id)
    await dns.create_a_record("acme.xcord.net", "10.0.0.1")
    await storage.provision_bucket("xcord-acme", "access-key", "storage-secret")
    store.add_infrastructure(
        1,
        network_id=network_id,
        container_id=container_id,
        proxy_route_id=route_id,
        runtime_secret_id=f"{container_id}-config",
    )

    collaborators = Collaborators(
        runtime=runtime,
        proxy=proxy,
        dns=dns,
        storage=storage,
        database=None,
        health_verifier=StaticHealthVerifier(),
        alerts=RecordingAlertService(),
    )
    allocator = WorkerIdentityAllocator(store.uow_factory)
    steps = build_destruction_steps(Settings(), store.uow_factory, collaborators, allocator)

    await DestructionPipeline(store.uow_factory, steps, metrics=metrics).run(1)

    assert runtime.networks == set()
    assert runtime.containers == {}
    assert runtime.secrets == set()
    assert proxy.routes == {}
    assert dns.records == {}
    assert storage.buckets == {}
    assert store.leases[11].is_free
    infrastructure = store.infrastructure[1]
    assert infrastructure.database_password is None
    assert infrastructure.instance_kek is None
    assert store.instances[1].status == InstanceStatus.DESTROYED
    assert metrics.counter_value("destruction_step_failures_total", step="RemoveObjectStorageBucket") == 0
