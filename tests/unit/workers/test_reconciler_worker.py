from datetime import timedelta

import pytest

from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.domain.ports import HealthProbe
from src.shared.utils.clock import utcnow
from src.workers.reconciler_worker import ReconcilerWorker
from tests.fakes import RecordingProxy, RecordingRuntime, StaticHealthVerifier


def running_instance(store, runtime, proxy, instance_id=1, domain="alpha.xcord.net"):
    store.add_instance(instance_id, domain, status=InstanceStatus.RUNNING)
    network_id = f"net-{domain}"
    container_id = f"api-{domain}"
    route_id = f"route-{domain}"
    runtime.networks.add(network_id)
    runtime.running.add(container_id)
    proxy.routes.add(route_id)
    store.add_infrastructure(instance_id, network_id=network_id, container_id=container_id, proxy_route_id=route_id)
    return container_id, route_id


@pytest.fixture
def runtime():
    return RecordingRuntime()


@pytest.fixture
def proxy():
    return RecordingProxy()


@pytest.fixture
def verifier():
    return StaticHealthVerifier()


@pytest.fixture
def reconciler(store, runtime, proxy, verifier, metrics):
    return ReconcilerWorker(store.uow_factory, runtime, proxy, verifier, provisioning_timeout=300, metrics=metrics)


@pytest.mark.anyio
async def test_healthy_instance_stays_running(store, runtime, proxy, reconciler):
    running_instance(store, runtime, proxy)

    assert await reconciler.execute() is True
    assert store.instances[1].status == InstanceStatus.RUNNING


@pytest.mark.anyio
async def test_lost_container_fails_instance(store, runtime, proxy, reconciler, metrics):
    container_id, _ = running_instance(store, runtime, proxy)
    runtime.running.discard(container_id)

    issues = await reconciler.reconcile_instance(store.instances[1])

    assert "Container not running" in issues
    assert store.instances[1].status == InstanceStatus.FAILED
    assert metrics.counter_value("reconciler_instances_failed_total") == 1


@pytest.mark.anyio
async def test_lost_network_fails_instance(store, runtime, proxy, reconciler):
    running_instance(store, runtime, proxy)
    runtime.networks.clear()

    await reconciler.reconcile_running()

    assert store.instances[1].status == InstanceStatus.FAILED


@pytest.mark.anyio
async def test_missing_route_only_degrades(store, runtime, proxy, reconciler):
    _, route_id = running_instance(store, runtime, proxy)
    proxy.routes.discard(route_id)

    issues = await reconciler.reconcile_instance(store.instances[1])

    assert issues == ["Proxy route missing"]
    assert store.instances[1].status == InstanceStatus.RUNNING


@pytest.mark.anyio
async def test_failing_health_endpoint_only_degrades(store, runtime, proxy, verifier, reconciler):
    running_instance(store, runtime, proxy)
    verifier.default = HealthProbe(False, 40, "Health endpoint returned 503 Service Unavailable")

    issues = await reconciler.reconcile_instance(store.instances[1])

    assert issues == ["Health check failed: Health endpoint returned 503 Service Unavailable"]
    assert store.instances[1].status == InstanceStatus.RUNNING


@pytest.mark.anyio
async def test_running_instance_without_infrastructure_fails(store, reconciler):
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.RUNNING)

    issues = await reconciler.reconcile_instance(store.instances[1])

    assert issues == ["Infrastructure missing"]
    assert store.instances[1].status == InstanceStatus.FAILED


@pytest.mark.anyio
async def test_stuck_provisioning_is_reset_and_requeued_once(store, reconciler, metrics):
    long_ago = utcnow() - timedelta(minutes=30)
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.PROVISIONING, provisioning_started_at=long_ago)

    await reconciler.requeue_stuck_provisioning()
    await reconciler.requeue_stuck_provisioning()

    assert store.instances[1].status == InstanceStatus.PENDING
    assert list(store.queue) == [1]
    assert metrics.counter_value("reconciler_requeued_total") == 1


@pytest.mark.anyio
async def test_recent_provisioning_is_left_alone(store, reconciler):
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.PROVISIONING, provisioning_started_at=utcnow())

    await reconciler.requeue_stuck_provisioning()

    assert store.instances[1].status == InstanceStatus.PROVISIONING
    assert store.queue == {}


@pytest.mark.anyio
async def test_stuck_detection_falls_back_to_creation_time(store, reconciler):
    store.add_instance(
        1,
        "alpha.xcord.net",
        status=InstanceStatus.PROVISIONING,
        created_at=utcnow() - timedelta(hours=1),
    )

    await reconciler.requeue_stuck_provisioning()

    assert store.instances[1].status == InstanceStatus.PENDING
    assert list(store.queue) == [1]


@pytest.mark.anyio
async def test_requeue_reopens_an_abandoned_claim(store, reconciler):
    long_ago = utcnow() - timedelta(minutes=30)
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.PROVISIONING, provisioning_started_at=long_ago)
    store.queue[1] = True

    await reconciler.requeue_stuck_provisioning()

    assert store.queue == {1: False}
