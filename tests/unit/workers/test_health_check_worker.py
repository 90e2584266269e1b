import pytest

from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.domain.ports import HealthProbe
from src.workers.health_check_worker import HealthCheckWorker
from tests.fakes import RecordingAlertService, RecordingProxy, RecordingRuntime, StaticHealthVerifier

DOMAIN = "alpha.xcord.net"
CONTAINER = f"api-{DOMAIN}"
ROUTE = f"route-{DOMAIN}"


@pytest.fixture
def runtime():
    r = RecordingRuntime()
    r.running.add(CONTAINER)
    return r


@pytest.fixture
def proxy():
    p = RecordingProxy()
    p.routes.add(ROUTE)
    return p


@pytest.fixture
def verifier():
    return StaticHealthVerifier()


@pytest.fixture
def alerts():
    return RecordingAlertService()


@pytest.fixture
def monitor(store, runtime, proxy, verifier, alerts, metrics):
    store.add_instance(1, DOMAIN, status=InstanceStatus.RUNNING)
    store.add_infrastructure(1, container_id=CONTAINER, proxy_route_id=ROUTE)
    return HealthCheckWorker(
        store.uow_factory,
        runtime,
        proxy,
        verifier,
        alerts,
        restart_threshold=3,
        alert_threshold=5,
        restart_wait=0,
        metrics=metrics,
    )


@pytest.mark.anyio
async def test_healthy_check_records_success(store, monitor, metrics):
    await monitor.execute()

    health = store.health[1]
    assert health.is_healthy
    assert health.consecutive_failures == 0
    assert health.response_time_ms == 12
    assert metrics.counter_value("health_checks_total", result="success") == 1
    assert metrics.get_metrics()["gauges"]["instances_running"] == 1


@pytest.mark.anyio
async def test_threshold_remediation(store, monitor, runtime, proxy, alerts):
    # No restart policy in the fake runtime: the stopped container stays down.
    proxy.routes.clear()

    for _ in range(5):
        await monitor.execute()

    assert store.health[1].consecutive_failures == 5
    assert runtime.stopped == [CONTAINER]
    assert alerts.alerts == [(1, DOMAIN, 5, "Container not running")]


@pytest.mark.anyio
async def test_restart_happens_only_at_threshold(store, monitor, runtime, verifier):
    verifier.default = HealthProbe(False, 30, "Health endpoint returned 500 Internal Server Error")

    for _ in range(2):
        await monitor.execute()
    assert runtime.stopped == []

    await monitor.execute()
    assert runtime.stopped == [CONTAINER]


@pytest.mark.anyio
async def test_checks_stop_at_first_failure(store, monitor, runtime, verifier):
    runtime.running.clear()

    await monitor.execute()

    assert store.health[1].error_message == "Container not running"
    assert verifier.calls == []


@pytest.mark.anyio
async def test_recovery_resets_failure_streak(store, monitor, verifier):
    verifier.probes = [HealthProbe(False, 30, "Health check failed: timeout")] * 2

    await monitor.execute()
    await monitor.execute()
    assert store.health[1].consecutive_failures == 2
    assert store.health[1].error_message == "Health check failed: timeout"

    await monitor.execute()

    health = store.health[1]
    assert health.is_healthy
    assert health.consecutive_failures == 0
    assert health.error_message is None


@pytest.mark.anyio
async def test_probe_exception_counts_as_failure(store, monitor, runtime):
    async def broken(container_id):
        raise ConnectionError("socket closed")

    runtime.verify_container_running = broken

    await monitor.execute()

    health = store.health[1]
    assert health.consecutive_failures == 1
    assert health.error_message == "Health check error: socket closed"


@pytest.mark.anyio
async def test_instances_without_infrastructure_are_skipped(store, monitor):
    store.add_instance(2, "beta.xcord.net", status=InstanceStatus.RUNNING)

    assert await monitor.execute() is True
    assert 2 not in store.health


@pytest.mark.anyio
async def test_only_running_instances_are_checked(store, monitor, verifier):
    store.add_instance(2, "beta.xcord.net", status=InstanceStatus.FAILED)
    store.add_infrastructure(2, container_id="api-beta", proxy_route_id="route-beta")

    await monitor.execute()

    assert verifier.calls == [DOMAIN]
