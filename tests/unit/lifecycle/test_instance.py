import pytest

from src.lifecycle.domain.entities import Instance, InstanceHealth, ProvisioningEvent
from src.lifecycle.domain.enums import InstanceStatus, ProvisioningEventStatus, ProvisioningPhase
from src.lifecycle.domain.errors import InvalidStatusTransitionError


def make_instance(status=InstanceStatus.PENDING) -> Instance:
    return Instance(id=1, owner_id=2, domain="acme.xcord.net", display_name="Acme", status=status)


def test_provisioning_lifecycle():
    instance = make_instance()
    instance.begin_provisioning()
    assert instance.status == InstanceStatus.PROVISIONING
    assert instance.provisioning_attempts == 1
    assert instance.provisioning_started_at is not None

    instance.mark_running()
    assert instance.status == InstanceStatus.RUNNING


def test_destroyed_is_terminal():
    instance = make_instance(InstanceStatus.RUNNING)
    instance.mark_destroyed()
    assert instance.is_deleted

    with pytest.raises(InvalidStatusTransitionError):
        instance.reset_to_pending()


def test_running_cannot_go_back_to_pending():
    with pytest.raises(InvalidStatusTransitionError) as exc:
        make_instance(InstanceStatus.RUNNING).reset_to_pending()
    assert exc.value.details == {"instance_id": 1, "from": "running", "to": "pending"}


def test_failed_instance_can_be_retried():
    instance = make_instance(InstanceStatus.FAILED)
    assert instance.can_transition_to(InstanceStatus.PENDING)
    instance.begin_provisioning()
    assert instance.status == InstanceStatus.PROVISIONING


def test_subdomain():
    assert make_instance().subdomain == "acme"


def test_health_failure_streak_and_recovery():
    health = InstanceHealth(instance_id=1)
    assert health.record_failure("Container not running") == 1
    assert health.record_failure("Container not running") == 2
    assert not health.is_healthy

    assert health.record_success(15) is True
    assert health.consecutive_failures == 0
    assert health.error_message is None
    assert health.record_success(15) is False


def test_event_finishes_once():
    event = ProvisioningEvent(instance_id=1, step_name="CreateNetwork", phase=ProvisioningPhase.EXECUTE, id=1)
    event.finish(False, "network exists with another driver")
    assert event.status == ProvisioningEventStatus.FAILED
    with pytest.raises(ValueError):
        event.finish(True)
