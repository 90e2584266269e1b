import pytest

from src.lifecycle.application.instance_state import mutate_instance
from src.lifecycle.domain.enums import InstanceStatus
from src.shared.exceptions import ConcurrencyConflictError


@pytest.mark.anyio
async def test_mutation_retries_on_conflict(store):
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.RUNNING)
    attempts = []

    def fail_with_interference(instance):
        attempts.append(instance.version)
        if len(attempts) == 1:
            # Someone else writes between our read and our write.
            store.instances[1].version += 1
        instance.mark_failed()

    updated = await mutate_instance(store.uow_factory, 1, fail_with_interference)

    assert attempts == [1, 2]
    assert updated.status == InstanceStatus.FAILED
    assert store.instances[1].version == 3


@pytest.mark.anyio
async def test_conflict_surfaces_after_last_attempt(store):
    store.add_instance(1, "alpha.xcord.net", status=InstanceStatus.RUNNING)

    def always_interfere(instance):
        store.instances[1].version += 1
        instance.mark_failed()

    with pytest.raises(ConcurrencyConflictError):
        await mutate_instance(store.uow_factory, 1, always_interfere, attempts=2)


@pytest.mark.anyio
async def test_noop_mutation_does_not_write(store):
    store.add_instance(1, "alpha.xcord.net")

    result = await mutate_instance(store.uow_factory, 1, lambda instance: False)

    assert result.version == 1
    assert store.commits == 0


@pytest.mark.anyio
async def test_missing_instance(store):
    assert await mutate_instance(store.uow_factory, 99, lambda instance: None) is None
