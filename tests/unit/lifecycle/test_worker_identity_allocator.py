import asyncio

import pytest

from src.lifecycle.application.worker_identity_allocator import WorkerIdentityAllocator
from src.lifecycle.domain import errors
from tests.fakes import FakeWorkerIdentityRepository


@pytest.mark.anyio
async def test_concurrent_allocations_never_share_an_identity(store):
    store.seed_leases(11, 15)
    allocator = WorkerIdentityAllocator(store.uow_factory, candidate_batch=3)

    results = await asyncio.gather(*(allocator.allocate(instance_id) for instance_id in range(100, 112)))

    granted = [r.value for r in results if r.is_success()]
    exhausted = [r.error for r in results if r.is_failure()]
    assert sorted(granted) == [11, 12, 13, 14, 15]
    assert len(exhausted) == 7
    assert all(e.code == errors.EXHAUSTED for e in exhausted)

    bound = {lease.instance_id for lease in store.leases.values()}
    assert len(bound) == 5


@pytest.mark.anyio
async def test_allocate_is_idempotent_per_instance(store):
    store.seed_leases(11, 20)
    allocator = WorkerIdentityAllocator(store.uow_factory)

    first = await allocator.allocate(500)
    second = await allocator.allocate(500)

    assert first.value == second.value == 11
    assert sum(1 for lease in store.leases.values() if lease.instance_id == 500) == 1


@pytest.mark.anyio
async def test_released_identity_is_reused(store):
    store.seed_leases(11, 11)
    allocator = WorkerIdentityAllocator(store.uow_factory)

    assert (await allocator.allocate(1)).unwrap() == 11
    assert (await allocator.allocate(2)).is_failure()

    assert await allocator.release(11) is True
    assert (await allocator.allocate(2)).value == 11


@pytest.mark.anyio
async def test_tombstoned_identity_is_never_reallocated(store):
    store.seed_leases(11, 11)
    allocator = WorkerIdentityAllocator(store.uow_factory, tombstone_on_release=True)

    await allocator.allocate(1)
    await allocator.release(11)

    result = await allocator.allocate(2)
    assert result.is_failure()
    assert store.leases[11].is_tombstoned


@pytest.mark.anyio
async def test_release_of_unbound_identity_is_noop(store):
    store.seed_leases(11, 11)
    allocator = WorkerIdentityAllocator(store.uow_factory)
    assert await allocator.release(11) is False


@pytest.mark.anyio
async def test_claim_lost_after_read_moves_on_to_next_free_identity(store, monkeypatch):
    store.seed_leases(11, 12)
    list_free = FakeWorkerIdentityRepository.list_free
    raced = []

    async def list_free_then_lose_race(self, limit):
        candidates = await list_free(self, limit)
        if not raced:
            # Another allocator binds the first candidate between the read and the claim.
            raced.append(candidates[0])
            store.leases[candidates[0]].instance_id = 900
        return candidates

    monkeypatch.setattr(FakeWorkerIdentityRepository, "list_free", list_free_then_lose_race)
    allocator = WorkerIdentityAllocator(store.uow_factory)

    assert (await allocator.allocate(1)).value == 12
    assert raced == [11]
    assert (await allocator.allocate(2)).error.code == errors.EXHAUSTED
