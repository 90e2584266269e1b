import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from src.lifecycle.application.worker_identity_allocator import WorkerIdentityAllocator
from src.lifecycle.domain.entities import Instance, InstanceInfrastructure
from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.infrastructure.persistence import models  # noqa: F401
from src.lifecycle.infrastructure.persistence.repositories import SqlAlchemyLifecycleUnitOfWork
from src.shared.exceptions import ConcurrencyConflictError
from src.shared.infrastructure.database.base_model import Base
from src.shared.infrastructure.database.session import DatabaseSessionFactory
from src.shared.infrastructure.security.encryption import EncryptionManager, configure_encryption
from tests.conftest import require_test_db


@pytest.fixture
async def database():
    url = require_test_db()
    configure_encryption(EncryptionManager.generate_key())

    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()

    factory = DatabaseSessionFactory(url, pool_size=5)
    yield factory
    await factory.dispose()


@pytest.fixture
def uow_factory(database):
    return lambda: SqlAlchemyLifecycleUnitOfWork(database.session_factory)


async def add_instance(uow_factory, instance_id: int, domain: str) -> Instance:
    async with uow_factory() as uow:
        instance = await uow.instances.add(
            Instance(id=instance_id, owner_id=1, domain=domain, display_name=domain.split(".")[0])
        )
        await uow.commit()
    return instance


@pytest.mark.anyio
async def test_stale_version_is_rejected(uow_factory):
    await add_instance(uow_factory, 1, "alpha.xcord.net")

    async with uow_factory() as uow:
        first = await uow.instances.get_by_id(1)
    async with uow_factory() as uow:
        second = await uow.instances.get_by_id(1)

    first.begin_provisioning()
    async with uow_factory() as uow:
        saved = await uow.instances.update(first)
        await uow.commit()
    assert saved.version == 2

    second.mark_failed()
    with pytest.raises(ConcurrencyConflictError):
        async with uow_factory() as uow:
            await uow.instances.update(second)

    async with uow_factory() as uow:
        current = await uow.instances.get_by_id(1)
    assert current.status == InstanceStatus.PROVISIONING


@pytest.mark.anyio
async def test_secrets_are_encrypted_at_rest(database, uow_factory):
    await add_instance(uow_factory, 1, "alpha.xcord.net")
    async with uow_factory() as uow:
        await uow.infrastructure.add(
            InstanceInfrastructure(
                instance_id=1,
                database_name="xcord_alpha_xcord_net",
                database_password="plain-password",
                storage_access_key="AKIA",
                storage_secret_key="storage-secret",
                media_relay_api_key="relay",
                media_relay_secret="relay-secret",
                instance_kek="kek",
            )
        )
        await uow.commit()

    async with database.engine.connect() as conn:
        raw = await conn.scalar(text("SELECT database_password FROM instance_infrastructure WHERE instance_id = 1"))
    assert raw != "plain-password"

    async with uow_factory() as uow:
        infrastructure = await uow.infrastructure.get_by_instance(1)
    assert infrastructure.database_password == "plain-password"


@pytest.mark.anyio
async def test_queue_holds_each_instance_once(uow_factory):
    async with uow_factory() as uow:
        assert await uow.queue.enqueue(10) is True
        assert await uow.queue.enqueue(10) is False
        assert await uow.queue.enqueue(11) is True
        await uow.commit()

    async with uow_factory() as uow:
        stale = await uow.queue.dequeue()
        await uow.commit()
    assert stale.instance_id == 10

    async with uow_factory() as uow:
        # A claimed entry left behind by a crashed run is reopened, not duplicated.
        assert await uow.queue.enqueue(10) is True
        await uow.commit()

    async with uow_factory() as uow:
        assert sorted(await uow.queue.list_pending()) == [10, 11]
        # The earlier claim no longer holds the reopened entry.
        assert await uow.queue.complete(stale) is False
        await uow.commit()

    async with uow_factory() as uow:
        claims = [await uow.queue.dequeue(), await uow.queue.dequeue()]
        await uow.commit()
    assert sorted(claim.instance_id for claim in claims) == [10, 11]

    async with uow_factory() as uow:
        for claim in claims:
            assert await uow.queue.complete(claim) is True
        await uow.commit()

    async with uow_factory() as uow:
        assert await uow.queue.dequeue() is None


@pytest.mark.anyio
async def test_concurrent_allocation_against_registry(uow_factory):
    async with uow_factory() as uow:
        assert await uow.worker_identities.seed(11, 14) == 4
        await uow.commit()

    allocator = WorkerIdentityAllocator(uow_factory)
    results = await asyncio.gather(*(allocator.allocate(instance_id) for instance_id in range(1, 9)))

    granted = [r.value for r in results if r.is_success()]
    assert sorted(granted) == [11, 12, 13, 14]
    assert sum(1 for r in results if r.is_failure()) == 4
