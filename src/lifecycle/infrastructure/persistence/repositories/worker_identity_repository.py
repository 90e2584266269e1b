"""
Worker Identity Registry Repository Implementation
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.entities import WorkerIdentityLease
from src.lifecycle.domain.repositories import WorkerIdentityRepository
from src.lifecycle.infrastructure.persistence.models import WorkerIdentityModel
from src.shared.exceptions import DuplicateIdentityError
from src.shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class SqlAlchemyWorkerIdentityRepository(
    SQLAlchemyRepository[WorkerIdentityLease, WorkerIdentityModel],
    WorkerIdentityRepository,
):
    """
    Registry access for the worker identity allocator.

    ``try_claim`` is a conditional UPDATE on a free row; it runs inside a
    savepoint so a unique-index violation leaves the surrounding
    transaction usable.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=WorkerIdentityModel, entity_class=WorkerIdentityLease)

    def _to_entity(self, model: WorkerIdentityModel) -> WorkerIdentityLease:
        return WorkerIdentityLease(
            worker_id=model.worker_id,
            instance_id=model.instance_id,
            is_tombstoned=model.is_tombstoned,
            allocated_at=model.allocated_at,
            released_at=model.released_at,
        )

    async def get(self, worker_id: int) -> Optional[WorkerIdentityLease]:
        return await self._get(worker_id)

    async def get_by_instance(self, instance_id: int) -> Optional[WorkerIdentityLease]:
        stmt = select(WorkerIdentityModel).where(
            WorkerIdentityModel.instance_id == instance_id,
            WorkerIdentityModel.is_tombstoned.is_(False),
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_free(self, limit: int) -> Sequence[int]:
        stmt = (
            select(WorkerIdentityModel.worker_id)
            .where(WorkerIdentityModel.instance_id.is_(None), WorkerIdentityModel.is_tombstoned.is_(False))
            .order_by(WorkerIdentityModel.worker_id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def try_claim(self, worker_id: int, instance_id: int, now: datetime) -> bool:
        stmt = (
            update(WorkerIdentityModel)
            .where(
                WorkerIdentityModel.worker_id == worker_id,
                WorkerIdentityModel.instance_id.is_(None),
                WorkerIdentityModel.is_tombstoned.is_(False),
            )
            .values(instance_id=instance_id, allocated_at=now, released_at=None)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(stmt)
        except IntegrityError as e:
            raise DuplicateIdentityError(
                f"Instance {instance_id} already holds a worker identity",
                details={"instance_id": instance_id, "worker_id": worker_id},
            ) from e
        return result.rowcount == 1

    async def release(self, worker_id: int, now: datetime, tombstone: bool = False) -> bool:
        stmt = (
            update(WorkerIdentityModel)
            .where(WorkerIdentityModel.worker_id == worker_id, WorkerIdentityModel.instance_id.is_not(None))
            .values(instance_id=None, released_at=now, is_tombstoned=tombstone)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def seed(self, first: int, last: int) -> int:
        if first > last:
            return 0
        stmt = (
            insert(WorkerIdentityModel)
            .values([{"worker_id": worker_id} for worker_id in range(first, last + 1)])
            .on_conflict_do_nothing(index_elements=[WorkerIdentityModel.worker_id])
        )
        result = await self.session.execute(stmt)
        created = max(result.rowcount or 0, 0)
        logger.info("worker_identity_registry_seeded", first=first, last=last, created=created)
        return created
