"""
Durable Provisioning Queue

Backed by the provisioning_queue table. ``dequeue`` claims with
``FOR UPDATE SKIP LOCKED`` so several orchestrators can poll the same table
without handing one instance to two of them. The claim timestamp doubles as
the claim token: ``complete`` only deletes the row while that claim still
holds it, so an entry re-opened by the reconciler mid-run survives.
"""
from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.lifecycle.domain.entities import QueueClaim
from src.lifecycle.domain.repositories import ProvisioningQueue
from src.lifecycle.infrastructure.persistence.models import ProvisioningQueueModel


class SqlAlchemyProvisioningQueue(ProvisioningQueue):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def enqueue(self, instance_id: int) -> bool:
        # A row claimed by a run that never completed is re-opened in place.
        stmt = (
            insert(ProvisioningQueueModel)
            .values(instance_id=instance_id)
            .on_conflict_do_update(
                index_elements=[ProvisioningQueueModel.instance_id],
                set_={"claimed_at": None},
                where=ProvisioningQueueModel.claimed_at.is_not(None),
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def dequeue(self) -> Optional[QueueClaim]:
        stmt = (
            select(ProvisioningQueueModel.instance_id)
            .where(ProvisioningQueueModel.claimed_at.is_(None))
            .order_by(ProvisioningQueueModel.enqueued_at, ProvisioningQueueModel.instance_id)
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        instance_id = await self.session.scalar(stmt)
        if instance_id is None:
            return None
        claimed_at = await self.session.scalar(
            update(ProvisioningQueueModel)
            .where(ProvisioningQueueModel.instance_id == instance_id)
            .values(claimed_at=func.clock_timestamp())
            .returning(ProvisioningQueueModel.claimed_at)
            .execution_options(synchronize_session=False)
        )
        return QueueClaim(instance_id=instance_id, claimed_at=claimed_at)

    async def list_pending(self) -> Sequence[int]:
        stmt = select(ProvisioningQueueModel.instance_id).order_by(
            ProvisioningQueueModel.enqueued_at, ProvisioningQueueModel.instance_id
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def complete(self, claim: QueueClaim) -> bool:
        result = await self.session.execute(
            delete(ProvisioningQueueModel).where(
                ProvisioningQueueModel.instance_id == claim.instance_id,
                ProvisioningQueueModel.claimed_at == claim.claimed_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
