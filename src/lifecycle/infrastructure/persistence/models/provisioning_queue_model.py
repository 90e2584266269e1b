"""
ProvisioningQueue ORM Model
Maps to the provisioning_queue table
"""
from datetime import datetime

from sqlalchemy import BigInteger, func
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base


class ProvisioningQueueModel(Base):
    """One row per instance awaiting provisioning; ``claimed_at`` is set on dequeue."""

    __tablename__ = "provisioning_queue"

    instance_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    enqueued_at: Mapped[datetime] = mapped_column(nullable=False, server_default=func.now(), index=True)
    claimed_at: Mapped[datetime | None] = mapped_column(nullable=True)
