"""
WorkerIdentity ORM Model
Maps to the worker_identity_registry table
"""
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, text
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base


class WorkerIdentityModel(Base):
    """
    SQLAlchemy model for the worker_identity_registry table.

    One row per allocatable worker id, pre-seeded by migration. The partial
    unique index on ``instance_id`` is what stops an instance from holding
    two identities at once.
    """

    __tablename__ = "worker_identity_registry"
    __table_args__ = (
        CheckConstraint("worker_id >= 0 AND worker_id <= 1023", name="worker_id_range"),
        Index(
            "uq_worker_identity_registry_instance_live",
            "instance_id",
            unique=True,
            postgresql_where=text("instance_id IS NOT NULL AND is_tombstoned = false"),
        ),
    )

    worker_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    instance_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_tombstoned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    allocated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    released_at: Mapped[datetime | None] = mapped_column(nullable=True)
