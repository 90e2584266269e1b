"""
ProvisioningEvent ORM Model
Maps to the provisioning_events table
"""
from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base


class ProvisioningEventModel(Base):
    """
    SQLAlchemy model for the provisioning_events table.

    Append-mostly audit trail: rows are inserted IN_PROGRESS and updated
    once with their terminal status.
    """

    __tablename__ = "provisioning_events"
    __table_args__ = (Index("ix_provisioning_events_instance_started", "instance_id", "started_at"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    instance_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("instances.id", ondelete="CASCADE"),
        nullable=False,
    )
    step_name: Mapped[str] = mapped_column(String(64), nullable=False)
    phase: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ProvisioningEventModel(id={self.id}, step={self.step_name}, phase={self.phase}, status={self.status})>"
