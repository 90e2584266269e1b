"""
Instance ORM Model
Maps to the instances table
"""
from datetime import datetime

from sqlalchemy import BigInteger, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base, TimestampMixin, VersionedMixin


class InstanceModel(TimestampMixin, VersionedMixin, Base):
    """
    SQLAlchemy model for the instances table.

    ``id`` is a Snowflake minted by the hub; rows are soft-deleted through
    ``deleted_at``. The domain is unique among live rows only, so a
    destroyed instance's domain can be reused.
    """

    __tablename__ = "instances"
    __table_args__ = (
        Index(
            "uq_instances_domain_live",
            "domain",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("ix_instances_status_live", "status", postgresql_where=text("deleted_at IS NULL")),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    owner_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    domain: Mapped[str] = mapped_column(String(253), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", server_default="pending")
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    online_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    worker_identity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    provisioning_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    provisioning_started_at: Mapped[datetime | None] = mapped_column(nullable=True)

    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<InstanceModel(id={self.id}, domain={self.domain}, status={self.status})>"
