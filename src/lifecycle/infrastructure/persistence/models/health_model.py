"""
InstanceHealth ORM Model
Maps to the instance_health table
"""
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base, VersionedMixin


class InstanceHealthModel(VersionedMixin, Base):
    __tablename__ = "instance_health"

    instance_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("instances.id", ondelete="CASCADE"),
        primary_key=True,
        autoincrement=False,
    )
    is_healthy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    last_check_at: Mapped[datetime | None] = mapped_column(nullable=True)
    consecutive_failures: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
