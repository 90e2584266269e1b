"""
InstanceConfig ORM Model
Maps to the instance_configs table
"""
from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base


class InstanceConfigModel(Base):
    """Resource limits and feature flags derived from the billing tier."""

    __tablename__ = "instance_configs"

    instance_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("instances.id", ondelete="CASCADE"),
        primary_key=True,
        autoincrement=False,
    )
    resource_limits: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict, server_default="{}")
    feature_flags: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict, server_default="{}")
    updated_at: Mapped[datetime] = mapped_column(nullable=False, server_default=func.now())
