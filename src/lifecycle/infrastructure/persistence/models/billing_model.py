"""
InstanceBilling ORM Model
Maps to the instance_billing table
"""
from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base, TimestampMixin


class InstanceBillingModel(TimestampMixin, Base):
    __tablename__ = "instance_billing"

    instance_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("instances.id", ondelete="CASCADE"),
        primary_key=True,
        autoincrement=False,
    )
    feature_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    user_count_tier: Mapped[int] = mapped_column(Integer, nullable=False)
    billing_exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
