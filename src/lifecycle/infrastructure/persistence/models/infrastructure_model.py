"""
InstanceInfrastructure ORM Model
Maps to the instance_infrastructure table
"""
from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.infrastructure.database.base_model import Base, TimestampMixin, VersionedMixin
from src.shared.infrastructure.security.field_encryption import EncryptedString


class InstanceInfrastructureModel(TimestampMixin, VersionedMixin, Base):
    """
    SQLAlchemy model for the instance_infrastructure table.

    Secret columns use EncryptedString; everything else is a plain handle
    returned by the external systems.
    """

    __tablename__ = "instance_infrastructure"

    instance_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("instances.id", ondelete="CASCADE"),
        primary_key=True,
        autoincrement=False,
    )

    database_name: Mapped[str] = mapped_column(String(63), nullable=False)
    database_password: Mapped[str | None] = mapped_column(EncryptedString(), nullable=True)
    storage_access_key: Mapped[str] = mapped_column(String(128), nullable=False)
    storage_secret_key: Mapped[str | None] = mapped_column(EncryptedString(), nullable=True)
    media_relay_api_key: Mapped[str] = mapped_column(String(128), nullable=False)
    media_relay_secret: Mapped[str | None] = mapped_column(EncryptedString(), nullable=True)
    instance_kek: Mapped[str | None] = mapped_column(EncryptedString(), nullable=True)
    bootstrap_token_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    network_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    container_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    proxy_route_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    runtime_secret_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
