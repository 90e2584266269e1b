"""
Shared Database Infrastructure
Session management, repositories, and unit of work
"""
from src.shared.infrastructure.database.base_model import Base, TimestampMixin, VersionedMixin
from src.shared.infrastructure.database.session import DatabaseSessionFactory
from src.shared.infrastructure.database.sqlalchemy_repository import SQLAlchemyRepository
from src.shared.infrastructure.database.sqlalchemy_unit_of_work import SQLAlchemyUnitOfWork

__all__ = [
    "Base",
    "TimestampMixin",
    "VersionedMixin",
    "DatabaseSessionFactory",
    "SQLAlchemyRepository",
    "SQLAlchemyUnitOfWork",
]
