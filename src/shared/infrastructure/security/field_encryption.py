"""
Field-Level Encryption for Sensitive Data
Transparent encryption/decryption for ORM fields
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import Text, TypeDecorator

from src.shared.infrastructure.security.encryption import get_encryption_manager


class EncryptedString(TypeDecorator):
    """
    SQLAlchemy type decorator for transparent field encryption.

    Values are encrypted right before they are written and decrypted right
    after they are read, so repositories and domain code only ever see
    plaintext in memory and the database only ever sees Fernet tokens.

    Usage in ORM model:
        database_password: Mapped[str | None] = mapped_column(EncryptedString(), nullable=True)

    Note:
        - Decryption failures raise CryptoError; a row that cannot be
          decrypted is a key-management problem, not a missing value.
        - Encrypted data takes more space than plaintext.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        return get_encryption_manager().encrypt(str(value))

    def process_result_value(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        return get_encryption_manager().decrypt(value)
