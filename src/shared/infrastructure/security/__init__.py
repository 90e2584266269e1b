"""
Shared Security Infrastructure
Encryption and field-level encryption
"""
from src.shared.infrastructure.security.encryption import (
    EncryptionManager,
    configure_encryption,
    get_encryption_manager,
)
from src.shared.infrastructure.security.field_encryption import EncryptedString

__all__ = [
    "EncryptionManager",
    "get_encryption_manager",
    "configure_encryption",
    "EncryptedString",
]
