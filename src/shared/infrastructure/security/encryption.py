"""
Encryption Utilities
Fernet symmetric encryption for secrets stored at rest
"""
from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken

from src.shared.exceptions import CryptoError
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class EncryptionManager:
    """
    Encrypts and decrypts instance secrets (database passwords, storage
    secret keys, media-relay secrets, per-instance KEKs).

    The master key is a Fernet key supplied through ENCRYPTION_KEY. When none
    is configured an ephemeral key is generated, which is only acceptable for
    development and tests: anything encrypted with it is unreadable after a
    restart.

    Attributes:
        cipher: Fernet cipher instance
    """

    def __init__(self, master_key: str | None = None) -> None:
        if master_key is None:
            master_key = Fernet.generate_key().decode("utf-8")
            logger.warning("encryption_key_ephemeral", action="set ENCRYPTION_KEY")

        try:
            self.cipher = Fernet(master_key.encode("utf-8"))
        except (ValueError, TypeError) as e:
            raise CryptoError("ENCRYPTION_KEY is not a valid Fernet key") from e

    def encrypt(self, plaintext: str | bytes) -> str:
        """
        Encrypt plaintext data.

        Args:
            plaintext: Data to encrypt (string or bytes)

        Returns:
            Fernet token as text
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        return self.cipher.encrypt(plaintext).decode("utf-8")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a Fernet token.

        Raises:
            CryptoError: If the token is malformed or was encrypted with another key
        """
        try:
            return self.cipher.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            logger.error("decryption_failed")
            raise CryptoError("Failed to decrypt data") from e

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key suitable for ENCRYPTION_KEY."""
        return Fernet.generate_key().decode("utf-8")


# Global encryption manager instance
_encryption_manager: EncryptionManager | None = None


def get_encryption_manager() -> EncryptionManager:
    """Get the global encryption manager instance."""
    global _encryption_manager
    if _encryption_manager is None:
        _encryption_manager = EncryptionManager()
    return _encryption_manager


def configure_encryption(master_key: str | None = None) -> EncryptionManager:
    """Configure (and return) the global encryption manager."""
    global _encryption_manager
    _encryption_manager = EncryptionManager(master_key=master_key)
    return _encryption_manager
