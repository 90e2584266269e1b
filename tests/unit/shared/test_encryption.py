import string

import pytest

from src.shared.exceptions import CryptoError
from src.shared.infrastructure.security.encryption import EncryptionManager, configure_encryption
from src.shared.infrastructure.security.field_encryption import EncryptedString
from src.shared.utils.crypto import generate_access_key, generate_password, sha256_hex


def test_encrypt_decrypt():
    manager = EncryptionManager(EncryptionManager.generate_key())
    token = manager.encrypt("db-password")
    assert token != "db-password"
    assert manager.decrypt(token) == "db-password"


def test_foreign_key_cannot_decrypt():
    token = EncryptionManager(EncryptionManager.generate_key()).encrypt("secret")
    with pytest.raises(CryptoError):
        EncryptionManager(EncryptionManager.generate_key()).decrypt(token)


def test_invalid_master_key():
    with pytest.raises(CryptoError):
        EncryptionManager("not-a-fernet-key")


def test_encrypted_column_type():
    configure_encryption(EncryptionManager.generate_key())
    column = EncryptedString()
    stored = column.process_bind_param("storage-secret", None)
    assert stored != "storage-secret"
    assert column.process_result_value(stored, None) == "storage-secret"
    assert column.process_bind_param(None, None) is None


def test_generated_secrets():
    assert len(generate_password(40)) == 40
    key = generate_access_key(20)
    assert len(key) == 20
    assert set(key) <= set(string.ascii_uppercase + string.digits)
    assert sha256_hex("token") == sha256_hex(b"token")
    assert len(sha256_hex("token")) == 64
