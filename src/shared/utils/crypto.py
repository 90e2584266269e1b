# /src/shared/utils/crypto.py
"""
Crypto helpers. No secrets logged.

- sha256_hex(data)
- generate_password(length)    -> mixed-alphabet secret for service credentials
- generate_access_key(length)  -> upper-case alphanumeric key id
- generate_token()             -> url-safe bearer token
"""

from __future__ import annotations

import hashlib
import secrets
import string

_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"
_ACCESS_KEY_ALPHABET = string.ascii_uppercase + string.digits

# --------- basic digests --------------------------------------------------------------

def sha256_hex(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()

# --------- secret generation ----------------------------------------------------------

def generate_password(length: int = 32) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))

def generate_access_key(length: int = 20) -> str:
    return "".join(secrets.choice(_ACCESS_KEY_ALPHABET) for _ in range(length))

def generate_token(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)
