"""Salted scrypt password hashing.

Stored format is ``<hex digest>.<hex salt>``.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

_SALT_BYTES = 16
_KEY_LENGTH = 64


def _scrypt(password: str, salt: bytes) -> bytes:
    return hashlib.scrypt(password.encode("utf-8"), salt=salt, n=2**14, r=8, p=1, dklen=_KEY_LENGTH)


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(_SALT_BYTES)
    return f"{_scrypt(password, salt).hex()}.{salt.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Return True if *password* matches the *stored* hash."""
    try:
        digest_hex, salt_hex = stored.split(".", 1)
        expected = bytes.fromhex(digest_hex)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    return hmac.compare_digest(_scrypt(password, salt), expected)
