"""
auth/passwords.py -- PBKDF2 password hashing and session id generation.

Security design decisions:
  Passwords: PBKDF2-HMAC-SHA256 with a 16-byte random salt per hash and at
       least 100,000 iterations. The stored string is self-describing:

           pbkdf2_sha256$<iterations>$<salt_hex>$<hash_hex>

       so verification never needs out-of-band parameters, and raising the
       iteration count later does not invalidate existing hashes.

  Verification: constant-time comparison (hmac.compare_digest). Any malformed
       stored value fails closed -- verify_password() returns False and never
       raises into the login path.

  Session ids: secrets.token_hex(32) -- 256 bits of entropy, unguessable.

Layer rule: stdlib only.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import os
import secrets

_ALGORITHM = "pbkdf2_sha256"
_SALT_BYTES = 16
_KEY_BYTES = 32
DEFAULT_ITERATIONS = 100_000


def hash_password(plain: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Return the encoded PBKDF2-SHA256 hash of plain with a fresh random salt."""
    if iterations < 1:
        raise ValueError("iterations must be positive")
    salt = os.urandom(_SALT_BYTES)
    derived = hashlib.pbkdf2_hmac("sha256", plain.encode("utf-8"), salt, iterations, dklen=_KEY_BYTES)
    return f"{_ALGORITHM}${iterations}${salt.hex()}${derived.hex()}"


def verify_password(plain: str, encoded: str | None) -> bool:
    """Return True if plain matches the encoded hash. False on any malformed input."""
    if not encoded:
        return False
    try:
        algorithm, iter_str, salt_hex, hash_hex = encoded.split("$")
        iterations = int(iter_str)
        salt = binascii.unhexlify(salt_hex)
        expected = binascii.unhexlify(hash_hex)
    except (ValueError, binascii.Error):
        return False
    if algorithm != _ALGORITHM or iterations < 1 or not salt or not expected:
        return False
    try:
        secret = plain.encode("utf-8")
    except UnicodeEncodeError:
        return False
    derived = hashlib.pbkdf2_hmac("sha256", secret, salt, iterations, dklen=len(expected))
    return hmac.compare_digest(derived, expected)


def generate_session_id() -> str:
    return secrets.token_hex(32)
