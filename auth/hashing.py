"""
auth/hashing.py -- Salt generation and salted SHA-256 password hashing.

Security design decisions:
  Hash input: salt ++ UTF-8(password), hashed with SHA-256. The salt is
       always written in full in front of the password bytes. Stored hashes
       are 32 bytes.

  Encoding: UTF-8 at hash time AND verify time. Any mismatch here would
       silently lock every user out, so both paths go through _encode().
       Lone surrogates (e.g. "\\ud800", which json.loads happily produces)
       are encoded with "surrogatepass", so every str has exactly one byte
       form: such passwords can be set, changed and checked like any other,
       and a login attempt carrying one fails normally instead of raising.

  Comparison: hmac.compare_digest() over the full digest. A length
       mismatch is a definite failure and is checked first (compare_digest
       would also return False, but the explicit check documents intent).

  Salt source: injected callable (default secrets.token_bytes). The
       repository holds its own reference, so tests can pass a deterministic
       source without patching module state.

Layer rule: no imports from kv/ or main.py.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from collections.abc import Callable

SALT_LENGTH = 32
HASH_LENGTH = hashlib.sha256().digest_size

RandomSource = Callable[[int], bytes]


def _encode(password: str) -> bytes:
    return password.encode("utf-8", errors="surrogatepass")


def generate_salt(random_bytes: RandomSource = secrets.token_bytes) -> bytes:
    """Return SALT_LENGTH bytes from a cryptographically secure source.

    Raises ValueError if the source returns the wrong number of bytes --
    a short salt would silently weaken every hash derived from it.
    """
    salt = random_bytes(SALT_LENGTH)
    if len(salt) != SALT_LENGTH:
        raise ValueError(f"Random source returned {len(salt)} bytes, expected {SALT_LENGTH}.")
    return salt


def hash_password(password: str, salt: bytes) -> bytes:
    """Return SHA-256(salt ++ password) as raw bytes."""
    return hashlib.sha256(salt + _encode(password)).digest()


def verify_password(password: str, salt: bytes, expected_hash: bytes) -> bool:
    """Return True if password hashed with salt equals expected_hash."""
    attempt = hash_password(password, salt)
    if len(attempt) != len(expected_hash):
        return False
    return hmac.compare_digest(attempt, expected_hash)


# Timing equalization dummy salt [C1].
# authenticate_user() hashes against this when the username does not exist,
# so an unknown user costs the same SHA-256 work as a wrong password.
DUMMY_SALT: bytes = bytes(SALT_LENGTH)
DUMMY_HASH: bytes = hash_password("credstore_timing_dummy", DUMMY_SALT)
