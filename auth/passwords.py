"""Password hashing helpers.

Stored format: "pbkdf2_sha256$<iterations>$<salt_hex>$<hash_hex>".
"""

import binascii
import hashlib
import hmac
import os

PBKDF2_ALGO_PREFIX = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 260_000
PBKDF2_SALT_BYTES = 16


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Return a salted PBKDF2-SHA256 hash string for the given password."""
    if not isinstance(password, str):
        raise TypeError("password must be a string")

    salt = os.urandom(PBKDF2_SALT_BYTES)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    salt_hex = binascii.hexlify(salt).decode("ascii")
    hash_hex = binascii.hexlify(dk).decode("ascii")
    return f"{PBKDF2_ALGO_PREFIX}${iterations}${salt_hex}${hash_hex}"


def verify_password(password: str, encoded: str) -> bool:
    """Verify a password against an encoded hash.

    Returns False if the hash is malformed.
    """
    if not encoded or not isinstance(password, str):
        return False

    try:
        prefix, iter_str, salt_hex, hash_hex = encoded.split("$", 3)
        if prefix != PBKDF2_ALGO_PREFIX:
            return False
        iterations = int(iter_str)
        salt = binascii.unhexlify(salt_hex.encode("ascii"))
        expected = binascii.unhexlify(hash_hex.encode("ascii"))
    except (ValueError, binascii.Error):
        return False

    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(dk, expected)
