"""
bcrypt password hashing helpers.

bcrypt only reads the first 72 bytes of a password. Both hashing and
verification cut the encoded password there so that long passwords hash
and verify consistently.
"""

import bcrypt

DEFAULT_ROUNDS = 12
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plaintext password against a stored bcrypt hash.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode())
    except ValueError:
        return False


def get_password_hash(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt at the given cost factor."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode()
