"""Password hashing utilities.

bcrypt with a configurable work factor (12 rounds by default, about
100ms per hash). bcrypt salts automatically and truncates input at 72
bytes. The async wrappers push the hashing onto a worker thread so a
login does not stall the event loop.
"""

import asyncio
import secrets

import bcrypt

DEFAULT_ROUNDS = 12

# No 0/O, 1/l/I: temporary passwords get read out over the phone.
TEMP_PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789"
TEMP_PASSWORD_LENGTH = 12


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash. Malformed hashes never match."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


async def hash_password_async(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return await asyncio.to_thread(hash_password, password, rounds)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)


def generate_temp_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    """Random password handed to a newly created client account."""
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))
