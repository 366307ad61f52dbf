"""Password hashing with pwdlib's recommended (argon2) hasher.

Hashing and verification are CPU bound, so the async wrappers run them in
the threadpool to keep the event loop responsive.
"""

from functools import lru_cache

from fastapi.concurrency import run_in_threadpool
from pwdlib import PasswordHash

password_hash = PasswordHash.recommended()


def get_password_hash(password: str) -> str:
    """Hash a plain password using the recommended algorithm.

    Args:
        password: Plain-text password to hash.

    Returns:
        str: The resulting password hash.
    """
    return password_hash.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored hash.

    Args:
        plain_password: The clear-text password provided by the user.
        hashed_password: The stored password hash to verify against.

    Returns:
        bool: True if the password matches, False otherwise.
    """
    return password_hash.verify(plain_password, hashed_password)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return get_password_hash("not-a-real-password")


def _verify_against_dummy(plain_password: str) -> bool:
    # Runs in the threadpool; the first call also builds the dummy hash there.
    return verify_password(plain_password, _dummy_hash())


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: str | None) -> bool:
    """Verify off the event loop; a missing hash still costs one verification.

    Running the comparison against a throwaway hash when the user does not
    exist keeps "unknown email" and "wrong password" indistinguishable by
    timing.
    """
    if hashed_password is None:
        await run_in_threadpool(_verify_against_dummy, plain_password)
        return False
    return await run_in_threadpool(verify_password, plain_password, hashed_password)
