"""Password hashing utility using Argon2.

Provides salted, adaptive password hashing and verification using the
Argon2id algorithm. The cost parameters come from settings and are read
once, when the hasher is first used.
"""

from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import HashingError as Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from latchkey.core.config import get_settings


class HashingError(Exception):
    """Raised when a password cannot be hashed or a stored hash is malformed."""

    pass


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Get the process-wide Argon2id hasher built from settings."""
    settings = get_settings()
    return PasswordHasher(
        time_cost=settings.password_hash_time_cost,
        memory_cost=settings.password_hash_memory_cost,
        parallelism=settings.password_hash_parallelism,
    )


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Args:
        password: The plaintext password to hash.

    Returns:
        The hashed password string.

    Raises:
        HashingError: If the underlying library fails to hash.

    Example:
        >>> hashed = hash_password("secret1")
        >>> hashed.startswith("$argon2id$")
        True
    """
    try:
        return get_password_hasher().hash(password)
    except Argon2HashingError as e:
        raise HashingError("Failed to hash password") from e


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a hash.

    Uses constant-time comparison to prevent timing attacks.

    Args:
        password: The plaintext password to verify.
        hashed: The hashed password to verify against.

    Returns:
        True if the password matches, False otherwise.

    Raises:
        HashingError: If ``hashed`` is not a valid Argon2 hash.
    """
    try:
        return get_password_hasher().verify(hashed, password)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as e:
        raise HashingError("Malformed password hash") from e


def needs_rehash(hashed: str) -> bool:
    """Check if a password hash was produced with other cost parameters.

    Call after a successful verification; if True, store a fresh hash.
    """
    return get_password_hasher().check_needs_rehash(hashed)


@lru_cache
def get_dummy_password_hash() -> str:
    """Get a hash to verify against when the email is unknown.

    Built with the live cost parameters so both failure paths of a login
    cost the same.
    """
    return hash_password("latchkey-dummy-password")
