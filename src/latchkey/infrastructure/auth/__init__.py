"""Authentication infrastructure components.

This module provides password hashing, session token services and the
bearer token authorization guard.
"""

from latchkey.infrastructure.auth.guard import authorize
from latchkey.infrastructure.auth.jwt_service import (
    InvalidSignatureError,
    JWTService,
    MalformedTokenError,
    SigningError,
    TokenError,
    TokenExpiredError,
    get_jwt_service,
)
from latchkey.infrastructure.auth.password_hasher import (
    HashingError,
    get_dummy_password_hash,
    hash_password,
    needs_rehash,
    verify_password,
)
from latchkey.infrastructure.auth.token_types import AuthenticatedUser, SessionClaims

__all__ = [
    "AuthenticatedUser",
    "HashingError",
    "InvalidSignatureError",
    "JWTService",
    "MalformedTokenError",
    "SessionClaims",
    "SigningError",
    "TokenError",
    "TokenExpiredError",
    "authorize",
    "get_dummy_password_hash",
    "get_jwt_service",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
