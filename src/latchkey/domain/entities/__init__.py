"""Domain entities for Latchkey.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from latchkey.domain.entities.password_reset import (
    RESET_TOKEN_LIFETIME_SECONDS,
    PasswordResetToken,
    hash_reset_token,
)
from latchkey.domain.entities.user import User

__all__ = [
    "RESET_TOKEN_LIFETIME_SECONDS",
    "PasswordResetToken",
    "User",
    "hash_reset_token",
]
