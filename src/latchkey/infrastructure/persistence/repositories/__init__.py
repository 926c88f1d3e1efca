"""Persistence repositories for database operations."""

from latchkey.infrastructure.persistence.repositories.password_reset_repository import (
    PasswordResetRepository,
)
from latchkey.infrastructure.persistence.repositories.user_repository import (
    UserAlreadyExistsError,
    UserRepository,
)

__all__ = [
    "PasswordResetRepository",
    "UserAlreadyExistsError",
    "UserRepository",
]
