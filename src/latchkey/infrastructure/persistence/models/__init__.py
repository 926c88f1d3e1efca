"""SQLAlchemy models for the Latchkey tables.

All models inherit from the Base class defined in database.py.
"""

from latchkey.infrastructure.persistence.models.password_reset import PasswordResetTokenModel
from latchkey.infrastructure.persistence.models.user import UserModel

__all__ = [
    "PasswordResetTokenModel",
    "UserModel",
]
