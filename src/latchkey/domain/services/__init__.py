"""Domain services for Latchkey.

Services hold the authentication rules that don't belong to a single entity.
"""

from latchkey.domain.services.auth_service import (
    FORGOT_PASSWORD_MESSAGE,
    AuthService,
    ForgotPasswordResult,
    LoginResult,
)
from latchkey.domain.services.reset_token_store import (
    ResetTokenError,
    ResetTokenExpiredError,
    ResetTokenNotFoundError,
    ResetTokenStore,
    ResetTokenUsedError,
)

__all__ = [
    "FORGOT_PASSWORD_MESSAGE",
    "AuthService",
    "ForgotPasswordResult",
    "LoginResult",
    "ResetTokenError",
    "ResetTokenExpiredError",
    "ResetTokenNotFoundError",
    "ResetTokenStore",
    "ResetTokenUsedError",
]
