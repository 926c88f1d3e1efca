"""Errors raised by the authentication flows.

Each error carries the message shown to clients. The HTTP layer maps the
error class to a status code; the flows never build responses themselves.
"""


class AuthServiceError(Exception):
    """Base class for all errors surfaced by the authentication flows."""

    default_message = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthServiceError):
    """Raised when input fails the minimal syntactic checks."""

    default_message = "Validation error"


class ConflictError(AuthServiceError):
    """Raised when registering an email that already exists."""

    default_message = "User with this email already exists"


class InvalidCredentialsError(AuthServiceError):
    """Raised for an unknown email or a wrong password, without telling which."""

    default_message = "Invalid email or password"


class InvalidOrExpiredTokenError(AuthServiceError):
    """Raised when a reset token does not exist or has expired."""

    default_message = "Invalid or expired reset token"


class AlreadyUsedTokenError(AuthServiceError):
    """Raised when a reset token has already been redeemed."""

    default_message = "Reset token has already been used"


class UnauthenticatedError(AuthServiceError):
    """Raised when a request carries no valid bearer token, for any reason."""

    default_message = "Unauthorized"


class UserNotFoundError(AuthServiceError):
    """Raised when an authenticated subject no longer resolves to a user."""

    default_message = "User not found"


class PersistenceError(AuthServiceError):
    """Raised when the backing store fails."""

    default_message = "Database error occurred"
