"""Lifecycle rules for single-use password reset tokens.

The store validates tokens but never consumes them on its own: the caller
redeems, then marks the token used and updates the password in one transaction.
"""

from collections.abc import Callable
from datetime import datetime, timezone

from latchkey.domain.entities.password_reset import (
    RESET_TOKEN_LIFETIME_SECONDS,
    PasswordResetToken,
)
from latchkey.infrastructure.persistence.repositories.password_reset_repository import (
    PasswordResetRepository,
)


class ResetTokenError(Exception):
    """Base exception for reset token redemption failures."""

    pass


class ResetTokenNotFoundError(ResetTokenError):
    """Raised when no stored token matches the presented value."""

    pass


class ResetTokenExpiredError(ResetTokenError):
    """Raised when the token's one-hour window has closed."""

    pass


class ResetTokenUsedError(ResetTokenError):
    """Raised when the token has already been redeemed."""

    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResetTokenStore:
    """Creates, validates and consumes password reset tokens."""

    def __init__(
        self,
        reset_repo: PasswordResetRepository,
        now: Callable[[], datetime] = _utcnow,
        lifetime_seconds: int = RESET_TOKEN_LIFETIME_SECONDS,
    ) -> None:
        """Initialize the store.

        Args:
            reset_repo: Repository persisting the tokens.
            now: Source of the current UTC time.
            lifetime_seconds: How long a new token stays redeemable.
        """
        self.reset_repo = reset_repo
        self._now = now
        self._lifetime_seconds = lifetime_seconds

    async def create(self, user_id: str) -> tuple[PasswordResetToken, str]:
        """Generate and persist a new reset token for a user.

        Args:
            user_id: ID of the user requesting the reset.

        Returns:
            A tuple of (stored entity, raw token). The raw token is not
            recoverable later.
        """
        entity, raw_token = PasswordResetToken.generate(
            user_id, now=self._now(), expires_in_seconds=self._lifetime_seconds
        )
        stored = await self.reset_repo.create(entity)
        return stored, raw_token

    async def redeem(self, token: str) -> PasswordResetToken:
        """Validate a presented token without consuming it.

        Expiry is checked before the used flag, so a token that is both
        expired and used reports as expired.

        Args:
            token: The raw token string.

        Returns:
            The matching, redeemable token.

        Raises:
            ResetTokenNotFoundError: If no token matches.
            ResetTokenExpiredError: If the token has expired.
            ResetTokenUsedError: If the token was already redeemed.
        """
        record = await self.reset_repo.get_by_token(token)
        if record is None:
            raise ResetTokenNotFoundError("Reset token not found")
        if record.is_expired(self._now()):
            raise ResetTokenExpiredError("Reset token has expired")
        if record.used:
            raise ResetTokenUsedError("Reset token has already been used")
        return record

    async def mark_used(self, token: str) -> bool:
        """Mark a token as used. Safe to call more than once.

        Returns:
            True only for the call that moved the token from unused to used.
        """
        return await self.reset_repo.mark_as_used(token)
