"""Password reset entity.

Stores information about single-use password reset tokens. Only the
SHA-256 digest of a token is ever kept; the raw value is handed back once,
at generation time.
"""

import hashlib
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

RESET_TOKEN_LIFETIME_SECONDS = 3600


def hash_reset_token(token: str) -> str:
    """Return the SHA-256 hex digest of a raw reset token."""
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass
class PasswordResetToken:
    """Password reset token entity.

    Attributes:
        id: Unique identifier (UUID string).
        user_id: ID of the user this token is for.
        token_hash: SHA-256 hash of the reset token.
        expires_at: When the token expires.
        used: Whether the token has been redeemed.
        created_at: When the token was created.
    """

    user_id: str
    token_hash: str
    expires_at: datetime
    used: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def generate(
        cls,
        user_id: str,
        now: datetime | None = None,
        expires_in_seconds: int = RESET_TOKEN_LIFETIME_SECONDS,
    ) -> tuple["PasswordResetToken", str]:
        """Generate a new password reset token and its entity.

        Args:
            user_id: The ID of the user.
            now: Issuance time. Defaults to the current UTC time.
            expires_in_seconds: Token lifetime in seconds (default 1 hour).

        Returns:
            A tuple of (PasswordResetToken entity, raw_token_string).
        """
        if now is None:
            now = datetime.now(timezone.utc)
        raw_token = secrets.token_urlsafe(32)

        entity = cls(
            user_id=user_id,
            token_hash=hash_reset_token(raw_token),
            expires_at=now + timedelta(seconds=expires_in_seconds),
            created_at=now,
        )
        return entity, raw_token

    def is_expired(self, now: datetime) -> bool:
        """Check whether the token's window has closed at ``now``."""
        return self.expires_at <= now
