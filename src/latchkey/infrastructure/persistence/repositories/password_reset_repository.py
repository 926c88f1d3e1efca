"""Repository for password reset token operations.

Tokens are stored and looked up by their SHA-256 digest; raw tokens never
reach the database.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from latchkey.domain.entities.password_reset import PasswordResetToken, hash_reset_token
from latchkey.infrastructure.persistence.database import as_utc
from latchkey.infrastructure.persistence.models import PasswordResetTokenModel


class PasswordResetRepository:
    """Repository for password reset token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: PasswordResetToken) -> PasswordResetTokenModel:
        """Convert domain entity to infrastructure model."""
        return PasswordResetTokenModel(
            id=entity.id,
            user_id=entity.user_id,
            token_hash=entity.token_hash,
            expires_at=entity.expires_at,
            used=entity.used,
            created_at=entity.created_at,
        )

    def _to_entity(self, model: PasswordResetTokenModel) -> PasswordResetToken:
        """Convert infrastructure model to domain entity."""
        return PasswordResetToken(
            id=model.id,
            user_id=model.user_id,
            token_hash=model.token_hash,
            expires_at=as_utc(model.expires_at),
            used=model.used,
            created_at=as_utc(model.created_at),
        )

    async def create(self, entity: PasswordResetToken) -> PasswordResetToken:
        """Store a new password reset token.

        Args:
            entity: The PasswordResetToken entity to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_token(self, token_plain: str) -> PasswordResetToken | None:
        """Look up a reset token by its plain text value.

        Args:
            token_plain: The raw token string.

        Returns:
            The PasswordResetToken entity if found, None otherwise.
        """
        stmt = select(PasswordResetTokenModel).where(
            PasswordResetTokenModel.token_hash == hash_reset_token(token_plain)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def mark_as_used(self, token_plain: str) -> bool:
        """Flip a reset token from unused to used.

        The update only matches an unused token, so of several concurrent
        callers exactly one sees True. Marking an already-used token changes
        nothing.

        Args:
            token_plain: The raw token string.

        Returns:
            True if this call marked the token, False if it was unknown or
            already used.
        """
        stmt = (
            update(PasswordResetTokenModel)
            .where(
                PasswordResetTokenModel.token_hash == hash_reset_token(token_plain),
                PasswordResetTokenModel.used.is_(False),
            )
            .values(used=True)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete_expired(self, now: datetime | None = None) -> int:
        """Delete all reset tokens whose window has closed.

        Args:
            now: Cutoff time. Defaults to the current UTC time.

        Returns:
            Number of tokens deleted.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        stmt = delete(PasswordResetTokenModel).where(PasswordResetTokenModel.expires_at <= now)
        result = await self._session.execute(stmt)
        return result.rowcount
