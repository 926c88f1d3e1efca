"""User repository for database operations."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from latchkey.domain.entities.user import User
from latchkey.infrastructure.persistence.database import as_utc
from latchkey.infrastructure.persistence.models import UserModel


class UserAlreadyExistsError(Exception):
    """Raised when an insert violates the unique email constraint."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"User with email {email!r} already exists")


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        """Convert infrastructure model to domain entity."""
        return User(
            id=model.id,
            email=model.email,
            password_hash=model.password_hash,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    async def create(self, email: str, password_hash: str) -> User:
        """Insert a new user.

        Args:
            email: User's email address.
            password_hash: Already-hashed password.

        Returns:
            The created user.

        Raises:
            UserAlreadyExistsError: If the email is already taken.
        """
        now = datetime.now(timezone.utc)
        model = UserModel(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise UserAlreadyExistsError(email) from e
        return self._to_entity(model)

    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by ID.

        Args:
            user_id: User ID (UUID string).

        Returns:
            User if found, None otherwise.
        """
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by exact email match.

        Args:
            email: User's email address.

        Returns:
            User if found, None otherwise.
        """
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def email_exists(self, email: str) -> bool:
        """Check if an email is already registered."""
        result = await self.session.execute(
            select(UserModel.id).where(UserModel.email == email).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        """Replace a user's password hash.

        Args:
            user_id: ID of the user to update.
            password_hash: The new, already-hashed password.

        Returns:
            True if the user was updated, False if not found.
        """
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
        )
        await self.session.flush()
        return result.rowcount > 0
