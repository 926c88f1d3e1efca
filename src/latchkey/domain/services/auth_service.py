"""Authentication flows: register, login, forgot/reset password and whoami.

Handles the business rules of each flow and leaves HTTP concerns to the
router. Every store failure surfaces as PersistenceError, except in
forgot-password, whose response must not reveal whether an email exists.
"""

import asyncio
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from latchkey.core.config import Settings
from latchkey.core.logging import get_logger
from latchkey.domain.entities.user import User
from latchkey.domain.exceptions import (
    AlreadyUsedTokenError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    PersistenceError,
    UserNotFoundError,
    ValidationError,
)
from latchkey.domain.services.reset_token_store import (
    ResetTokenExpiredError,
    ResetTokenNotFoundError,
    ResetTokenStore,
    ResetTokenUsedError,
)
from latchkey.infrastructure.auth.jwt_service import JWTService
from latchkey.infrastructure.auth.password_hasher import (
    HashingError,
    get_dummy_password_hash,
    hash_password,
    needs_rehash,
    verify_password,
)
from latchkey.infrastructure.persistence.repositories.user_repository import (
    UserAlreadyExistsError,
    UserRepository,
)

logger = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent"


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login."""

    token: str
    user: User


@dataclass(frozen=True)
class ForgotPasswordResult:
    """Outcome of a forgot-password request.

    ``reset_token`` is only ever set when the deployment explicitly enables
    token exposure for development.
    """

    message: str
    reset_token: str | None = None


class AuthService:
    """Orchestrates credential hashing, token issuance and reset tokens."""

    def __init__(
        self,
        session: AsyncSession,
        user_repo: UserRepository,
        reset_store: ResetTokenStore,
        jwt_service: JWTService,
        settings: Settings,
    ) -> None:
        """Initialize the auth service.

        Args:
            session: SQLAlchemy async session scoped to one request.
            user_repo: Repository for user operations.
            reset_store: Store for password reset tokens.
            jwt_service: Service issuing session tokens.
            settings: Application settings.
        """
        self.session = session
        self.user_repo = user_repo
        self.reset_store = reset_store
        self.jwt_service = jwt_service
        self.settings = settings

    def _validate_email(self, email: str) -> None:
        if "@" not in email:
            raise ValidationError("Invalid email format")

    def _validate_password(self, password: str) -> None:
        min_length = self.settings.password_min_length
        if len(password) < min_length:
            raise ValidationError(f"Password must be at least {min_length} characters long")

    async def _persistence_failure(self, event: str, error: SQLAlchemyError) -> PersistenceError:
        await self.session.rollback()
        logger.error(event, error=str(error), exc_type=type(error).__name__)
        return PersistenceError()

    async def register(self, email: str, password: str) -> User:
        """Register a new user.

        The existence check runs before hashing to avoid wasted work; the
        unique constraint on insert still decides races.

        Raises:
            ValidationError: If the email or password is malformed.
            ConflictError: If the email is already registered.
            PersistenceError: If the store fails.
        """
        self._validate_email(email)
        self._validate_password(password)

        try:
            if await self.user_repo.email_exists(email):
                logger.info("Registration failed: email exists", email=email)
                raise ConflictError()

            password_hash = await asyncio.to_thread(hash_password, password)
            user = await self.user_repo.create(email, password_hash)
            await self.session.commit()
        except UserAlreadyExistsError:
            logger.info("Registration failed: email taken concurrently", email=email)
            raise ConflictError()
        except SQLAlchemyError as e:
            raise await self._persistence_failure("Registration failed: database error", e)

        logger.info("User registered successfully", user_id=user.id, email=user.email)
        return user

    async def login(self, email: str, password: str) -> LoginResult:
        """Authenticate a user and issue a session token.

        Unknown emails and wrong passwords produce the same error, and both
        paths run one password verification.

        Raises:
            InvalidCredentialsError: If the credentials do not match.
            PersistenceError: If the store fails.
        """
        try:
            user = await self.user_repo.get_by_email(email)
        except SQLAlchemyError as e:
            raise await self._persistence_failure("Login failed: database error", e)

        if user is None:
            await asyncio.to_thread(verify_password, password, get_dummy_password_hash())
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info("Login failed: invalid password", user_id=user.id)
            raise InvalidCredentialsError()

        await self._upgrade_hash(user, password)

        token = self.jwt_service.issue(user.id)
        logger.info("User logged in successfully", user_id=user.id)
        return LoginResult(token=token, user=user)

    async def _upgrade_hash(self, user: User, password: str) -> None:
        """Re-hash a verified password whose hash uses outdated cost parameters."""
        if not needs_rehash(user.password_hash):
            return
        try:
            new_hash = await asyncio.to_thread(hash_password, password)
            await self.user_repo.update_password(user.id, new_hash)
            await self.session.commit()
        except (HashingError, SQLAlchemyError) as e:
            await self.session.rollback()
            logger.warning("Password rehash failed", user_id=user.id, error=str(e))
            return
        logger.info("Password hash upgraded", user_id=user.id)

    async def forgot_password(self, email: str) -> ForgotPasswordResult:
        """Issue a reset token if the email belongs to a user.

        Always returns the same message, whether or not the user exists and
        whether or not the token could be stored.
        """
        raw_token: str | None = None
        try:
            user = await self.user_repo.get_by_email(email)
            if user is None:
                logger.info("Password reset requested for unknown email")
            else:
                _, raw_token = await self.reset_store.create(user.id)
                await self.session.commit()
                logger.info("Password reset token issued", user_id=user.id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raw_token = None
            logger.error("Password reset request failed: database error", error=str(e))

        if raw_token is not None and self.settings.expose_reset_token:
            return ForgotPasswordResult(message=FORGOT_PASSWORD_MESSAGE, reset_token=raw_token)
        return ForgotPasswordResult(message=FORGOT_PASSWORD_MESSAGE)

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password using a reset token.

        Marking the token used and updating the password commit together.
        Marking only succeeds while the token is still unused, so when
        concurrent requests race on one token exactly one of them changes
        the password.

        Raises:
            ValidationError: If the new password is too short.
            InvalidOrExpiredTokenError: If the token is unknown or expired.
            AlreadyUsedTokenError: If the token was already redeemed.
            PersistenceError: If the store fails.
        """
        self._validate_password(new_password)

        try:
            record = await self.reset_store.redeem(token)
        except (ResetTokenNotFoundError, ResetTokenExpiredError) as e:
            logger.info("Password reset failed", reason=type(e).__name__)
            raise InvalidOrExpiredTokenError()
        except ResetTokenUsedError:
            logger.info("Password reset failed", reason="ResetTokenUsedError")
            raise AlreadyUsedTokenError()
        except SQLAlchemyError as e:
            raise await self._persistence_failure("Password reset failed: database error", e)

        password_hash = await asyncio.to_thread(hash_password, new_password)

        try:
            if not await self.reset_store.mark_used(token):
                await self.session.rollback()
                logger.info("Password reset failed: token consumed concurrently", token_id=record.id)
                raise AlreadyUsedTokenError()

            if not await self.user_repo.update_password(record.user_id, password_hash):
                await self.session.rollback()
                logger.warning(
                    "Password reset failed: user no longer exists", user_id=record.user_id
                )
                raise InvalidOrExpiredTokenError()

            await self.session.commit()
        except SQLAlchemyError as e:
            raise await self._persistence_failure("Password reset failed: database error", e)

        logger.info("Password reset successfully", user_id=record.user_id)

    async def whoami(self, user_id: str) -> User:
        """Return the user behind an authenticated subject.

        Raises:
            UserNotFoundError: If the user has been deleted since the token was issued.
            PersistenceError: If the store fails.
        """
        try:
            user = await self.user_repo.get_by_id(user_id)
        except SQLAlchemyError as e:
            raise await self._persistence_failure("Whoami failed: database error", e)

        if user is None:
            logger.info("Whoami failed: user not found", user_id=user_id)
            raise UserNotFoundError()
        return user
