"""Unit tests for AuthService flows with mocked collaborators."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from latchkey.core.config import Settings
from latchkey.domain.entities.password_reset import PasswordResetToken
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
from latchkey.domain.services.auth_service import FORGOT_PASSWORD_MESSAGE, AuthService
from latchkey.domain.services.reset_token_store import (
    ResetTokenExpiredError,
    ResetTokenNotFoundError,
    ResetTokenStore,
    ResetTokenUsedError,
)
from latchkey.infrastructure.auth.jwt_service import JWTService
from latchkey.infrastructure.auth.password_hasher import HashingError
from latchkey.infrastructure.persistence.repositories.user_repository import (
    UserAlreadyExistsError,
    UserRepository,
)

MODULE = "latchkey.domain.services.auth_service"


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


@pytest.fixture
def user():
    return User(id="user-1", email="alice@example.com", password_hash="$argon2id$stored")


@pytest.fixture
def mock_session():
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def user_repo():
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def reset_store():
    return AsyncMock(spec=ResetTokenStore)


@pytest.fixture
def jwt_service():
    service = MagicMock(spec=JWTService)
    service.issue.return_value = "signed.jwt.token"
    return service


@pytest.fixture
def make_service(mock_session, user_repo, reset_store, jwt_service):
    def _make(**overrides) -> AuthService:
        settings = Settings(_env_file=None, **overrides)
        return AuthService(mock_session, user_repo, reset_store, jwt_service, settings)

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_success(self, service, user_repo, mock_session, user):
        user_repo.email_exists.return_value = False
        user_repo.create.return_value = user

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new") as mock_hash:
            result = await service.register("alice@example.com", "secret1")

        assert result is user
        mock_hash.assert_called_once_with("secret1")
        user_repo.create.assert_awaited_once_with("alice@example.com", "$argon2id$new")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["", "alice.example.com", "alice"])
    async def test_register_rejects_email_without_at(self, service, user_repo, email):
        with pytest.raises(ValidationError, match="Invalid email format"):
            await service.register(email, "secret1")

        user_repo.email_exists.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_register_rejects_short_password(self, service, user_repo):
        with pytest.raises(ValidationError, match="at least 6 characters"):
            await service.register("alice@example.com", "12345")

        user_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_register_accepts_six_character_password(self, service, user_repo, user):
        user_repo.email_exists.return_value = False
        user_repo.create.return_value = user

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new"):
            assert await service.register("alice@example.com", "123456") is user

    @pytest.mark.asyncio
    async def test_register_existing_email(self, service, user_repo):
        user_repo.email_exists.return_value = True

        with patch(f"{MODULE}.hash_password") as mock_hash:
            with pytest.raises(ConflictError):
                await service.register("alice@example.com", "secret1")

        mock_hash.assert_not_called()
        user_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_register_race_on_insert(self, service, user_repo):
        user_repo.email_exists.return_value = False
        user_repo.create.side_effect = UserAlreadyExistsError("alice@example.com")

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new"):
            with pytest.raises(ConflictError, match="already exists"):
                await service.register("alice@example.com", "secret1")

    @pytest.mark.asyncio
    async def test_register_database_failure(self, service, user_repo, mock_session):
        user_repo.email_exists.side_effect = _db_error()

        with pytest.raises(PersistenceError):
            await service.register("alice@example.com", "secret1")

        mock_session.rollback.assert_awaited_once()


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, service, user_repo, jwt_service, user):
        user_repo.get_by_email.return_value = user

        with (
            patch(f"{MODULE}.verify_password", return_value=True),
            patch(f"{MODULE}.needs_rehash", return_value=False),
        ):
            result = await service.login("alice@example.com", "secret1")

        assert result.token == "signed.jwt.token"
        assert result.user is user
        jwt_service.issue.assert_called_once_with("user-1")
        user_repo.update_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, service, user_repo, jwt_service, user):
        user_repo.get_by_email.return_value = user

        with patch(f"{MODULE}.verify_password", return_value=False):
            with pytest.raises(InvalidCredentialsError) as exc_info:
                await service.login("alice@example.com", "wrong-password")

        assert exc_info.value.message == "Invalid email or password"
        jwt_service.issue.assert_not_called()

    @pytest.mark.asyncio
    async def test_login_unknown_email_verifies_dummy_hash(self, service, user_repo):
        """Unknown emails still pay for one password verification."""
        user_repo.get_by_email.return_value = None

        with (
            patch(f"{MODULE}.get_dummy_password_hash", return_value="$argon2id$dummy"),
            patch(f"{MODULE}.verify_password", return_value=False) as mock_verify,
        ):
            with pytest.raises(InvalidCredentialsError) as exc_info:
                await service.login("nobody@example.com", "secret1")

        mock_verify.assert_called_once_with("secret1", "$argon2id$dummy")
        assert exc_info.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_upgrades_stale_hash(self, service, user_repo, mock_session, user):
        user_repo.get_by_email.return_value = user

        with (
            patch(f"{MODULE}.verify_password", return_value=True),
            patch(f"{MODULE}.needs_rehash", return_value=True),
            patch(f"{MODULE}.hash_password", return_value="$argon2id$fresh"),
        ):
            await service.login("alice@example.com", "secret1")

        user_repo.update_password.assert_awaited_once_with("user-1", "$argon2id$fresh")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_login_survives_failed_hash_upgrade(self, service, user_repo, mock_session, user):
        user_repo.get_by_email.return_value = user
        user_repo.update_password.side_effect = _db_error()

        with (
            patch(f"{MODULE}.verify_password", return_value=True),
            patch(f"{MODULE}.needs_rehash", return_value=True),
            patch(f"{MODULE}.hash_password", return_value="$argon2id$fresh"),
        ):
            result = await service.login("alice@example.com", "secret1")

        assert result.token == "signed.jwt.token"
        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_login_survives_rehash_hashing_error(self, service, user_repo, user):
        user_repo.get_by_email.return_value = user

        with (
            patch(f"{MODULE}.verify_password", return_value=True),
            patch(f"{MODULE}.needs_rehash", return_value=True),
            patch(f"{MODULE}.hash_password", side_effect=HashingError("Failed to hash password")),
        ):
            result = await service.login("alice@example.com", "secret1")

        assert result.token == "signed.jwt.token"
        user_repo.update_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login_database_failure(self, service, user_repo):
        user_repo.get_by_email.side_effect = _db_error()

        with pytest.raises(PersistenceError):
            await service.login("alice@example.com", "secret1")


class TestForgotPassword:
    @pytest.mark.asyncio
    async def test_unknown_email(self, service, user_repo, reset_store):
        user_repo.get_by_email.return_value = None

        result = await service.forgot_password("nobody@example.com")

        assert result.message == FORGOT_PASSWORD_MESSAGE
        assert result.reset_token is None
        reset_store.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_known_email_hides_token_by_default(
        self, service, user_repo, reset_store, mock_session, user
    ):
        user_repo.get_by_email.return_value = user
        reset_store.create.return_value = (MagicMock(), "raw-token")

        result = await service.forgot_password("alice@example.com")

        assert result.message == FORGOT_PASSWORD_MESSAGE
        assert result.reset_token is None
        reset_store.create.assert_awaited_once_with("user-1")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_known_email_exposes_token_when_enabled(
        self, make_service, user_repo, reset_store, user
    ):
        service = make_service(expose_reset_token=True)
        user_repo.get_by_email.return_value = user
        reset_store.create.return_value = (MagicMock(), "raw-token")

        result = await service.forgot_password("alice@example.com")

        assert result.reset_token == "raw-token"

    @pytest.mark.asyncio
    async def test_unknown_email_never_gets_token(self, make_service, user_repo):
        service = make_service(expose_reset_token=True)
        user_repo.get_by_email.return_value = None

        result = await service.forgot_password("nobody@example.com")

        assert result.reset_token is None

    @pytest.mark.asyncio
    async def test_database_failure_is_masked(
        self, make_service, user_repo, reset_store, mock_session, user
    ):
        service = make_service(expose_reset_token=True)
        user_repo.get_by_email.return_value = user
        reset_store.create.side_effect = _db_error()

        result = await service.forgot_password("alice@example.com")

        assert result.message == FORGOT_PASSWORD_MESSAGE
        assert result.reset_token is None
        mock_session.rollback.assert_awaited_once()


class TestResetPassword:
    @pytest.fixture
    def record(self):
        entity, _ = PasswordResetToken.generate("user-1")
        return entity

    @pytest.mark.asyncio
    async def test_reset_success(self, service, user_repo, reset_store, mock_session, record):
        reset_store.redeem.return_value = record
        order = []
        reset_store.mark_used.side_effect = lambda *args: order.append("mark_used") or True
        user_repo.update_password.side_effect = lambda *args: order.append("update") or True

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new"):
            await service.reset_password("raw-token", "newpass1")

        assert order == ["mark_used", "update"]
        reset_store.mark_used.assert_awaited_once_with("raw-token")
        user_repo.update_password.assert_awaited_once_with("user-1", "$argon2id$new")
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_rejects_short_password(self, service, reset_store):
        with pytest.raises(ValidationError):
            await service.reset_password("raw-token", "short")

        reset_store.redeem.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ResetTokenNotFoundError, ResetTokenExpiredError])
    async def test_reset_invalid_or_expired(self, service, reset_store, user_repo, error):
        reset_store.redeem.side_effect = error("nope")

        with pytest.raises(InvalidOrExpiredTokenError, match="Invalid or expired reset token"):
            await service.reset_password("raw-token", "newpass1")

        user_repo.update_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_already_used(self, service, reset_store, user_repo):
        reset_store.redeem.side_effect = ResetTokenUsedError("used")

        with pytest.raises(AlreadyUsedTokenError, match="already been used"):
            await service.reset_password("raw-token", "newpass1")

        user_repo.update_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_token_consumed_after_redeem(
        self, service, reset_store, user_repo, mock_session, record
    ):
        """A token used by another request between redeem and mark is rejected."""
        reset_store.redeem.return_value = record
        reset_store.mark_used.return_value = False

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new"):
            with pytest.raises(AlreadyUsedTokenError):
                await service.reset_password("raw-token", "newpass1")

        user_repo.update_password.assert_not_awaited()
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_user_gone(self, service, reset_store, user_repo, mock_session, record):
        reset_store.redeem.return_value = record
        reset_store.mark_used.return_value = True
        user_repo.update_password.return_value = False

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new"):
            with pytest.raises(InvalidOrExpiredTokenError):
                await service.reset_password("raw-token", "newpass1")

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_update_failure(self, service, reset_store, user_repo, mock_session, record):
        reset_store.redeem.return_value = record
        reset_store.mark_used.return_value = True
        user_repo.update_password.side_effect = _db_error()

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new"):
            with pytest.raises(PersistenceError):
                await service.reset_password("raw-token", "newpass1")

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_mark_used_failure(self, service, reset_store, user_repo, mock_session, record):
        """The password stays unchanged when the token cannot be consumed."""
        reset_store.redeem.return_value = record
        reset_store.mark_used.side_effect = _db_error()

        with patch(f"{MODULE}.hash_password", return_value="$argon2id$new"):
            with pytest.raises(PersistenceError):
                await service.reset_password("raw-token", "newpass1")

        user_repo.update_password.assert_not_awaited()
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestWhoami:
    @pytest.mark.asyncio
    async def test_whoami_returns_user(self, service, user_repo, user):
        user_repo.get_by_id.return_value = user

        assert await service.whoami("user-1") is user

    @pytest.mark.asyncio
    async def test_whoami_user_deleted(self, service, user_repo):
        user_repo.get_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            await service.whoami("user-1")

    @pytest.mark.asyncio
    async def test_whoami_database_failure(self, service, user_repo):
        user_repo.get_by_id.side_effect = _db_error()

        with pytest.raises(PersistenceError):
            await service.whoami("user-1")
