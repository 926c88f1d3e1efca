"""FastAPI dependencies for authentication.

Wires the auth flows to a request-scoped database session and exposes the
bearer token guard as a dependency.
"""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from latchkey.core.config import Settings, get_settings
from latchkey.domain.services import AuthService, ResetTokenStore
from latchkey.infrastructure.auth import AuthenticatedUser, JWTService, authorize, get_jwt_service
from latchkey.infrastructure.persistence.database import get_db_session
from latchkey.infrastructure.persistence.repositories import (
    PasswordResetRepository,
    UserRepository,
)


def get_reset_token_store(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ResetTokenStore:
    """Build the reset token store over the request's session."""
    return ResetTokenStore(PasswordResetRepository(session))


def get_auth_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    reset_store: Annotated[ResetTokenStore, Depends(get_reset_token_store)],
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    """Build the auth flows for one request."""
    return AuthService(
        session=session,
        user_repo=UserRepository(session),
        reset_store=reset_store,
        jwt_service=jwt_service,
        settings=settings,
    )


def get_current_user(
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser:
    """Extract and validate the current user from the Authorization header.

    Raises:
        UnauthenticatedError: If the header is missing or the token is invalid.
    """
    return authorize(authorization, jwt_service)


# Type aliases for dependency injection
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
