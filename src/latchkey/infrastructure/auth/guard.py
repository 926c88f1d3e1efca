"""Bearer token authorization guard.

Turns an inbound ``Authorization`` header into an authenticated identity or
rejects the request. Every rejection looks the same to the caller; the
reason is only written to the log.
"""

from latchkey.core.logging import get_logger
from latchkey.domain.exceptions import UnauthenticatedError
from latchkey.infrastructure.auth.jwt_service import (
    InvalidSignatureError,
    JWTService,
    MalformedTokenError,
    TokenExpiredError,
)
from latchkey.infrastructure.auth.token_types import AuthenticatedUser

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def authorize(authorization: str | None, jwt_service: JWTService) -> AuthenticatedUser:
    """Authenticate a request from its Authorization header.

    Args:
        authorization: The raw header value, or None if the header is absent.
        jwt_service: Service used to verify the bearer token.

    Returns:
        AuthenticatedUser carrying the token subject.

    Raises:
        UnauthenticatedError: If the header is missing, does not use the
            ``Bearer`` scheme, or the token fails verification.
    """
    if authorization is None:
        logger.info("Authentication failed", reason="missing_header")
        raise UnauthenticatedError()

    if not authorization.startswith(BEARER_PREFIX):
        logger.info("Authentication failed", reason="bad_scheme")
        raise UnauthenticatedError()

    token = authorization[len(BEARER_PREFIX):]

    try:
        claims = jwt_service.verify(token)
    except TokenExpiredError:
        logger.info("Authentication failed", reason="expired")
        raise UnauthenticatedError()
    except InvalidSignatureError:
        logger.info("Authentication failed", reason="invalid_signature")
        raise UnauthenticatedError()
    except MalformedTokenError:
        logger.info("Authentication failed", reason="malformed")
        raise UnauthenticatedError()

    return AuthenticatedUser(user_id=claims.sub)
