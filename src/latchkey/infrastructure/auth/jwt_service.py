"""JWT token service.

Issues and verifies stateless session tokens. Tokens are HS256-signed with
one process-wide secret and expire 24 hours after issuance. There is no
refresh and no revocation: a token stops working only when its window
closes.
"""

import time
from collections.abc import Callable
from functools import lru_cache

import jwt
import pydantic
from jwt.utils import base64url_decode, base64url_encode

from latchkey.core.config import get_settings
from latchkey.infrastructure.auth.token_types import SessionClaims


class TokenError(Exception):
    """Base exception for session token errors."""

    pass


class SigningError(TokenError):
    """Raised when a token cannot be signed."""

    pass


class InvalidSignatureError(TokenError):
    """Raised when a token's signature does not match the signing key."""

    pass


class MalformedTokenError(TokenError):
    """Raised when a token is not a well-formed session token."""

    pass


class TokenExpiredError(TokenError):
    """Raised when a token's validity window has closed."""

    pass


def _is_canonical(token: str) -> bool:
    """Check that every segment is the canonical base64url form of its bytes.

    Base64 decoders ignore the spare low bits of the final character, so two
    different strings can decode to the same bytes. Requiring the canonical
    form makes any altered character fail verification.
    """
    for segment in token.split("."):
        try:
            if base64url_encode(base64url_decode(segment)).decode() != segment:
                return False
        except ValueError:
            return False
    return True


class JWTService:
    """Service for issuing and verifying session tokens."""

    ALGORITHM = "HS256"
    TOKEN_LIFETIME_SECONDS = 24 * 60 * 60
    REQUIRED_CLAIMS = ["sub", "iat", "exp"]

    def __init__(
        self,
        secret_key: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the JWT service.

        Args:
            secret_key: Secret key for signing tokens.
            clock: Source of the current time in epoch seconds.

        Raises:
            ValueError: If the secret key is empty.
        """
        if not secret_key:
            raise ValueError("JWT secret key must not be empty")
        self._secret_key = secret_key
        self._clock = clock

    def issue(self, subject: str) -> str:
        """Issue a signed token for a subject.

        Args:
            subject: The user's unique identifier.

        Returns:
            Encoded JWT.

        Raises:
            SigningError: If the token cannot be encoded.
        """
        now = int(self._clock())
        payload = {
            "sub": subject,
            "iat": now,
            "exp": now + self.TOKEN_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(payload, self._secret_key, algorithm=self.ALGORITHM)
        except (jwt.PyJWTError, TypeError) as e:
            raise SigningError("Failed to sign token") from e

    def verify(self, token: str) -> SessionClaims:
        """Verify a token and return its claims.

        The signature is checked first, then the token structure, then the
        expiry against the service clock at the time of this call.

        Args:
            token: The encoded JWT.

        Returns:
            The verified session claims.

        Raises:
            InvalidSignatureError: If the signature does not match.
            MalformedTokenError: If the token is structurally invalid.
            TokenExpiredError: If the token has expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": self.REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignatureError("Invalid token signature") from e
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError("Malformed token") from e

        if not _is_canonical(token):
            raise MalformedTokenError("Malformed token")

        try:
            claims = SessionClaims.model_validate(payload)
        except pydantic.ValidationError as e:
            raise MalformedTokenError("Malformed token claims") from e

        if claims.exp <= self._clock():
            raise TokenExpiredError("Token has expired")
        return claims


@lru_cache
def get_jwt_service() -> JWTService:
    """Get the process-wide JWT service.

    The signing secret is read from settings once, on first call.
    """
    return JWTService(get_settings().jwt_secret)
