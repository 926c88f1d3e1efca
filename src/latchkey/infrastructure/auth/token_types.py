"""Token payload models for Latchkey session tokens."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class SessionClaims(BaseModel):
    """Claims carried inside a signed session token."""

    model_config = ConfigDict(strict=True, frozen=True)

    sub: str = Field(..., min_length=1, description="Subject: the user's ID")
    iat: int = Field(..., description="Unix timestamp when the token was issued")
    exp: int = Field(..., description="Unix timestamp when the token expires")


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity produced by the authorization guard for a verified request."""

    user_id: str
