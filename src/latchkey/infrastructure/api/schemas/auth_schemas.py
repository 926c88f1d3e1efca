"""Request and response schemas for the authentication endpoints.

Email and password rules are enforced by the auth flows, not here, so that
every caller of the flows gets the same validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request body for user registration."""

    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")


class LoginRequest(BaseModel):
    """Request body for user login."""

    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")


class ForgotPasswordRequest(BaseModel):
    """Request body for starting a password reset."""

    email: str = Field(..., description="Email address of the account to reset")


class ResetPasswordRequest(BaseModel):
    """Request body for completing a password reset."""

    token: str = Field(..., description="Password reset token")
    new_password: str = Field(..., description="The new password")


class UserResponse(BaseModel):
    """Public user fields. Never includes the password hash."""

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="User's email address")
    created_at: datetime = Field(..., description="When the user was created")


class RegisterResponse(BaseModel):
    """Response for a successful registration."""

    message: str = Field(..., description="Human-readable result")
    user: UserResponse = Field(..., description="The created user")


class LoginResponse(BaseModel):
    """Response for a successful login."""

    message: str = Field(..., description="Human-readable result")
    token: str = Field(..., description="Bearer token, valid for 24 hours")
    user: UserResponse = Field(..., description="The authenticated user")


class ForgotPasswordResponse(BaseModel):
    """Response for a forgot-password request, identical whether or not the email exists."""

    message: str = Field(..., description="Human-readable result")
    reset_token: str | None = Field(
        None,
        description="Raw reset token; only present when exposure is enabled for development",
    )


class MessageResponse(BaseModel):
    """Response carrying only a message."""

    message: str = Field(..., description="Human-readable result")


class WhoamiResponse(BaseModel):
    """Response describing the authenticated user."""

    user: UserResponse = Field(..., description="The authenticated user")


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error: str = Field(..., description="Human-readable error message")
